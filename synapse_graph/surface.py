"""Drawing surfaces for the render loop.

A surface receives primitive draw calls for one frame and presents them.
``FigureSurface`` collects the calls into a display list and turns each
presented frame into a Plotly figure, the way the graph tabs of the
Streamlit browser render networkx layouts.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Protocol

import plotly.graph_objects as go


class Surface(Protocol):
    """Minimal 2D drawing surface in CSS pixel coordinates."""

    def resize(self, width: float, height: float, pixel_ratio: float) -> None:
        ...

    def clear(self) -> None:
        ...

    def line(self, x0: float, y0: float, x1: float, y1: float, color: str, width: float, alpha: float) -> None:
        ...

    def circle(
        self,
        x: float,
        y: float,
        radius: float,
        fill: str,
        outline: str,
        outline_width: float,
        glow: float,
        alpha: float = 1.0,
        node_id: str | None = None,
    ) -> None:
        ...

    def text(
        self,
        x: float,
        y: float,
        text: str,
        color: str,
        size: float,
        background: str | None = None,
        alpha: float = 1.0,
    ) -> None:
        ...

    def present(self) -> None:
        ...


@dataclass(frozen=True)
class LineOp:
    x0: float
    y0: float
    x1: float
    y1: float
    color: str
    width: float
    alpha: float


@dataclass(frozen=True)
class CircleOp:
    x: float
    y: float
    radius: float
    fill: str
    outline: str
    outline_width: float
    glow: float
    alpha: float = 1.0
    node_id: str | None = None


@dataclass(frozen=True)
class TextOp:
    x: float
    y: float
    text: str
    color: str
    size: float
    background: str | None = None
    alpha: float = 1.0


@dataclass
class Frame:
    """Display list of one presented frame."""

    width: float = 0.0
    height: float = 0.0
    pixel_ratio: float = 1.0
    ops: list[LineOp | CircleOp | TextOp] = field(default_factory=list)

    @property
    def lines(self) -> list[LineOp]:
        return [op for op in self.ops if isinstance(op, LineOp)]

    @property
    def circles(self) -> list[CircleOp]:
        return [op for op in self.ops if isinstance(op, CircleOp)]

    @property
    def texts(self) -> list[TextOp]:
        return [op for op in self.ops if isinstance(op, TextOp)]

    @property
    def empty(self) -> bool:
        return not self.ops


class FigureSurface:
    """Headless surface that records draw calls and renders them with Plotly.

    Attributes:
        frame: Display list of the last presented frame
        frames_presented: Number of frames presented since creation
    """

    def __init__(self, background: str = "#f7fafc") -> None:
        self.background = background
        self.width = 0.0
        self.height = 0.0
        self.pixel_ratio = 1.0
        self.frame = Frame()
        self.frames_presented = 0
        self._pending: list[LineOp | CircleOp | TextOp] = []

    @property
    def backing_size(self) -> tuple[int, int]:
        """Device pixel size of the drawing buffer."""
        return math.floor(self.width * self.pixel_ratio), math.floor(self.height * self.pixel_ratio)

    def resize(self, width: float, height: float, pixel_ratio: float) -> None:
        self.width = width
        self.height = height
        self.pixel_ratio = pixel_ratio

    def clear(self) -> None:
        self._pending = []

    def line(self, x0: float, y0: float, x1: float, y1: float, color: str, width: float, alpha: float) -> None:
        self._pending.append(LineOp(x0, y0, x1, y1, color, width, alpha))

    def circle(
        self,
        x: float,
        y: float,
        radius: float,
        fill: str,
        outline: str,
        outline_width: float,
        glow: float,
        alpha: float = 1.0,
        node_id: str | None = None,
    ) -> None:
        self._pending.append(CircleOp(x, y, radius, fill, outline, outline_width, glow, alpha, node_id))

    def text(
        self,
        x: float,
        y: float,
        text: str,
        color: str,
        size: float,
        background: str | None = None,
        alpha: float = 1.0,
    ) -> None:
        self._pending.append(TextOp(x, y, text, color, size, background, alpha))

    def present(self) -> None:
        self.frame = Frame(
            width=self.width,
            height=self.height,
            pixel_ratio=self.pixel_ratio,
            ops=self._pending,
        )
        self._pending = []
        self.frames_presented += 1

    @property
    def figure(self) -> go.Figure:
        """The last presented frame as a Plotly figure.

        Edges become line shapes, edge labels annotations, and nodes one
        scatter trace whose ``customdata`` holds the node ids.
        """
        frame = self.frame
        fig = go.Figure()

        for op in frame.lines:
            fig.add_shape(
                type="line",
                x0=op.x0, y0=op.y0, x1=op.x1, y1=op.y1,
                line=dict(color=op.color, width=op.width),
                opacity=op.alpha,
                layer="below",
            )

        circles = frame.circles
        if circles:
            fig.add_trace(go.Scatter(
                x=[op.x for op in circles],
                y=[op.y for op in circles],
                mode="markers",
                marker=dict(
                    size=[op.radius * 2 for op in circles],
                    color=[op.fill for op in circles],
                    opacity=[op.alpha for op in circles],
                    line=dict(width=[op.outline_width for op in circles], color=[op.outline for op in circles]),
                ),
                customdata=[op.node_id for op in circles],
                hoverinfo="none",
                name="Nodes",
            ))

        for op in frame.texts:
            fig.add_annotation(
                x=op.x, y=op.y,
                text=op.text,
                showarrow=False,
                font=dict(size=op.size, color=op.color),
                bgcolor=op.background,
                opacity=op.alpha,
            )

        fig.update_layout(
            width=frame.width or None,
            height=frame.height or None,
            showlegend=False,
            xaxis=dict(range=[0, frame.width], visible=False, fixedrange=True),
            # Canvas y grows downward
            yaxis=dict(range=[frame.height, 0], visible=False, fixedrange=True, scaleanchor="x"),
            plot_bgcolor=self.background,
            paper_bgcolor=self.background,
            margin=dict(l=0, r=0, b=0, t=0),
            hovermode="closest",
        )
        return fig

    def __repr__(self) -> str:
        return f"FigureSurface({self.width:g}x{self.height:g}, frames={self.frames_presented})"
