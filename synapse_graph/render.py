"""Frame-driven rendering of the laid-out graph.

Each frame runs, in order: a physics tick (while the layout is active),
focus interpolation, drawing, and writing positions back to memory.
Frames keep being scheduled while the layout is active or any focus
weight is still moving toward its target.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from synapse_graph.config import GraphSettings
from synapse_graph.styling import (
    EDGE_LABEL_BACKGROUND,
    NODE_LABEL_COLOR,
    NODE_OUTLINE,
    GraphStyle,
)

if TYPE_CHECKING:
    from synapse_graph.layout import LayoutEngine
    from synapse_graph.models import GraphEdge, GraphModel
    from synapse_graph.scheduler import FrameScheduler
    from synapse_graph.surface import Surface

logger = logging.getLogger(__name__)

NODE_LABEL_SIZE = 12
EDGE_LABEL_SIZE = 10
NODE_LABEL_OFFSET = 14


class FocusTracker:
    """Smoothed highlight weights for nodes and edges.

    Weights live in id-keyed tables and move a fixed fraction of the
    remaining gap toward their target every frame. The hovered node targets
    ``focus_active``, its neighbors and incident edges ``focus_neighbor``,
    everything else ``focus_dimmed`` while something is hovered and
    ``focus_baseline`` otherwise.
    """

    def __init__(self, settings: GraphSettings | None = None) -> None:
        self.settings = settings or GraphSettings()
        self.hovered: str | None = None
        self.nodes: dict[str, float] = {}
        self.edges: dict[str, float] = {}
        self._neighbors: dict[str, set[str]] = {}
        self._endpoints: dict[str, tuple[str, str]] = {}

    def load(self, model: GraphModel) -> None:
        """Track a new model, keeping weights of ids that survive."""
        baseline = self.settings.focus_baseline
        self._neighbors = model.neighbor_index()
        self._endpoints = {edge.id: (edge.source, edge.target) for edge in model.edges}
        self.nodes = {node.id: self.nodes.get(node.id, baseline) for node in model.nodes}
        self.edges = {edge.id: self.edges.get(edge.id, baseline) for edge in model.edges}
        if self.hovered not in self.nodes:
            self.hovered = None

    def set_hover(self, node_id: str | None) -> bool:
        """Change the hovered node.

        Returns:
            True if the hover target changed
        """
        if node_id is not None and node_id not in self.nodes:
            node_id = None
        if node_id == self.hovered:
            return False
        self.hovered = node_id
        return True

    def node_target(self, node_id: str) -> float:
        settings = self.settings
        if self.hovered is None:
            return settings.focus_baseline
        if node_id == self.hovered:
            return settings.focus_active
        if node_id in self._neighbors.get(self.hovered, ()):
            return settings.focus_neighbor
        return settings.focus_dimmed

    def edge_target(self, edge_id: str) -> float:
        settings = self.settings
        if self.hovered is None:
            return settings.focus_baseline
        if self.hovered in self._endpoints.get(edge_id, ()):
            return settings.focus_neighbor
        return settings.focus_dimmed

    def _approach(self, current: float, target: float) -> float:
        gap = target - current
        if abs(gap) <= self.settings.focus_epsilon:
            return target
        return current + gap * self.settings.focus_rate

    def step(self) -> None:
        """Move every weight one frame closer to its target."""
        for node_id, value in self.nodes.items():
            self.nodes[node_id] = self._approach(value, self.node_target(node_id))
        for edge_id, value in self.edges.items():
            self.edges[edge_id] = self._approach(value, self.edge_target(edge_id))

    @property
    def settled(self) -> bool:
        epsilon = self.settings.focus_epsilon
        return all(
            abs(value - self.node_target(node_id)) <= epsilon for node_id, value in self.nodes.items()
        ) and all(
            abs(value - self.edge_target(edge_id)) <= epsilon for edge_id, value in self.edges.items()
        )


class RenderLoop:
    """Draws the graph on a surface, one scheduled frame at a time."""

    def __init__(
        self,
        layout: LayoutEngine,
        surface: Surface | None,
        scheduler: FrameScheduler,
        settings: GraphSettings | None = None,
    ) -> None:
        """Initialize the render loop.

        Args:
            layout: Layout engine that owns node positions
            surface: Drawing surface, None when the view is not mounted
            scheduler: Per-refresh scheduling primitive
            settings: Focus constants
        """
        self.layout = layout
        self.surface = surface
        self.scheduler = scheduler
        self.settings = settings or layout.settings
        self.focus = FocusTracker(self.settings)
        self.model: GraphModel | None = None
        self.style: GraphStyle | None = None
        self.width = 0.0
        self.height = 0.0
        self.pixel_ratio = 1.0
        self.frames_drawn = 0
        self._handle: int | None = None

    @property
    def scheduled(self) -> bool:
        return self._handle is not None

    def attach(
        self,
        model: GraphModel,
        style: GraphStyle,
        width: float,
        height: float,
        pixel_ratio: float = 1.0,
    ) -> None:
        """Switch to a new model and geometry and schedule a frame."""
        self.model = model
        self.style = style
        self.width = width
        self.height = height
        self.pixel_ratio = pixel_ratio or 1.0
        self.focus.load(model)
        self.invalidate()

    def set_hover(self, node_id: str | None) -> None:
        if self.focus.set_hover(node_id):
            self.invalidate()

    def invalidate(self) -> None:
        """Schedule a frame unless one is already pending."""
        if self._handle is None:
            self._handle = self.scheduler.request_frame(self._on_frame)

    def stop(self) -> None:
        """Cancel the pending frame, if any."""
        if self._handle is not None:
            self.scheduler.cancel_frame(self._handle)
            self._handle = None

    def _on_frame(self) -> None:
        self._handle = None
        if self.render_frame() and (self.layout.active or not self.focus.settled):
            self.invalidate()
        else:
            logger.debug("Render loop idle after %d frames", self.frames_drawn)

    def render_frame(self) -> bool:
        """Tick, interpolate focus, draw and write positions back.

        Returns:
            True if a graph was drawn, False if the surface was only cleared
        """
        surface = self.surface
        if surface is None:
            return False
        if self.width <= 0 or self.height <= 0 or self.model is None or not self.model.nodes:
            surface.clear()
            surface.present()
            return False

        if self.layout.active:
            self.layout.tick()
        self.focus.step()
        self.draw(surface)
        self.layout.write_back()
        self.frames_drawn += 1
        return True

    def draw(self, surface: Surface) -> None:
        """Draw edges, edge labels, then nodes with their labels."""
        surface.resize(self.width, self.height, self.pixel_ratio)
        surface.clear()

        drawable = [edge for edge in self.model.edges if self._endpoints(edge) is not None]

        for edge in drawable:
            (x0, y0), (x1, y1) = self._endpoints(edge)
            surface.line(
                x0, y0, x1, y1,
                color=self.style.edge_color(edge),
                width=self.style.edge_width(edge),
                alpha=self.edge_alpha(edge.id),
            )

        for edge in drawable:
            if not edge.label:
                continue
            (x0, y0), (x1, y1) = self._endpoints(edge)
            surface.text(
                (x0 + x1) / 2, (y0 + y1) / 2,
                edge.label,
                color=self.style.edge_color(edge),
                size=EDGE_LABEL_SIZE,
                background=EDGE_LABEL_BACKGROUND,
                alpha=self.edge_alpha(edge.id),
            )

        for i, node in enumerate(self.layout.nodes):
            x, y = self.layout.positions[i]
            radius = float(self.layout.radii[i])
            focus = self.focus.nodes.get(node.id, self.settings.focus_baseline)
            alpha = min(1.0, 0.3 + focus * 2)
            surface.circle(
                float(x), float(y), radius,
                fill=self.style.node_fill(node),
                outline=NODE_OUTLINE,
                outline_width=1 + focus * 3,
                glow=6 + focus * 18,
                alpha=alpha,
                node_id=node.id,
            )
            surface.text(
                float(x), float(y) + radius + NODE_LABEL_OFFSET,
                node.label,
                color=NODE_LABEL_COLOR,
                size=NODE_LABEL_SIZE,
                alpha=alpha,
            )

        surface.present()

    def edge_alpha(self, edge_id: str) -> float:
        return min(1.0, 0.2 + self.focus.edges.get(edge_id, self.settings.focus_baseline))

    def _endpoints(self, edge: GraphEdge) -> tuple[tuple[float, float], tuple[float, float]] | None:
        source = self.layout.position(edge.source)
        target = self.layout.position(edge.target)
        if source is None or target is None:
            return None
        return source, target

    def __repr__(self) -> str:
        return f"RenderLoop(frames={self.frames_drawn}, scheduled={self.scheduled})"
