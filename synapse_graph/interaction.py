"""Pointer interaction: hit-testing, hover, click and drag.

Pointer coordinates are CSS pixels relative to the drawing surface.
Clicks are translated into activation events for the host UI.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Union

from synapse_graph.config import GraphSettings
from synapse_graph.models import NodeKind, Note, ValueAssociation

if TYPE_CHECKING:
    from collections.abc import Callable

    from synapse_graph.layout import LayoutEngine
    from synapse_graph.models import GraphModel, GraphNode
    from synapse_graph.render import RenderLoop

logger = logging.getLogger(__name__)


class ActivationKind(str, Enum):
    """What the host should do when a node is clicked."""

    OPEN_NOTE = "open_note"
    SHOW_ASSOCIATIONS = "show_associations"
    SHOW_CLUSTER = "show_cluster"


@dataclass(frozen=True)
class Associations:
    """Notes carrying a value, shown when a value node is clicked."""

    title: str
    key: str | None
    items: tuple[ValueAssociation, ...] = ()

    @property
    def lines(self) -> list[str]:
        if not self.items:
            return ["No linked notes yet."]
        return [f"{item.key} ← {item.note_title}" for item in self.items]


@dataclass(frozen=True)
class ClusterSummary:
    """Size and keywords of a cluster, shown when a cluster node is clicked."""

    title: str
    size: int | None
    keywords: tuple[str, ...] = field(default_factory=tuple)

    @property
    def lines(self) -> list[str]:
        lines = []
        if self.size is not None:
            lines.append(f"Items: {self.size}")
        if self.keywords:
            lines.append(f"Keywords: {', '.join(self.keywords)}")
        return lines or ["Cluster summary not available."]


ActivationPayload = Union[Note, Associations, ClusterSummary]


@dataclass(frozen=True)
class NodeActivation:
    """Event emitted when a node is clicked."""

    kind: ActivationKind
    node_id: str
    payload: ActivationPayload


def activation_for(node: GraphNode) -> NodeActivation | None:
    """Translate a clicked node into an activation event.

    Returns None for a note node that has lost its source note.
    """
    if node.kind == NodeKind.NOTE:
        if node.note is None:
            return None
        return NodeActivation(ActivationKind.OPEN_NOTE, node.id, node.note)
    if node.kind == NodeKind.VALUE:
        payload = Associations(title=node.label, key=node.key, items=tuple(node.associations))
        return NodeActivation(ActivationKind.SHOW_ASSOCIATIONS, node.id, payload)
    if node.kind == NodeKind.CLUSTER:
        payload = ClusterSummary(title=node.label, size=node.cluster_size, keywords=tuple(node.keywords))
        return NodeActivation(ActivationKind.SHOW_CLUSTER, node.id, payload)
    raise ValueError(f"Unhandled node kind: {node.kind!r}")


class InteractionController:
    """Turns pointer input into hover, drag and activation events.

    Reads live positions from the layout for hit-testing and feeds hover
    changes to the render loop.
    """

    def __init__(
        self,
        layout: LayoutEngine,
        render: RenderLoop,
        on_activate: Callable[[NodeActivation], None] | None = None,
        on_background: Callable[[], None] | None = None,
        settings: GraphSettings | None = None,
    ) -> None:
        """Initialize the interaction controller.

        Args:
            layout: Layout engine holding live positions
            render: Render loop receiving hover changes
            on_activate: Called with an activation when a node is clicked
            on_background: Called when a click hits no node
            settings: Pick radius and drag threshold
        """
        self.layout = layout
        self.render = render
        self.on_activate = on_activate
        self.on_background = on_background
        self.settings = settings or layout.settings
        self.model: GraphModel | None = None
        self.attached = False
        self.dragging: str | None = None
        self._press: tuple[float, float] | None = None
        self._pointer: tuple[float, float] | None = None
        self._moved = False
        self._suppress_click = False

    def attach(self, model: GraphModel) -> None:
        """Start listening to pointer input for a model.

        Called after the layout was reloaded. A drag whose node survives the
        rebuild is pinned again at the last pointer position.
        """
        if self.dragging is not None:
            if model.get_node(self.dragging) is None:
                self.dragging = None
                self._press = None
            else:
                self.layout.begin_drag(self.dragging)
                if self._pointer is not None:
                    self.layout.drag_to(self.dragging, *self._pointer)
        self.model = model
        self.attached = True

    def detach(self) -> None:
        """Stop reacting to pointer input and drop any drag in progress."""
        if self.dragging is not None:
            self.layout.end_drag(self.dragging)
        self.attached = False
        self.dragging = None
        self._press = None
        self._pointer = None
        self._suppress_click = False

    def hit_test(self, x: float, y: float) -> GraphNode | None:
        """Nearest node within the pick radius of (x, y)."""
        if self.model is None:
            return None
        node_id = self.layout.find(x, y, self.settings.pick_radius)
        if node_id is None:
            return None
        return self.model.get_node(node_id)

    def pointer_move(self, x: float, y: float) -> None:
        if not self.attached:
            return
        if self.dragging is not None:
            if self._press is not None and math.dist(self._press, (x, y)) > self.settings.drag_threshold:
                self._moved = True
            self._pointer = (x, y)
            self.layout.drag_to(self.dragging, x, y)
            self.render.invalidate()
            return
        node = self.hit_test(x, y)
        self.render.set_hover(node.id if node else None)

    def pointer_leave(self) -> None:
        if not self.attached:
            return
        self.render.set_hover(None)

    def pointer_down(self, x: float, y: float) -> bool:
        """Begin dragging the node under the pointer.

        Returns:
            True if a drag started
        """
        if not self.attached:
            return False
        # Suppression only covers the click that directly follows a drag
        self._suppress_click = False
        node = self.hit_test(x, y)
        if node is None:
            return False
        self.dragging = node.id
        self._press = (x, y)
        self._pointer = (x, y)
        self._moved = False
        self.layout.begin_drag(node.id)
        self.layout.drag_to(node.id, x, y)
        self.render.invalidate()
        return True

    def pointer_up(self, x: float, y: float) -> None:
        if not self.attached or self.dragging is None:
            return
        self.layout.end_drag(self.dragging)
        self._suppress_click = self._moved
        self.dragging = None
        self._press = None
        self._pointer = None
        self._moved = False
        self.render.invalidate()

    def click(self, x: float, y: float) -> NodeActivation | None:
        """Activate the node under the pointer, or report a background click.

        A click that ends a drag is ignored.
        """
        if not self.attached:
            return None
        if self._suppress_click:
            self._suppress_click = False
            return None

        node = self.hit_test(x, y)
        activation = activation_for(node) if node is not None else None
        if activation is None:
            if self.on_background is not None:
                self.on_background()
            return None

        logger.debug("Activated %s (%s)", node.id, activation.kind.value)
        if self.on_activate is not None:
            self.on_activate(activation)
        return activation
