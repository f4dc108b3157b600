"""GraphHost wires a note source and a view mode into layout, rendering and interaction."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from synapse_graph.builders import build_graph
from synapse_graph.clustering import ClusteringEngine
from synapse_graph.config import GraphSettings
from synapse_graph.interaction import InteractionController
from synapse_graph.layout import LayoutEngine
from synapse_graph.models import GraphModel, ViewMode
from synapse_graph.render import RenderLoop
from synapse_graph.scheduler import StepScheduler
from synapse_graph.styling import GraphStyle

if TYPE_CHECKING:
    from collections.abc import Callable

    from synapse_graph.interaction import NodeActivation
    from synapse_graph.layout import PositionMemory
    from synapse_graph.scheduler import FrameScheduler
    from synapse_graph.store import Snapshot
    from synapse_graph.surface import Surface

logger = logging.getLogger(__name__)


class NoteSource(Protocol):
    """Read access to the note store."""

    def snapshot(self) -> Snapshot:
        ...

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        ...


class GraphHost:
    """One mounted graph view.

    Every store change triggers a full rebuild of the current view; node
    positions are remembered across rebuilds until the view mode changes.
    The host owns its surface, simulation and position memory exclusively.
    """

    def __init__(
        self,
        source: NoteSource,
        surface: Surface | None = None,
        scheduler: FrameScheduler | None = None,
        settings: GraphSettings | None = None,
        mode: ViewMode | str = ViewMode.VALUE,
        on_node_activated: Callable[[NodeActivation], None] | None = None,
        on_deselect: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the host.

        Args:
            source: Note store providing snapshots and change notifications
            surface: Drawing surface
            scheduler: Per-refresh scheduling primitive (StepScheduler if None)
            settings: Graph settings (defaults if None)
            mode: Initial view mode
            on_node_activated: Called when a node is clicked
            on_deselect: Called on background clicks and view-mode changes
        """
        self.source = source
        self.settings = settings or GraphSettings()
        self.scheduler = scheduler or StepScheduler()
        self.mode = ViewMode(mode)
        self.on_node_activated = on_node_activated
        self.on_deselect = on_deselect

        self.engine = ClusteringEngine(threshold=self.settings.similarity_threshold)
        self.layout = LayoutEngine(self.settings)
        self.render = RenderLoop(self.layout, surface, self.scheduler, self.settings)
        self.interaction = InteractionController(
            self.layout,
            self.render,
            on_activate=self._activated,
            on_background=self._deselected,
            settings=self.settings,
        )

        self.model = GraphModel(mode=self.mode)
        self.width = 0.0
        self.height = 0.0
        self.pixel_ratio = 1.0
        self.mounted = False
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def memory(self) -> PositionMemory:
        return self.layout.memory

    @property
    def surface(self) -> Surface | None:
        return self.render.surface

    def mount(self, width: float, height: float, pixel_ratio: float = 1.0) -> None:
        """Start listening to the store and draw the current view."""
        self.width, self.height, self.pixel_ratio = width, height, pixel_ratio
        if not self.mounted:
            self._unsubscribe = self.source.subscribe(self.refresh)
            self.mounted = True
            logger.info("Graph view mounted (%s, %gx%g)", self.mode.value, width, height)
        self.refresh()

    def unmount(self) -> None:
        """Stop frames, detach pointer input and stop listening to the store.

        Position memory is kept so a remount in the same mode restores the layout.
        """
        if not self.mounted:
            return
        self.render.stop()
        self.interaction.detach()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.mounted = False
        logger.info("Graph view unmounted")

    def set_view_mode(self, mode: ViewMode | str) -> None:
        """Switch view mode, forgetting remembered positions."""
        mode = ViewMode(mode)
        if mode == self.mode:
            return
        self.mode = mode
        self.memory.clear()
        self.render.set_hover(None)
        logger.info("View mode changed to %s", mode.value)
        self._deselected()
        if self.mounted:
            self.refresh()

    def resize(self, width: float, height: float, pixel_ratio: float | None = None) -> None:
        """Apply new container geometry, keeping remembered positions."""
        self.width, self.height = width, height
        if pixel_ratio is not None:
            self.pixel_ratio = pixel_ratio
        if self.mounted:
            self.layout.write_back()
            self._apply(self.model)

    def refresh(self) -> None:
        """Rebuild the current view from a fresh store snapshot."""
        if not self.mounted:
            return
        snapshot = self.source.snapshot()
        unsaved = sum(1 for note in snapshot.notes if note.id is None)
        if unsaved:
            logger.debug("Skipping %d unsaved notes", unsaved)
        self._apply(build_graph(self.mode, snapshot.notes, snapshot.links, self.engine))

    def _apply(self, model: GraphModel) -> None:
        self.model = model
        style = GraphStyle(model)
        self.layout.load(model, self.width, self.height, style.node_radius)
        self.render.attach(model, style, self.width, self.height, self.pixel_ratio)
        self.interaction.attach(model)

    def _activated(self, activation: NodeActivation) -> None:
        if self.on_node_activated is not None:
            self.on_node_activated(activation)

    def _deselected(self) -> None:
        if self.on_deselect is not None:
            self.on_deselect()

    def run_until_idle(self, max_frames: int = 2000) -> int:
        """Drive a StepScheduler until the view stops requesting frames.

        Returns:
            Number of frames run, 0 for schedulers driven by a display
        """
        if isinstance(self.scheduler, StepScheduler):
            return self.scheduler.run_until_idle(max_frames)
        return 0

    def __repr__(self) -> str:
        return f"GraphHost(mode={self.mode.value}, mounted={self.mounted}, {self.model!r})"
