"""Force-directed layout with per-node position memory.

The layout engine owns the live position of every displayed node and
relaxes the graph with a damped spring-mass simulation:

- link springs toward a fixed separation
- inverse-distance repulsion between every pair
- centering of the node cloud on the canvas
- radial pull toward a ring, keeping sparse graphs compact
- collision resolution against each node's radius

The simulation carries a global energy ``alpha`` that decays every tick.
Once it drops below ``alpha_min`` the layout is quiescent and the render
loop stops scheduling physics. Dragging holds the energy up so the rest
of the graph keeps responding to the pinned node.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from synapse_graph.config import GraphSettings

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from synapse_graph.models import GraphModel, GraphNode

logger = logging.getLogger(__name__)

MIN_RING_RADIUS = 80.0
RING_FRACTION = 0.35


class PositionMemory:
    """Last known position of every node id placed in the current view mode."""

    def __init__(self) -> None:
        self._positions: dict[str, tuple[float, float]] = {}

    def get(self, node_id: str) -> tuple[float, float] | None:
        return self._positions.get(node_id)

    def set(self, node_id: str, x: float, y: float) -> None:
        self._positions[node_id] = (x, y)

    def forget(self, node_id: str) -> None:
        self._positions.pop(node_id, None)

    def retain(self, node_ids: Iterable[str]) -> int:
        """Drop every remembered id not in ``node_ids``.

        Returns:
            Number of entries removed
        """
        keep = set(node_ids)
        stale = [node_id for node_id in self._positions if node_id not in keep]
        for node_id in stale:
            del self._positions[node_id]
        return len(stale)

    def clear(self) -> None:
        self._positions.clear()

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._positions

    def __len__(self) -> int:
        return len(self._positions)

    def __iter__(self) -> Iterator[str]:
        return iter(self._positions)

    def __repr__(self) -> str:
        return f"PositionMemory(size={len(self._positions)})"


@dataclass
class SimulationNode:
    """Snapshot of a node's simulation state.

    Attributes:
        node: Graph node being simulated
        x: Horizontal position in canvas units
        y: Vertical position in canvas units
        vx: Horizontal velocity
        vy: Vertical velocity
        radius: Visual radius used for collisions and bounds
        fx: Pinned x while dragged, None when free
        fy: Pinned y while dragged, None when free
    """

    node: GraphNode
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    radius: float = 0.0
    fx: float | None = None
    fy: float | None = None

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def pinned(self) -> bool:
        return self.fx is not None


class LayoutEngine:
    """Positions graph nodes with a damped force simulation.

    State is kept in id-indexed numpy arrays: ``ids[i]`` owns row ``i`` of
    ``positions``, ``velocities`` and ``radii``.
    """

    def __init__(
        self,
        settings: GraphSettings | None = None,
        memory: PositionMemory | None = None,
    ) -> None:
        """Initialize the layout engine.

        Args:
            settings: Force constants (defaults if None)
            memory: Position memory to restore from and write back to
        """
        self.settings = settings or GraphSettings()
        self.memory = memory if memory is not None else PositionMemory()
        self.rng = np.random.default_rng(self.settings.seed)

        self.width = 0.0
        self.height = 0.0
        self.alpha = 0.0
        self.alpha_target = 0.0
        self.dragging: str | None = None

        self.nodes: list[GraphNode] = []
        self.ids: list[str] = []
        self.index: dict[str, int] = {}
        self.positions = np.zeros((0, 2))
        self.velocities = np.zeros((0, 2))
        self.radii = np.zeros(0)
        self.pinned = np.zeros(0, dtype=bool)
        self.pins = np.zeros((0, 2))

        self._link_source = np.zeros(0, dtype=int)
        self._link_target = np.zeros(0, dtype=int)
        self._link_strength = np.zeros(0)
        self._link_bias = np.zeros(0)

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2, self.height / 2

    @property
    def ring_radius(self) -> float:
        return max(min(self.width, self.height) * RING_FRACTION, MIN_RING_RADIUS)

    def load(
        self,
        model: GraphModel,
        width: float,
        height: float,
        radius_of: Callable[[GraphNode], float],
    ) -> None:
        """Replace the simulated graph and re-arm the simulation.

        Remembered positions are restored; new nodes are spread on a circle
        with jitter proportional to their radius. Remembered ids missing from
        the model are purged.

        Args:
            model: Graph to lay out
            width: Canvas width in CSS pixels
            height: Canvas height in CSS pixels
            radius_of: Visual radius of a node
        """
        self.width = float(width)
        self.height = float(height)
        self.dragging = None
        self.alpha_target = 0.0

        self.nodes = list(model.nodes)
        self.ids = [node.id for node in self.nodes]
        self.index = {node_id: i for i, node_id in enumerate(self.ids)}
        purged = self.memory.retain(self.ids)
        if purged:
            logger.debug("Purged %d remembered positions", purged)

        count = len(self.nodes)
        self.radii = np.array([radius_of(node) for node in self.nodes], dtype=float).reshape(count)
        self.positions = self._initial_positions()
        self.velocities = np.zeros((count, 2))
        self.pinned = np.zeros(count, dtype=bool)
        self.pins = np.zeros((count, 2))

        self._load_links(model)
        self.alpha = 1.0 if count else 0.0

    def _initial_positions(self) -> np.ndarray:
        count = len(self.nodes)
        positions = np.zeros((count, 2))
        cx, cy = self.center
        ring = self.ring_radius
        step = 2 * math.pi / count if count else 0.0

        for i, node_id in enumerate(self.ids):
            previous = self.memory.get(node_id)
            if previous is not None:
                positions[i] = previous
            elif count <= 1:
                positions[i] = (cx, cy)
            else:
                angle = step * i
                jitter = (self.rng.random() - 0.5) * self.radii[i] * 2
                positions[i] = (cx + ring * math.cos(angle) + jitter, cy + ring * math.sin(angle) + jitter)

        return positions

    def _load_links(self, model: GraphModel) -> None:
        pairs = [
            (self.index[edge.source], self.index[edge.target])
            for edge in model.edges
            if edge.source in self.index and edge.target in self.index and edge.source != edge.target
        ]
        source = np.array([s for s, _ in pairs], dtype=int)
        target = np.array([t for _, t in pairs], dtype=int)
        counts = np.bincount(np.concatenate([source, target]), minlength=len(self.ids)).astype(float)

        self._link_source = source
        self._link_target = target
        if pairs:
            self._link_strength = 1.0 / np.minimum(counts[source], counts[target])
            self._link_bias = counts[source] / (counts[source] + counts[target])
        else:
            self._link_strength = np.zeros(0)
            self._link_bias = np.zeros(0)

    @property
    def active(self) -> bool:
        """True while the simulation still has energy to spend."""
        if not self.ids:
            return False
        return self.alpha >= self.settings.alpha_min or self.alpha_target >= self.settings.alpha_min

    @property
    def kinetic_energy(self) -> float:
        return float(0.5 * np.sum(self.velocities ** 2))

    def reheat(self, alpha: float = 0.3) -> None:
        """Raise the energy so the layout moves again."""
        self.alpha = max(self.alpha, alpha)

    def tick(self) -> None:
        """Advance the simulation by one step."""
        if not self.ids:
            return
        settings = self.settings
        self.alpha += (self.alpha_target - self.alpha) * settings.alpha_decay

        self._apply_links()
        self._apply_charge()
        self._apply_radial()
        self._apply_collision()

        free = ~self.pinned
        self.velocities[free] *= 1 - settings.velocity_decay
        self.positions[free] += self.velocities[free]
        self.positions[self.pinned] = self.pins[self.pinned]
        self.velocities[self.pinned] = 0.0

        self._apply_center(free)
        self.clamp()

        if not self.active:
            logger.debug("Layout quiescent (alpha=%.4f)", self.alpha)

    def _jiggle(self, shape: tuple[int, ...]) -> np.ndarray:
        return (self.rng.random(shape) - 0.5) * 1e-6

    def _apply_links(self) -> None:
        if not len(self._link_source):
            return
        s, t = self._link_source, self._link_target
        predicted = self.positions + self.velocities
        delta = predicted[t] - predicted[s]
        zero = ~delta.any(axis=1)
        if zero.any():
            delta[zero] = self._jiggle((int(zero.sum()), 2))

        length = np.linalg.norm(delta, axis=1)
        scale = (length - self.settings.link_distance) / length * self.alpha * self._link_strength
        delta *= scale[:, None]
        np.add.at(self.velocities, t, -delta * self._link_bias[:, None])
        np.add.at(self.velocities, s, delta * (1 - self._link_bias)[:, None])

    def _pairwise(self, points: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Offsets ``points[j] - points[i]`` and squared distances, jiggling coincident pairs."""
        diff = points[None, :, :] - points[:, None, :]
        dist2 = np.einsum("ijk,ijk->ij", diff, diff)
        coincident = dist2 == 0
        np.fill_diagonal(coincident, False)
        if coincident.any():
            diff[coincident] = self._jiggle((int(coincident.sum()), 2))
            dist2 = np.einsum("ijk,ijk->ij", diff, diff)
        return diff, dist2

    def _apply_charge(self) -> None:
        if len(self.ids) < 2:
            return
        diff, dist2 = self._pairwise(self.positions)
        # Softened below unit distance
        dist2 = np.where(dist2 < 1.0, np.sqrt(dist2), dist2)
        np.fill_diagonal(dist2, np.inf)
        weight = self.settings.charge_strength * self.alpha / dist2
        self.velocities += np.einsum("ijk,ij->ik", diff, weight)

    def _apply_radial(self) -> None:
        strength = self.settings.radial_strength
        if not strength:
            return
        offset = self.positions - np.array(self.center)
        offset[~offset.any(axis=1)] = 1e-6
        distance = np.linalg.norm(offset, axis=1)
        k = (self.ring_radius - distance) * strength * self.alpha / distance
        self.velocities += offset * k[:, None]

    def _apply_collision(self) -> None:
        if len(self.ids) < 2:
            return
        radii = self.radii + self.settings.collision_padding
        diff, dist2 = self._pairwise(self.positions + self.velocities)
        reach = radii[:, None] + radii[None, :]
        overlap = dist2 < reach ** 2
        np.fill_diagonal(overlap, False)
        if not overlap.any():
            return

        distance = np.sqrt(np.where(overlap, dist2, 1.0))
        push = np.where(overlap, (reach - distance) / distance, 0.0)
        r2 = radii ** 2
        share = r2[None, :] / (r2[:, None] + r2[None, :])
        # diff points from i to j, so i moves against it
        self.velocities -= np.einsum("ijk,ij->ik", diff, push * share)

    def _apply_center(self, free: np.ndarray) -> None:
        strength = self.settings.center_strength
        if not strength or not free.any():
            return
        shift = (self.positions.mean(axis=0) - np.array(self.center)) * strength
        self.positions[free] -= shift

    def clamp(self) -> None:
        """Keep every node inside the canvas minus its radius."""
        if not self.ids:
            return
        low = self.radii
        high_x = np.maximum(self.radii, self.width - self.radii)
        high_y = np.maximum(self.radii, self.height - self.radii)
        self.positions[:, 0] = np.clip(self.positions[:, 0], low, high_x)
        self.positions[:, 1] = np.clip(self.positions[:, 1], low, high_y)

    def find(self, x: float, y: float, radius: float) -> str | None:
        """Id of the node nearest to (x, y) within ``radius``, or None."""
        if not self.ids:
            return None
        dist2 = np.sum((self.positions - np.array([x, y])) ** 2, axis=1)
        best = int(np.argmin(dist2))
        if dist2[best] >= radius ** 2:
            return None
        return self.ids[best]

    def begin_drag(self, node_id: str) -> None:
        """Pin a node where it is and hold the simulation energy up."""
        i = self.index.get(node_id)
        if i is None:
            return
        self.dragging = node_id
        self.pinned[i] = True
        self.pins[i] = self.positions[i]
        self.alpha_target = self.settings.drag_alpha_target
        logger.debug("Drag started on %s", node_id)

    def drag_to(self, node_id: str, x: float, y: float) -> None:
        """Move the pin of a dragged node to pointer coordinates."""
        i = self.index.get(node_id)
        if i is None or not self.pinned[i]:
            return
        self.pins[i] = (x, y)

    def end_drag(self, node_id: str) -> None:
        """Release a dragged node back to normal dynamics."""
        i = self.index.get(node_id)
        if i is not None:
            self.pinned[i] = False
        if self.dragging == node_id:
            self.dragging = None
        self.alpha_target = 0.0
        logger.debug("Drag ended on %s", node_id)

    def position(self, node_id: str) -> tuple[float, float] | None:
        i = self.index.get(node_id)
        if i is None:
            return None
        return float(self.positions[i, 0]), float(self.positions[i, 1])

    def node(self, node_id: str) -> SimulationNode | None:
        i = self.index.get(node_id)
        if i is None:
            return None
        fx, fy = (float(v) for v in self.pins[i]) if self.pinned[i] else (None, None)
        return SimulationNode(
            node=self.nodes[i],
            x=float(self.positions[i, 0]),
            y=float(self.positions[i, 1]),
            vx=float(self.velocities[i, 0]),
            vy=float(self.velocities[i, 1]),
            radius=float(self.radii[i]),
            fx=fx,
            fy=fy,
        )

    def snapshot(self) -> list[SimulationNode]:
        return [self.node(node_id) for node_id in self.ids]

    def write_back(self) -> None:
        """Store every current position in the position memory."""
        for node_id, (x, y) in zip(self.ids, self.positions):
            self.memory.set(node_id, float(x), float(y))

    def run(self, max_ticks: int = 1000) -> int:
        """Tick until quiescent or ``max_ticks`` is reached.

        Returns:
            Number of ticks run
        """
        ticks = 0
        while self.active and ticks < max_ticks:
            self.tick()
            ticks += 1
        return ticks

    def __len__(self) -> int:
        return len(self.ids)

    def __repr__(self) -> str:
        return f"LayoutEngine(nodes={len(self.ids)}, alpha={self.alpha:.3f})"
