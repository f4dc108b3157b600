"""Tunable constants for building, laying out and drawing the graph.

Every field can be overridden through a ``SYNAPSE_GRAPH_<FIELD>``
environment variable (or a ``.env`` file) via ``GraphSettings.from_env``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any

from dotenv import load_dotenv

ENV_PREFIX = "SYNAPSE_GRAPH_"


@dataclass(frozen=True)
class GraphSettings:
    """Settings shared by the builders, layout, render loop and interaction.

    Attributes:
        similarity_threshold: Jaccard threshold for clustering
        link_distance: Rest length of link springs
        charge_strength: Many-body strength (negative repels)
        collision_padding: Extra spacing added to node radius for collisions
        radial_strength: Pull toward the layout ring
        center_strength: Pull of the node cloud toward the canvas center
        velocity_decay: Fraction of velocity lost every tick
        alpha_min: Energy below which the simulation is quiescent
        alpha_decay: Per-tick relaxation rate of the energy
        drag_alpha_target: Energy held while a node is dragged
        pick_radius: Hit-test radius for pointer picks
        drag_threshold: Pointer travel that turns a press into a drag
        focus_rate: Fraction of the remaining focus gap closed per frame
        focus_epsilon: Focus gap considered settled
        focus_active: Focus of the hovered node
        focus_neighbor: Focus of hovered node's neighbors and incident edges
        focus_dimmed: Focus of everything else while hovering
        focus_baseline: Focus when nothing is hovered
        seed: Seed for placement jitter, random when None
    """

    similarity_threshold: float = 0.22
    link_distance: float = 160.0
    charge_strength: float = -450.0
    collision_padding: float = 4.0
    radial_strength: float = 0.6
    center_strength: float = 1.0
    velocity_decay: float = 0.4
    alpha_min: float = 0.001
    alpha_decay: float = 1 - 0.001 ** (1 / 300)
    drag_alpha_target: float = 0.3
    pick_radius: float = 30.0
    drag_threshold: float = 3.0
    focus_rate: float = 0.18
    focus_epsilon: float = 0.01
    focus_active: float = 1.0
    focus_neighbor: float = 0.6
    focus_dimmed: float = 0.12
    focus_baseline: float = 0.35
    seed: int | None = None

    @classmethod
    def from_env(cls, **overrides: Any) -> GraphSettings:
        """Load settings from the environment.

        Args:
            **overrides: Values that take precedence over the environment

        Returns:
            Settings with environment values applied

        Raises:
            ValueError: If a variable cannot be parsed as its field's type
        """
        load_dotenv()
        values: dict[str, Any] = {}
        for item in fields(cls):
            name = f"{ENV_PREFIX}{item.name.upper()}"
            raw = os.getenv(name)
            if raw is None or raw.strip() == "":
                continue
            try:
                values[item.name] = int(raw) if item.name == "seed" else float(raw)
            except ValueError:
                raise ValueError(f"{name} must be a number, got {raw!r}") from None
        values.update(overrides)
        return replace(cls(), **values)
