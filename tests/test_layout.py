"""Tests for LayoutEngine and PositionMemory."""

import math

import numpy as np

from synapse_graph.builders import build_graph
from synapse_graph.config import GraphSettings
from synapse_graph.layout import LayoutEngine, PositionMemory
from synapse_graph.models import GraphModel, GraphNode, NodeKind, ViewMode
from synapse_graph.store import demo_snapshot
from synapse_graph.styling import GraphStyle

WIDTH = 900
HEIGHT = 600


def _model(mode=ViewMode.NOTE):
    snapshot = demo_snapshot()
    return build_graph(mode, snapshot.notes, snapshot.links)


def _engine(model, memory=None, width=WIDTH, height=HEIGHT):
    engine = LayoutEngine(GraphSettings(seed=1), memory)
    engine.load(model, width, height, GraphStyle(model).node_radius)
    return engine


def test_memory_operations():
    """Test position memory set, get, retain and clear."""
    memory = PositionMemory()
    memory.set("a", 1.0, 2.0)
    memory.set("b", 3.0, 4.0)

    assert memory.get("a") == (1.0, 2.0)
    assert "b" in memory
    assert memory.retain(["a"]) == 1
    assert list(memory) == ["a"]

    memory.forget("a")
    assert len(memory) == 0
    memory.set("c", 0.0, 0.0)
    memory.clear()
    assert memory.get("c") is None


def test_initial_circle_placement():
    """Test new nodes are spread around the ring near the center."""
    model = _model()
    engine = _engine(model)
    cx, cy = engine.center

    assert engine.ring_radius == 0.35 * HEIGHT
    assert engine.positions.shape == (len(model.nodes), 2)
    for (x, y), radius in zip(engine.positions, engine.radii):
        distance = math.hypot(x - cx, y - cy)
        assert abs(distance - engine.ring_radius) <= radius * 2
    assert engine.alpha == 1.0
    assert engine.active


def test_ring_radius_minimum():
    """Test small canvases still use an 80px ring."""
    engine = _engine(_model(), width=150, height=100)
    assert engine.ring_radius == 80.0


def test_single_node_at_center():
    """Test a lone node starts at the canvas center."""
    model = GraphModel(mode=ViewMode.NOTE, nodes=(GraphNode(id="note:1", label="Solo", kind=NodeKind.NOTE),))
    engine = _engine(model)
    assert engine.position("note:1") == (WIDTH / 2, HEIGHT / 2)


def test_empty_model():
    """Test an empty model is never active."""
    engine = _engine(GraphModel(mode=ViewMode.NOTE))
    assert not engine.active
    engine.tick()
    assert engine.run() == 0
    assert engine.find(10, 10, 30) is None


def test_runs_to_quiescence_within_bounds():
    """Test the simulation stops and leaves every node inside the canvas."""
    engine = _engine(_model(ViewMode.VALUE))
    ticks = engine.run()

    assert 0 < ticks < 1000
    assert not engine.active
    assert engine.kinetic_energy < 1.0
    for (x, y), radius in zip(engine.positions, engine.radii):
        assert radius - 1e-9 <= x <= WIDTH - radius + 1e-9
        assert radius - 1e-9 <= y <= HEIGHT - radius + 1e-9


def test_nodes_separate_at_rest():
    """Test repulsion keeps nodes apart."""
    engine = _engine(_model())
    engine.run()
    positions = engine.positions
    for i in range(len(positions)):
        for j in range(i + 1, len(positions)):
            assert np.linalg.norm(positions[i] - positions[j]) > 20


def test_coincident_nodes_are_pushed_apart():
    """Test nodes starting on the same point do not stay stacked."""
    memory = PositionMemory()
    model = _model()
    for node in model.nodes:
        memory.set(node.id, WIDTH / 2, HEIGHT / 2)
    engine = _engine(model, memory)
    engine.run()
    assert len({(round(x), round(y)) for x, y in engine.positions}) > 1


def test_positions_restored_from_memory():
    """Test a rebuild restores remembered positions."""
    model = _model()
    memory = PositionMemory()
    engine = _engine(model, memory)
    engine.run()
    engine.write_back()
    before = {node_id: engine.position(node_id) for node_id in engine.ids}

    engine.load(model, WIDTH, HEIGHT, GraphStyle(model).node_radius)
    after = {node_id: engine.position(node_id) for node_id in engine.ids}
    assert after == before


def test_missing_nodes_purged_from_memory():
    """Test remembered ids absent from a new model are dropped."""
    memory = PositionMemory()
    memory.set("note:99", 1.0, 1.0)
    model = _model()
    _engine(model, memory)

    assert "note:99" not in memory


def test_drag_pins_node():
    """Test a dragged node follows the pointer and keeps the layout warm."""
    engine = _engine(_model())
    engine.run()
    node_id = engine.ids[0]

    engine.begin_drag(node_id)
    engine.drag_to(node_id, 200.0, 150.0)
    for _ in range(400):
        engine.tick()

    assert engine.position(node_id) == (200.0, 150.0)
    assert engine.active
    assert engine.alpha > 0.25
    snapshot = engine.node(node_id)
    assert snapshot.pinned
    assert (snapshot.fx, snapshot.fy) == (200.0, 150.0)

    engine.end_drag(node_id)
    assert not engine.node(node_id).pinned
    assert engine.dragging is None
    engine.run()
    assert not engine.active


def test_drag_raises_energy_of_quiet_layout():
    """Test starting a drag re-arms a quiescent simulation."""
    engine = _engine(_model())
    engine.run()
    assert not engine.active

    engine.begin_drag(engine.ids[0])
    assert engine.active


def test_find_nearest_within_radius():
    """Test hit-testing picks the nearest node inside the radius."""
    engine = _engine(_model())
    node_id = engine.ids[2]
    x, y = engine.position(node_id)

    assert engine.find(x + 5, y - 5, 30) == node_id
    assert engine.find(-500, -500, 30) is None


def test_snapshot_mirrors_arrays():
    """Test simulation node snapshots carry the engine state."""
    model = _model()
    engine = _engine(model)
    nodes = engine.snapshot()

    assert [n.id for n in nodes] == [node.id for node in model.nodes]
    assert nodes[0].radius == float(engine.radii[0])
    assert not nodes[0].pinned
    assert engine.node("note:404") is None


def test_reheat():
    """Test reheating a quiet layout makes it active again."""
    engine = _engine(_model())
    engine.run()
    engine.reheat()
    assert engine.alpha == 0.3
    assert engine.active
