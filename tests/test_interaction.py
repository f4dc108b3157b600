"""Tests for InteractionController and activation events."""

import pytest

from synapse_graph.builders import build_graph
from synapse_graph.config import GraphSettings
from synapse_graph.interaction import (
    ActivationKind,
    Associations,
    ClusterSummary,
    InteractionController,
    activation_for,
)
from synapse_graph.layout import LayoutEngine
from synapse_graph.models import GraphModel, GraphNode, NodeKind, ViewMode
from synapse_graph.render import RenderLoop
from synapse_graph.scheduler import StepScheduler
from synapse_graph.store import demo_snapshot
from synapse_graph.styling import GraphStyle
from synapse_graph.surface import FigureSurface


def _controller(mode=ViewMode.NOTE):
    snapshot = demo_snapshot()
    model = build_graph(mode, snapshot.notes, snapshot.links)
    style = GraphStyle(model)
    layout = LayoutEngine(GraphSettings(seed=5))
    layout.load(model, 800, 600, style.node_radius)
    scheduler = StepScheduler()
    render = RenderLoop(layout, FigureSurface(), scheduler)
    render.attach(model, style, 800, 600)
    scheduler.run_until_idle()

    events = {"activated": [], "background": 0}

    def on_background():
        events["background"] += 1

    controller = InteractionController(
        layout, render,
        on_activate=events["activated"].append,
        on_background=on_background,
    )
    controller.attach(model)
    return controller, events, scheduler


def test_click_note_opens_note():
    """Test clicking a note node emits an open-note activation."""
    controller, events, _ = _controller()
    x, y = controller.layout.position("note:1")

    activation = controller.click(x + 5, y)
    assert activation.kind == ActivationKind.OPEN_NOTE
    assert activation.node_id == "note:1"
    assert activation.payload.title == "LLM Review"
    assert events["activated"] == [activation]


def test_pick_radius():
    """Test picks reach past the visual radius but not beyond the pick radius."""
    node = GraphNode(id="note:1", label="Solo", kind=NodeKind.NOTE)
    model = GraphModel(mode=ViewMode.NOTE, nodes=(node,))
    layout = LayoutEngine(GraphSettings())
    layout.load(model, 800, 600, GraphStyle(model).node_radius)
    controller = InteractionController(layout, RenderLoop(layout, None, StepScheduler()))
    controller.attach(model)

    assert controller.hit_test(429, 300) is node
    assert controller.hit_test(431, 300) is None


def test_background_click_deselects():
    """Test a click on empty canvas reports a background click."""
    controller, events, _ = _controller()
    assert controller.click(-1000, -1000) is None
    assert events["background"] == 1
    assert events["activated"] == []


def test_click_value_shows_associations():
    """Test clicking a value node lists the notes carrying the value."""
    controller, _, _ = _controller(ViewMode.VALUE)
    value = next(
        node for node in controller.model.nodes
        if node.kind == NodeKind.VALUE and node.label == "Vaswani"
    )
    x, y = controller.layout.position(value.id)

    activation = controller.click(x, y)
    assert activation.kind == ActivationKind.SHOW_ASSOCIATIONS
    assert activation.payload.key == "Inventors"
    assert activation.payload.lines == ["Inventors ← Transformer"]


def test_click_cluster_shows_summary():
    """Test clicking a cluster node reports its size and keywords."""
    controller, _, _ = _controller(ViewMode.CLUSTER)
    cluster = controller.model.get_node("cluster:0")
    x, y = controller.layout.position(cluster.id)

    activation = controller.click(x, y)
    assert activation.kind == ActivationKind.SHOW_CLUSTER
    assert activation.payload.size == cluster.cluster_size
    assert activation.payload.lines[0] == f"Items: {cluster.cluster_size}"


def test_payload_fallback_lines():
    """Test empty payloads describe themselves."""
    assert Associations(title="2020", key="Year").lines == ["No linked notes yet."]
    assert ClusterSummary(title="Cluster 1", size=None).lines == ["Cluster summary not available."]
    assert ClusterSummary(title="x", size=2, keywords=("graph", "layout")).lines == [
        "Items: 2",
        "Keywords: graph, layout",
    ]


def test_activation_for_note_without_note():
    """Test a note node without its record activates nothing."""
    assert activation_for(GraphNode(id="note:1", label="", kind=NodeKind.NOTE)) is None
    with pytest.raises(ValueError):
        activation_for(GraphNode(id="x", label="", kind="ghost"))


def test_hover_sets_focus_target():
    """Test moving over a node hovers it and leaving clears hover."""
    controller, _, scheduler = _controller()
    x, y = controller.layout.position("note:2")

    controller.pointer_move(x, y)
    assert controller.render.focus.hovered == "note:2"
    assert scheduler.pending == 1

    controller.pointer_leave()
    assert controller.render.focus.hovered is None


def test_drag_moves_pinned_node():
    """Test dragging pins the node to the pointer and release frees it."""
    controller, _, scheduler = _controller()
    x, y = controller.layout.position("note:3")

    assert controller.pointer_down(x, y)
    assert controller.dragging == "note:3"
    controller.pointer_move(300, 200)
    scheduler.step()
    assert controller.layout.position("note:3") == (300.0, 200.0)
    assert controller.layout.active

    controller.pointer_up(300, 200)
    assert controller.dragging is None
    assert not controller.layout.node("note:3").pinned


def test_drag_suppresses_click():
    """Test the click that ends a drag does not activate the node."""
    controller, events, _ = _controller()
    x, y = controller.layout.position("note:3")

    controller.pointer_down(x, y)
    controller.pointer_move(x + 40, y + 40)
    controller.pointer_up(x + 40, y + 40)
    assert controller.click(x + 40, y + 40) is None
    assert events["activated"] == []
    assert events["background"] == 0


def test_small_drag_still_clicks():
    """Test a press with little movement is still a click."""
    controller, events, _ = _controller()
    x, y = controller.layout.position("note:3")

    controller.pointer_down(x, y)
    controller.pointer_move(x + 1, y)
    controller.pointer_up(x + 1, y)
    activation = controller.click(x + 1, y)
    assert activation is not None
    assert activation.node_id == "note:3"


def test_pointer_down_on_background():
    """Test pressing empty canvas starts no drag."""
    controller, _, _ = _controller()
    assert controller.pointer_down(-1000, -1000) is False
    assert controller.dragging is None


def test_detached_controller_ignores_input():
    """Test pointer input is ignored after detaching."""
    controller, events, _ = _controller()
    x, y = controller.layout.position("note:1")
    controller.pointer_down(x, y)
    controller.detach()

    assert controller.dragging is None
    assert not controller.layout.node("note:1").pinned
    assert controller.click(x, y) is None
    assert controller.pointer_down(x, y) is False
    assert events["activated"] == []


def test_drag_released_without_click_does_not_swallow_next_click():
    """Test a drag that ends with no click leaves later clicks working."""
    controller, events, scheduler = _controller()
    x, y = controller.layout.position("note:1")

    controller.pointer_down(x, y)
    controller.pointer_move(x + 50, y)
    controller.pointer_up(x + 50, y)
    scheduler.run_until_idle()

    x2, y2 = controller.layout.position("note:2")
    controller.pointer_down(x2, y2)
    controller.pointer_up(x2, y2)
    activation = controller.click(x2, y2)
    assert activation is not None
    assert activation.node_id == "note:2"
    assert len(events["activated"]) == 1


def test_background_press_clears_click_suppression():
    """Test a press on empty canvas after a drag still reports a background click."""
    controller, events, _ = _controller()
    x, y = controller.layout.position("note:1")

    controller.pointer_down(x, y)
    controller.pointer_move(x + 50, y)
    controller.pointer_up(x + 50, y)

    controller.pointer_down(-1000, -1000)
    assert controller.click(-1000, -1000) is None
    assert events["background"] == 1
