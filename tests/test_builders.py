"""Tests for the view builders."""

import logging

from synapse_graph.builders import (
    build_cluster_view,
    build_graph,
    build_note_view,
    build_value_view,
    finalize,
    flatten_attributes,
)
from synapse_graph.models import EdgeKind, GraphEdge, Link, NodeKind, Note, ViewMode
from synapse_graph.store import demo_snapshot


def _kinds(model, kind):
    return [node for node in model.nodes if node.kind == kind]


def test_flatten_attributes():
    """Test attribute values are expanded and stringified."""
    pairs = flatten_attributes({
        "Authors": ["Jane Doe", " ", "Chris Lin", 3],
        "Year": " 2020 ",
        "Blank": "",
        "Pages": 12,
        "Open": False,
        "Nested": {"a": 1},
        "Missing": None,
    })
    assert pairs == [
        ("Authors", "Jane Doe"),
        ("Authors", "Chris Lin"),
        ("Year", "2020"),
        ("Pages", "12"),
        ("Open", "false"),
    ]


def test_value_view_dedupes_values():
    """Test two notes sharing a value produce one value node with two associations."""
    notes = [
        Note(id=1, title="First", attributes={"Year": "2020"}),
        Note(id=2, title="Second", attributes={"Year": "2020"}),
    ]
    model = build_value_view(notes)

    values = _kinds(model, NodeKind.VALUE)
    assert len(values) == 1
    value = values[0]
    assert value.id == "value:1"
    assert value.key == "Year"
    assert value.label == "2020"
    assert [(a.note_id, a.note_title, a.key) for a in value.associations] == [
        (1, "First", "Year"),
        (2, "Second", "Year"),
    ]
    assert len(model.edges) == 2
    assert all(edge.kind == EdgeKind.STRUCTURED and edge.label == "Year" for edge in model.edges)


def test_value_view_case_insensitive():
    """Test values differing only in case share a node labelled with the first spelling."""
    notes = [
        Note(id=1, attributes={"Tags": ["LLM"]}),
        Note(id=2, attributes={"Tags": ["llm"], "Other": "llm"}),
    ]
    model = build_value_view(notes)
    values = _kinds(model, NodeKind.VALUE)

    assert [(v.key, v.label, len(v.associations)) for v in values] == [
        ("Tags", "LLM", 2),
        ("Other", "llm", 1),
    ]


def test_value_view_note_nodes():
    """Test note nodes in the value view carry the title as their value."""
    model = build_value_view([Note(id=4, title="TensorFlow")])
    node = model.get_node("note:4")
    assert node.kind == NodeKind.NOTE
    assert node.key == "title"
    assert node.value_sample == "TensorFlow"
    assert node.note.id == 4


def test_unsaved_notes_are_skipped():
    """Test notes without an id never produce nodes."""
    notes = [Note(title="Draft", attributes={"Year": "2020"}), Note(id=1, title="Saved")]
    for mode in ViewMode:
        model = build_graph(mode, notes, [])
        note_nodes = _kinds(model, NodeKind.NOTE)
        assert [node.id for node in note_nodes] == ["note:1"]


def test_note_view_end_to_end():
    """Test five notes and one manual link build the expected note graph."""
    notes = [Note(id=i, title=f"Note {i}", summary=f"summary {i}") for i in range(1, 6)]
    links = [Link(id=1, source_id=1, target_id=2, reason="Cites")]
    model = build_note_view(notes, links)

    assert len(_kinds(model, NodeKind.NOTE)) == 5
    assert len(model.edges) == 1
    edge = model.edges[0]
    assert edge.id == "db:1"
    assert edge.kind == EdgeKind.MANUAL
    assert edge.label == "Cites"
    assert {edge.source, edge.target} == {"note:1", "note:2"}


def test_note_view_shared_values():
    """Test notes sharing a key/value pair get one inferred edge per pair."""
    notes = [
        Note(id=2, attributes={"Year": "2017", "Authors": ["Vaswani", "Shazeer"]}),
        Note(id=1, attributes={"Year": "2017", "Authors": ["vaswani"]}),
        Note(id=3, attributes={"Year": "2023"}),
    ]
    model = build_note_view(notes, [])
    ids = sorted(edge.id for edge in model.edges)

    assert ids == ["shared:1|2|Authors|Vaswani", "shared:1|2|Year|2017"]
    shared = next(edge for edge in model.edges if edge.key == "Year")
    assert shared.kind == EdgeKind.STRUCTURED
    assert shared.label == "Year: 2017"


def test_note_view_link_types():
    """Test link provenance becomes the edge kind and auto edges get a similarity."""
    notes = [
        Note(id=1, summary="neural network training"),
        Note(id=2, summary="neural network inference"),
    ]
    links = [
        Link(source_id=1, target_id=2, reason="Related topics: neural, network", type=EdgeKind.AUTO),
        Link(id=9, source_id=2, target_id=1, reason="Explains"),
    ]
    model = build_note_view(notes, links)
    auto, manual = model.edges

    assert auto.id == "db:note:1->note:2"
    assert auto.kind == EdgeKind.AUTO
    assert auto.similarity == 0.5
    assert manual.kind == EdgeKind.MANUAL
    assert manual.similarity is None


def test_dangling_edges_dropped():
    """Test links to missing notes are filtered out."""
    notes = [Note(id=1), Note(id=2)]
    links = [
        Link(id=1, source_id=1, target_id=2),
        Link(id=2, source_id=1, target_id=99),
    ]
    model = build_note_view(notes, links)
    assert [edge.id for edge in model.edges] == ["db:1"]


def test_finalize_drops_duplicate_edge_ids():
    """Test the first edge wins when ids repeat."""
    model = build_value_view([Note(id=1)])
    edges = [
        GraphEdge(id="e", source="note:1", target="note:1", label="first"),
        GraphEdge(id="e", source="note:1", target="note:1", label="second"),
    ]
    result = finalize(ViewMode.NOTE, list(model.nodes), edges)
    assert [edge.label for edge in result.edges] == ["first"]


def test_cluster_view():
    """Test cluster nodes, labels and membership edges."""
    notes = [
        Note(id=1, summary="alpha beta gamma delta"),
        Note(id=2, summary="gamma delta epsilon zeta"),
        Note(id=3, summary="unrelated"),
    ]
    model = build_cluster_view(notes)
    clusters = _kinds(model, NodeKind.CLUSTER)

    assert [c.id for c in clusters] == ["cluster:0", "cluster:1"]
    assert clusters[0].label == "gamma, delta, alpha, beta"
    assert clusters[0].cluster_size == 2
    assert clusters[1].keywords == ["unrelated"]
    assert sorted(edge.id for edge in model.edges) == [
        "cluster:cluster:0:1",
        "cluster:cluster:0:2",
        "cluster:cluster:1:3",
    ]
    assert all(edge.kind == EdgeKind.CLUSTER and edge.label == "member" for edge in model.edges)


def test_cluster_view_every_note_has_one_parent():
    """Test each note node is the target of exactly one membership edge."""
    snapshot = demo_snapshot()
    model = build_cluster_view(snapshot.notes)
    targets = [edge.target for edge in model.edges]

    assert sorted(targets) == sorted(node.id for node in _kinds(model, NodeKind.NOTE))


def test_cluster_label_without_keywords():
    """Test a cluster without keywords is labelled by its position."""
    model = build_cluster_view([Note(id=1, summary="a b")])
    assert model.get_node("cluster:0").label == "Cluster 1"


def test_builds_are_deterministic():
    """Test identical input yields identical node and edge ids."""
    snapshot = demo_snapshot()
    for mode in ViewMode:
        first = build_graph(mode, snapshot.notes, snapshot.links)
        second = build_graph(mode, snapshot.notes, snapshot.links)
        assert [n.id for n in first.nodes] == [n.id for n in second.nodes]
        assert [e.id for e in first.edges] == [e.id for e in second.edges]
        assert first.edge_ids() == second.edge_ids()


def test_no_dangling_edges_in_any_view():
    """Test every edge endpoint exists in its model."""
    snapshot = demo_snapshot()
    links = list(snapshot.links) + [Link(id=50, source_id=3, target_id=42)]
    for mode in ViewMode:
        model = build_graph(mode, snapshot.notes, links)
        node_ids = model.node_ids()
        assert len(node_ids) == len(model.nodes)
        assert all(edge.source in node_ids and edge.target in node_ids for edge in model.edges)


def test_unknown_mode_falls_back_to_note_view(caplog):
    """Test an unknown mode string builds the note view with a warning."""
    snapshot = demo_snapshot()
    with caplog.at_level(logging.WARNING):
        model = build_graph("timeline", snapshot.notes, snapshot.links)

    assert model.mode == ViewMode.NOTE
    assert "timeline" in caplog.text


def test_empty_input():
    """Test empty input builds empty models."""
    for mode in ViewMode:
        model = build_graph(mode, [], [])
        assert len(model) == 0
        assert model.edges == ()
