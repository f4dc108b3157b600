"""View builders: pure functions from notes and links to a GraphModel.

Each view mode has its own builder. All of them skip notes without an id,
never emit duplicate node ids, and drop edges whose endpoints are missing.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from synapse_graph.clustering import Cluster, ClusteringEngine
from synapse_graph.keywords import KeywordExtractor, jaccard_similarity
from synapse_graph.models import (
    EdgeKind,
    GraphEdge,
    GraphModel,
    GraphNode,
    NodeKind,
    ValueAssociation,
    ViewMode,
    note_node_id,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from synapse_graph.models import Link, Note

logger = logging.getLogger(__name__)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten_attributes(attributes: Mapping[str, Any] | None) -> list[tuple[str, str]]:
    """Expand an attribute map into (key, value) pairs.

    List values produce one pair per non-blank string item, strings are
    trimmed and skipped when blank, other scalars are stringified. Nested
    mappings and None are ignored.
    """
    pairs: list[tuple[str, str]] = []
    for key, raw in (attributes or {}).items():
        if isinstance(raw, (list, tuple)):
            for item in raw:
                if isinstance(item, str) and item.strip():
                    pairs.append((key, item.strip()))
        elif isinstance(raw, str):
            if raw.strip():
                pairs.append((key, raw.strip()))
        elif raw is not None and not isinstance(raw, dict):
            pairs.append((key, _stringify(raw)))
    return pairs


def _saved_notes(notes: Sequence[Note]) -> list[Note]:
    """Notes with an id, first occurrence of each id only."""
    seen: set[int] = set()
    saved = []
    for note in notes:
        if note.id is None or note.id in seen:
            continue
        seen.add(note.id)
        saved.append(note)
    return saved


def _note_node(note: Note, **extra: Any) -> GraphNode:
    return GraphNode(
        id=note_node_id(note.id),
        label=note.display_title,
        kind=NodeKind.NOTE,
        note=note,
        **extra,
    )


def finalize(mode: ViewMode, nodes: list[GraphNode], edges: list[GraphEdge]) -> GraphModel:
    """Freeze a build, dropping dangling and duplicate edges.

    Args:
        mode: View mode the graph was built for
        nodes: Nodes with unique ids
        edges: Candidate edges

    Returns:
        Immutable graph model
    """
    node_ids = {node.id for node in nodes}
    kept: list[GraphEdge] = []
    edge_ids: set[str] = set()
    dangling = 0

    for edge in edges:
        if edge.source not in node_ids or edge.target not in node_ids:
            dangling += 1
            continue
        if edge.id in edge_ids:
            continue
        edge_ids.add(edge.id)
        kept.append(edge)

    if dangling:
        logger.debug("Dropped %d dangling edges from %s view", dangling, mode.value)

    return GraphModel(mode=mode, nodes=tuple(nodes), edges=tuple(kept))


def build_value_view(notes: Sequence[Note]) -> GraphModel:
    """Bipartite graph of notes and their attribute values.

    Values are deduplicated by (key, lower-cased value); every note carrying
    a value adds an association to it and a structured edge labeled with the key.
    """
    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []
    value_nodes: dict[tuple[str, str], GraphNode] = {}

    for note in _saved_notes(notes):
        note_node = _note_node(note, key="title", value_sample=note.title)
        nodes.append(note_node)

        for key, value in flatten_attributes(note.attributes):
            map_key = (key, value.lower())
            value_node = value_nodes.get(map_key)
            if value_node is None:
                value_node = GraphNode(
                    id=f"value:{len(value_nodes) + 1}",
                    label=value,
                    kind=NodeKind.VALUE,
                    key=key,
                    value_sample=value,
                )
                value_nodes[map_key] = value_node

            value_node.associations.append(
                ValueAssociation(note_id=note.id, note_title=note.display_title, key=key)
            )
            edges.append(GraphEdge(
                id=f"structured:{note.id}:{value_node.id}:{key}",
                source=note_node.id,
                target=value_node.id,
                kind=EdgeKind.STRUCTURED,
                label=key,
                key=key,
                value=value,
            ))

    nodes.extend(value_nodes.values())
    return finalize(ViewMode.VALUE, nodes, edges)


def build_note_view(
    notes: Sequence[Note],
    links: Sequence[Link],
    extractor: KeywordExtractor | None = None,
) -> GraphModel:
    """Relation graph of notes.

    Stored links become edges typed by their provenance. Every pair of notes
    sharing an identical (key, value) attribute gets one inferred structured
    edge per shared pair.
    """
    saved = _saved_notes(notes)
    by_id = {note.id: note for note in saved}
    nodes = [_note_node(note) for note in saved]
    edges: list[GraphEdge] = []
    extractor = extractor or KeywordExtractor()

    for link in links:
        source = note_node_id(link.source_id)
        target = note_node_id(link.target_id)
        kind = link.type or EdgeKind.MANUAL
        similarity = None
        if kind == EdgeKind.AUTO and link.source_id in by_id and link.target_id in by_id:
            similarity = jaccard_similarity(
                extractor.for_note(by_id[link.source_id]),
                extractor.for_note(by_id[link.target_id]),
            )
        edges.append(GraphEdge(
            id=f"db:{link.id}" if link.id is not None else f"db:{source}->{target}",
            source=source,
            target=target,
            kind=kind,
            label=link.reason,
            similarity=similarity,
        ))

    buckets: dict[tuple[str, str], tuple[str, list[Note]]] = {}
    for note in saved:
        for key, value in flatten_attributes(note.attributes):
            _, bucket = buckets.setdefault((key, value.lower()), (value, []))
            bucket.append(note)

    seen: set[tuple[int, int, str, str]] = set()
    for (key, _), (value, members) in buckets.items():
        for i, left in enumerate(members):
            for right in members[i + 1:]:
                if left.id == right.id:
                    continue
                low, high = sorted((left.id, right.id))
                pair_key = (low, high, key, value)
                if pair_key in seen:
                    continue
                seen.add(pair_key)
                edges.append(GraphEdge(
                    id=f"shared:{low}|{high}|{key}|{value}",
                    source=note_node_id(left.id),
                    target=note_node_id(right.id),
                    kind=EdgeKind.STRUCTURED,
                    label=f"{key}: {value}",
                    key=key,
                    value=value,
                ))

    return finalize(ViewMode.NOTE, nodes, edges)


def build_cluster_view(notes: Sequence[Note], engine: ClusteringEngine | None = None) -> GraphModel:
    """Notes attached to keyword-similarity cluster nodes.

    Every note gets exactly one cluster parent. When clustering yields no
    groups each note becomes its own singleton cluster.
    """
    engine = engine or ClusteringEngine()
    saved = _saved_notes(notes)
    partition = engine.partition(saved)
    clusters = list(partition.clusters) or _singleton_clusters(saved, engine)

    nodes = [_note_node(note) for note in saved]
    edges: list[GraphEdge] = []

    for index, cluster in enumerate(clusters):
        cluster_id = f"cluster:{index}"
        nodes.append(GraphNode(
            id=cluster_id,
            label=", ".join(cluster.keywords) if cluster.keywords else f"Cluster {index + 1}",
            kind=NodeKind.CLUSTER,
            cluster_size=cluster.size,
            keywords=list(cluster.keywords),
        ))
        for note in cluster.notes:
            edges.append(GraphEdge(
                id=f"cluster:{cluster_id}:{note.id}",
                source=cluster_id,
                target=note_node_id(note.id),
                kind=EdgeKind.CLUSTER,
                label="member",
            ))

    return finalize(ViewMode.CLUSTER, nodes, edges)


def _singleton_clusters(notes: Sequence[Note], engine: ClusteringEngine) -> list[Cluster]:
    return [
        Cluster(notes=[note], keywords=list(engine.extractor.for_note(note))[: engine.keyword_limit])
        for note in notes
    ]


def build_graph(
    mode: ViewMode | str,
    notes: Sequence[Note],
    links: Sequence[Link],
    engine: ClusteringEngine | None = None,
) -> GraphModel:
    """Build the graph for a view mode.

    Unknown mode strings fall back to the note view.

    Args:
        mode: View mode or its string value
        notes: Current notes
        links: Current links
        engine: Clustering engine for the cluster view

    Returns:
        The built graph model
    """
    try:
        mode = ViewMode(mode)
    except ValueError:
        logger.warning("Unknown view mode %r, using note view", mode)
        mode = ViewMode.NOTE

    if mode == ViewMode.VALUE:
        model = build_value_view(notes)
    elif mode == ViewMode.CLUSTER:
        model = build_cluster_view(notes, engine)
    else:
        model = build_note_view(notes, links, engine.extractor if engine else None)

    logger.debug("Built %r", model)
    return model
