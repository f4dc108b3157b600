"""Colours and sizes for graph nodes and edges."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from synapse_graph.models import EdgeKind, NodeKind, ViewMode

if TYPE_CHECKING:
    from collections.abc import Mapping

    from synapse_graph.models import GraphEdge, GraphModel, GraphNode


NODE_COLORS: Mapping[NodeKind, str] = {
    NodeKind.NOTE: "#7f9cf5",
    NodeKind.VALUE: "#f6ad55",
    NodeKind.CLUSTER: "#68d391",
}

BASE_NODE_RADIUS: Mapping[NodeKind, float] = {
    NodeKind.NOTE: 18.0,
    NodeKind.VALUE: 12.0,
    NodeKind.CLUSTER: 24.0,
}

# Value nodes are smaller in the value view where they are plentiful
VALUE_VIEW_VALUE_RADIUS = 6.0

EDGE_COLORS: Mapping[EdgeKind, str] = {
    EdgeKind.MANUAL: "#805ad5",
    EdgeKind.AUTO: "#63b3ed",
    EdgeKind.STRUCTURED: "#a0aec0",
    EdgeKind.CLUSTER: "#48bb78",
}

EDGE_WIDTHS: Mapping[EdgeKind, float] = {
    EdgeKind.MANUAL: 2.4,
    EdgeKind.AUTO: 1.8,
    EdgeKind.STRUCTURED: 1.2,
    EdgeKind.CLUSTER: 2.0,
}

NODE_OUTLINE = "#ffffff"
NODE_LABEL_COLOR = "#1a202c"
EDGE_LABEL_BACKGROUND = "rgba(255,255,255,0.85)"


class GraphStyle:
    """Per-model styling: node fill and radius, edge colour and width.

    Radius depends on incident-edge counts, so a style is bound to one model.
    """

    def __init__(self, model: GraphModel) -> None:
        self.mode = model.mode
        self.degrees = model.degree_counts()

    def node_fill(self, node: GraphNode) -> str:
        return NODE_COLORS[node.kind]

    def node_radius(self, node: GraphNode) -> float:
        """Base radius of the node's kind plus a size heuristic.

        - Value: log of association count
        - Note: log of incident-edge count
        - Cluster: square root of member count
        """
        degree = self.degrees.get(node.id, 0)

        if node.kind == NodeKind.VALUE:
            base = VALUE_VIEW_VALUE_RADIUS if self.mode == ViewMode.VALUE else BASE_NODE_RADIUS[NodeKind.VALUE]
            return base + min(6.0, math.log2(len(node.associations) + 1) * 2.2)
        if node.kind == NodeKind.NOTE:
            return BASE_NODE_RADIUS[NodeKind.NOTE] + min(12.0, math.log2(degree + 1) * 4)
        if node.kind == NodeKind.CLUSTER:
            size = node.cluster_size if node.cluster_size is not None else degree
            return BASE_NODE_RADIUS[NodeKind.CLUSTER] + min(18.0, math.sqrt(size) * 3.2)
        raise ValueError(f"Unhandled node kind: {node.kind!r}")

    @staticmethod
    def edge_color(edge: GraphEdge) -> str:
        return EDGE_COLORS[edge.kind]

    @staticmethod
    def edge_width(edge: GraphEdge) -> float:
        """Base width of the edge type, widened by type-specific detail."""
        base = EDGE_WIDTHS[edge.kind]

        if edge.kind == EdgeKind.STRUCTURED:
            detail = len(edge.value or "") + (4 if edge.key else 0)
            return min(base + math.log1p(detail) * 0.25, base + 1.2)
        if edge.kind == EdgeKind.AUTO:
            return min(base + (edge.similarity or 0.0) * 3, base + 1.5)
        if edge.kind == EdgeKind.CLUSTER:
            return base + 0.6
        return base
