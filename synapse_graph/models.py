"""Data model for the graph views.

Notes and Links are the externally owned records read from the store.
GraphNode, GraphEdge and GraphModel are derived per view and rebuilt
wholesale whenever the store changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ViewMode(str, Enum):
    """Alternate ways of turning notes and links into a graph.

    - Value: attribute values become nodes, edges carry the attribute key
    - Note: notes linked by stored links and shared attribute values
    - Cluster: notes grouped by keyword overlap
    """

    VALUE = "value"
    NOTE = "note"
    CLUSTER = "cluster"

    @property
    def label(self) -> str:
        return _VIEW_LABELS[self][0]

    @property
    def hint(self) -> str:
        return _VIEW_LABELS[self][1]


_VIEW_LABELS: dict[ViewMode, tuple[str, str]] = {
    ViewMode.VALUE: ("Value Map", "Structured values become nodes; links show the field key"),
    ViewMode.NOTE: ("Note Graph", "All notes with edges from manual links and shared metadata"),
    ViewMode.CLUSTER: ("AI Cluster", "Notes grouped by keyword overlap into semantic clusters"),
}


class NodeKind(str, Enum):
    """Closed set of graph node kinds."""

    NOTE = "note"
    VALUE = "value"
    CLUSTER = "cluster"


class EdgeKind(str, Enum):
    """Closed set of graph edge types."""

    MANUAL = "manual"
    AUTO = "auto"
    STRUCTURED = "structured"
    CLUSTER = "cluster"


class ChatMessage(BaseModel):
    """One turn of a note's chat history."""

    sender: str
    text: str


class Note(BaseModel):
    """Knowledge record captured from a web page.

    The id is assigned by the store and is None for unsaved records.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int | None = None
    kind: str = Field(default="article", alias="type")
    url: str = ""
    title: str = ""
    summary: str = ""
    attributes: dict[str, Any] = Field(default_factory=dict, alias="structuredData")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
    chat_history: list[ChatMessage] = Field(default_factory=list, alias="chatHistory")

    @property
    def display_title(self) -> str:
        return self.title or "Untitled"


class Link(BaseModel):
    """Directed relation between two notes."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int | None = None
    source_id: int = Field(alias="sourceId")
    target_id: int = Field(alias="targetId")
    reason: str = ""
    created_at: datetime | None = Field(default=None, alias="createdAt")
    type: EdgeKind | None = None


@dataclass(frozen=True)
class ValueAssociation:
    """A note that carries a given attribute value."""

    note_id: int
    note_title: str
    key: str


@dataclass
class GraphNode:
    """A node of a built graph view.

    Attributes:
        id: Namespaced id (``note:<id>``, ``value:<n>``, ``cluster:<i>``)
        label: Text drawn under the node
        kind: Node kind, drives styling and click semantics
        note: Source note for note nodes
        key: Owning attribute key (value nodes), ``"title"`` for note nodes
            in the value view
        value_sample: First-seen spelling of the value (value nodes)
        associations: Notes carrying this value (value nodes)
        cluster_size: Member count (cluster nodes)
        keywords: Top keywords (cluster nodes)
    """

    id: str
    label: str
    kind: NodeKind
    note: Note | None = None
    key: str | None = None
    value_sample: str | None = None
    associations: list[ValueAssociation] = field(default_factory=list)
    cluster_size: int | None = None
    keywords: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class GraphEdge:
    """An edge of a built graph view."""

    id: str
    source: str
    target: str
    kind: EdgeKind = EdgeKind.MANUAL
    label: str | None = None
    key: str | None = None
    value: str | None = None
    similarity: float | None = None


@dataclass(frozen=True)
class GraphModel:
    """Immutable result of one graph build.

    Node ids are unique and every edge endpoint exists in ``nodes``.
    """

    mode: ViewMode
    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()

    def node_ids(self) -> set[str]:
        return {node.id for node in self.nodes}

    def edge_ids(self) -> set[str]:
        return {edge.id for edge in self.edges}

    def get_node(self, node_id: str) -> GraphNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def degree_counts(self) -> dict[str, int]:
        """Count incident edges per node id."""
        counts: dict[str, int] = {}
        for edge in self.edges:
            counts[edge.source] = counts.get(edge.source, 0) + 1
            counts[edge.target] = counts.get(edge.target, 0) + 1
        return counts

    def neighbor_index(self) -> dict[str, set[str]]:
        """Map every node id to the ids of its direct neighbors."""
        index: dict[str, set[str]] = {node.id: set() for node in self.nodes}
        for edge in self.edges:
            index[edge.source].add(edge.target)
            index[edge.target].add(edge.source)
        return index

    def __len__(self) -> int:
        return len(self.nodes)

    def __repr__(self) -> str:
        return f"GraphModel(mode={self.mode.value}, nodes={len(self.nodes)}, edges={len(self.edges)})"


def note_node_id(note_id: int) -> str:
    return f"note:{note_id}"
