"""Similarity-based clustering of notes.

Notes are adjacent when the Jaccard similarity of their keyword sets reaches
a fixed threshold; every connected component of that similarity graph is one
cluster. Pairwise comparison is O(n^2), which is fine for the few hundred
notes an interactive graph shows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import combinations
from typing import TYPE_CHECKING

import networkx as nx

from synapse_graph.keywords import KeywordExtractor, jaccard_similarity

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from synapse_graph.models import Note

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.22
TOP_KEYWORDS = 4


@dataclass
class Cluster:
    """A group of notes with its most frequent keywords."""

    notes: list[Note]
    keywords: list[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.notes)


@dataclass
class Partition:
    """Result of clustering: disjoint groups plus the keywords of every note."""

    clusters: list[Cluster] = field(default_factory=list)
    keywords: dict[int, tuple[str, ...]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.clusters)

    def __iter__(self) -> Iterator[Cluster]:
        return iter(self.clusters)


def top_keywords(
    notes: Sequence[Note],
    keywords: dict[int, tuple[str, ...]],
    limit: int = TOP_KEYWORDS,
) -> list[str]:
    """Most frequent keywords across notes, ties broken by first-seen order."""
    counts: dict[str, int] = {}
    for note in notes:
        for word in keywords.get(note.id, ()):
            counts[word] = counts.get(word, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [word for word, _ in ranked[:limit]]


class ClusteringEngine:
    """Partitions notes into keyword-similarity clusters.

    Builds an undirected networkx graph over note ids, inserted in note
    order, with an edge for every pair at or above the threshold, then
    walks it breadth-first from each unvisited note in iteration order.
    """

    def __init__(
        self,
        threshold: float = SIMILARITY_THRESHOLD,
        extractor: KeywordExtractor | None = None,
        keyword_limit: int = TOP_KEYWORDS,
    ) -> None:
        """Initialize the clustering engine.

        Args:
            threshold: Minimum Jaccard similarity for two notes to be adjacent
            extractor: Keyword extractor used for every note
            keyword_limit: Number of keywords kept per cluster
        """
        self.threshold = threshold
        self.extractor = extractor or KeywordExtractor()
        self.keyword_limit = keyword_limit

    def similarity_graph(self, notes: Sequence[Note], keywords: dict[int, tuple[str, ...]]) -> nx.Graph:
        """Build the similarity graph over saved notes."""
        graph = nx.Graph()
        saved = [note for note in notes if note.id is not None]
        graph.add_nodes_from(note.id for note in saved)

        for left, right in combinations(saved, 2):
            similarity = jaccard_similarity(keywords[left.id], keywords[right.id])
            if similarity >= self.threshold:
                graph.add_edge(left.id, right.id, weight=similarity)

        return graph

    def partition(self, notes: Sequence[Note]) -> Partition:
        """Group notes into connected components of the similarity graph.

        Notes without an id are ignored. Members of each cluster are listed
        in breadth-first discovery order.

        Args:
            notes: Notes to cluster

        Returns:
            Partition whose clusters are pairwise disjoint and cover every saved note
        """
        saved = [note for note in notes if note.id is not None]
        by_id: dict[int, Note] = {}
        for note in saved:
            by_id.setdefault(note.id, note)
        keywords = {note_id: self.extractor.for_note(note) for note_id, note in by_id.items()}

        graph = self.similarity_graph(list(by_id.values()), keywords)
        clusters: list[Cluster] = []
        visited: set[int] = set()

        for note_id in by_id:
            if note_id in visited:
                continue
            component = [note_id] + [child for _, child in nx.bfs_edges(graph, note_id)]
            visited.update(component)
            members = [by_id[member] for member in component]
            clusters.append(Cluster(notes=members, keywords=top_keywords(members, keywords, self.keyword_limit)))

        logger.debug(
            "Clustered %d notes into %d groups (%d similarity edges)",
            len(by_id), len(clusters), graph.number_of_edges(),
        )
        return Partition(clusters=clusters, keywords=keywords)

    def __repr__(self) -> str:
        return f"ClusteringEngine(threshold={self.threshold}, keywords={self.keyword_limit})"
