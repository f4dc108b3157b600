"""Keyword extraction and keyword-overlap similarity.

Keywords are derived from a note's summary and its string attribute values
and are only used to compare notes with each other.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from synapse_graph.models import Note

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

STOP_WORDS = frozenset({
    "the", "a", "an", "in", "is", "of", "and", "to", "for", "from", "on", "with", "as", "by",
})

MIN_KEYWORD_LENGTH = 4

# Threshold used when re-evaluating persisted auto links
AUTO_LINK_THRESHOLD = 0.2

_PUNCTUATION = re.compile(r"[^\w\s]")


class KeywordExtractor:
    """Derives a normalized keyword set from free text and attributes.

    Words are lower-cased, punctuation is replaced by whitespace, and
    words shorter than ``min_length`` or listed in ``stop_words`` are dropped.
    The result keeps first-seen order so callers can break ties stably.
    """

    def __init__(
        self,
        stop_words: Iterable[str] = STOP_WORDS,
        min_length: int = MIN_KEYWORD_LENGTH,
    ) -> None:
        self.stop_words = frozenset(stop_words)
        self.min_length = min_length

    def tokenize(self, text: str) -> list[str]:
        """Split text into normalized keyword candidates."""
        if not text:
            return []
        words = _PUNCTUATION.sub(" ", text.lower()).split()
        return [
            word for word in words
            if len(word) >= self.min_length and word not in self.stop_words
        ]

    def extract(self, text: str, attributes: Mapping[str, Any] | None = None) -> tuple[str, ...]:
        """Extract unique keywords from text and attribute values.

        Only string values and string items of list values contribute;
        other scalars are ignored.

        Args:
            text: Summary text
            attributes: Attribute map of the note

        Returns:
            Unique keywords in first-seen order
        """
        seen: dict[str, None] = {}
        for word in self.tokenize(text):
            seen.setdefault(word, None)

        for value in (attributes or {}).values():
            if isinstance(value, str):
                items = [value]
            elif isinstance(value, (list, tuple)):
                items = [item for item in value if isinstance(item, str)]
            else:
                continue
            for item in items:
                for word in self.tokenize(item):
                    seen.setdefault(word, None)

        return tuple(seen)

    def for_note(self, note: Note) -> tuple[str, ...]:
        return self.extract(note.summary, note.attributes)

    def __repr__(self) -> str:
        return f"KeywordExtractor(min_length={self.min_length}, stop_words={len(self.stop_words)})"


_default_extractor = KeywordExtractor()


def extract_keywords(text: str, attributes: Mapping[str, Any] | None = None) -> tuple[str, ...]:
    """Extract keywords with the default extractor."""
    return _default_extractor.extract(text, attributes)


def jaccard_similarity(left: Iterable[str], right: Iterable[str]) -> float:
    """Jaccard similarity of two keyword collections, 0.0 when both are empty."""
    left_set = set(left)
    right_set = set(right)
    union = left_set | right_set
    if not union:
        return 0.0
    return len(left_set & right_set) / len(union)


def common_keywords(left: Sequence[str], right: Iterable[str], limit: int = 3) -> list[str]:
    """First ``limit`` keywords of ``left`` that also appear in ``right``."""
    right_set = set(right)
    return [word for word in left if word in right_set][:limit]


@dataclass(frozen=True)
class AutoLinkPlan:
    """Changes needed to bring a note's auto links up to date.

    Attributes:
        add: (other note id, reason, similarity) for links to create
        remove: Ids of other notes whose auto link should be deleted
    """

    add: tuple[tuple[int, str, float], ...] = ()
    remove: tuple[int, ...] = ()


def plan_auto_links(
    note: Note,
    others: Sequence[Note],
    linked: Mapping[int, bool],
    threshold: float = AUTO_LINK_THRESHOLD,
    extractor: KeywordExtractor | None = None,
) -> AutoLinkPlan:
    """Decide which auto links a note should gain or lose.

    A link is proposed when similarity is strictly above ``threshold`` and
    the notes share at least one keyword. An existing link is only removed
    when it was auto-generated and similarity dropped to the threshold or below.

    Args:
        note: Note whose links are re-evaluated
        others: Every other note in the store
        linked: Other note id -> True if the existing link between the pair
            is an auto link, False if it is manual. Unlinked ids are absent.
        threshold: Similarity threshold
        extractor: Keyword extractor (default extractor if None)

    Returns:
        The plan of links to add and remove
    """
    extractor = extractor or _default_extractor
    current = extractor.for_note(note)
    add: list[tuple[int, str, float]] = []
    remove: list[int] = []

    for other in others:
        if other.id is None or other.id == note.id:
            continue
        other_keywords = extractor.for_note(other)
        similarity = jaccard_similarity(current, other_keywords)

        if similarity > threshold:
            if other.id in linked:
                continue
            shared = common_keywords(current, other_keywords)
            if shared:
                add.append((other.id, f"Related topics: {', '.join(shared)}", similarity))
        elif linked.get(other.id):
            remove.append(other.id)

    return AutoLinkPlan(add=tuple(add), remove=tuple(remove))
