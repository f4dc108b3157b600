"""In-memory note store with change notifications.

The graph only needs a snapshot of all notes and links plus a way to hear
about changes; this store provides both and assigns ids on insert.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from itertools import count
from typing import TYPE_CHECKING, Any

from synapse_graph.keywords import plan_auto_links
from synapse_graph.models import EdgeKind, Link, Note

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """All notes and links at one point in time."""

    notes: tuple[Note, ...] = ()
    links: tuple[Link, ...] = ()

    @property
    def empty(self) -> bool:
        return not self.notes


class NoteStore:
    """Holds notes and links and notifies listeners after every change."""

    def __init__(self, notes: Iterable[Note | Mapping[str, Any]] = (), links: Iterable[Link | Mapping[str, Any]] = ()) -> None:
        self._notes: dict[int, Note] = {}
        self._links: dict[int, Link] = {}
        self._note_ids = count(1)
        self._link_ids = count(1)
        self._listeners: list[Callable[[], None]] = []

        for note in notes:
            self._insert_note(note)
        for link in links:
            self._insert_link(link)

    @classmethod
    def demo(cls) -> NoteStore:
        """Store seeded with the demo notes shown when nothing is saved yet."""
        snapshot = demo_snapshot()
        return cls(snapshot.notes, snapshot.links)

    def snapshot(self) -> Snapshot:
        return Snapshot(notes=tuple(self._notes.values()), links=tuple(self._links.values()))

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Store listener failed")

    def _insert_note(self, data: Note | Mapping[str, Any]) -> Note:
        note = data if isinstance(data, Note) else Note.model_validate(data)
        if note.id is None:
            note_id = next(self._note_ids)
            while note_id in self._notes:
                note_id = next(self._note_ids)
            note = note.model_copy(update={"id": note_id})
        self._notes[note.id] = note
        return note

    def _insert_link(self, data: Link | Mapping[str, Any]) -> Link:
        link = data if isinstance(data, Link) else Link.model_validate(data)
        if link.id is None:
            link_id = next(self._link_ids)
            while link_id in self._links:
                link_id = next(self._link_ids)
            link = link.model_copy(update={"id": link_id})
        self._links[link.id] = link
        return link

    def get_note(self, note_id: int) -> Note | None:
        return self._notes.get(note_id)

    def add_note(self, data: Note | Mapping[str, Any]) -> Note:
        """Insert a note, assigning an id when it has none."""
        note = self._insert_note(data)
        self._notify()
        return note

    def update_note(self, note: Note) -> Note:
        """Replace a saved note and stamp its update time."""
        if note.id is None or note.id not in self._notes:
            raise KeyError(f"Unknown note id: {note.id}")
        note = note.model_copy(update={"updated_at": datetime.now()})
        self._notes[note.id] = note
        self._notify()
        return note

    def delete_note(self, note_id: int) -> None:
        """Delete a note together with every link touching it."""
        if self._notes.pop(note_id, None) is None:
            return
        self._links = {
            link_id: link for link_id, link in self._links.items()
            if note_id not in (link.source_id, link.target_id)
        }
        self._notify()

    def add_link(
        self,
        source_id: int,
        target_id: int,
        reason: str = "",
        kind: EdgeKind = EdgeKind.MANUAL,
    ) -> Link:
        link = self._insert_link(Link(
            source_id=source_id,
            target_id=target_id,
            reason=reason,
            type=kind,
            created_at=datetime.now(),
        ))
        self._notify()
        return link

    def delete_link(self, link_id: int) -> None:
        if self._links.pop(link_id, None) is not None:
            self._notify()

    def link_between(self, left: int, right: int) -> Link | None:
        for link in self._links.values():
            if {link.source_id, link.target_id} == {left, right}:
                return link
        return None

    def update_auto_links(self, note_id: int, threshold: float | None = None) -> tuple[int, int]:
        """Re-evaluate the auto links of a note against every other note.

        Returns:
            (links added, links removed)
        """
        note = self._notes.get(note_id)
        if note is None:
            return 0, 0

        others = [other for other in self._notes.values() if other.id != note_id]
        linked: dict[int, bool] = {}
        for other in others:
            existing = self.link_between(note_id, other.id)
            if existing is not None:
                linked[other.id] = existing.type == EdgeKind.AUTO

        kwargs = {} if threshold is None else {"threshold": threshold}
        plan = plan_auto_links(note, others, linked, **kwargs)

        for other_id, reason, _ in plan.add:
            self._insert_link(Link(
                source_id=note_id,
                target_id=other_id,
                reason=reason,
                type=EdgeKind.AUTO,
                created_at=datetime.now(),
            ))
        for other_id in plan.remove:
            existing = self.link_between(note_id, other_id)
            if existing is not None:
                del self._links[existing.id]

        if plan.add or plan.remove:
            logger.debug(
                "Auto links for note %d: +%d -%d", note_id, len(plan.add), len(plan.remove),
            )
            self._notify()
        return len(plan.add), len(plan.remove)

    def __len__(self) -> int:
        return len(self._notes)

    def __repr__(self) -> str:
        return f"NoteStore(notes={len(self._notes)}, links={len(self._links)})"


def demo_snapshot() -> Snapshot:
    """Five notes and three manual links used as placeholder content."""
    now = datetime.now()
    notes = (
        Note(
            id=1, kind="paper", url="https://example.com/llm-review",
            title="LLM Review", summary="A review of Large Language Models.",
            attributes={"Authors": ["Jane Doe", "Chris Lin"], "Year": "2023", "Tags": ["LLM", "Survey"]},
            created_at=now, updated_at=now,
        ),
        Note(
            id=2, kind="concept", url="",
            title="Transformer", summary="The core architecture of modern LLMs.",
            attributes={"Introduced": "2017", "Inventors": ["Vaswani", "Shazeer"], "Tags": ["Architecture"]},
            created_at=now, updated_at=now,
        ),
        Note(
            id=3, kind="paper", url="https://example.com/attention",
            title="Attention Is All You Need", summary="The original paper introducing the Transformer.",
            attributes={"Authors": ["Vaswani", "Shazeer"], "Year": "2017", "Tags": ["Transformer"]},
            created_at=now, updated_at=now,
        ),
        Note(
            id=4, kind="tool", url="https://tensorflow.org",
            title="TensorFlow", summary="An open-source machine learning framework.",
            attributes={"Maintainer": "Google", "Tags": ["Framework", "Open Source"]},
            created_at=now, updated_at=now,
        ),
        Note(
            id=5, kind="concept", url="",
            title="Deep Learning", summary="A subfield of machine learning.",
            attributes={"Tags": ["Machine Learning"], "Introduced": "1980s"},
            created_at=now, updated_at=now,
        ),
    )
    links = (
        Link(id=1, source_id=1, target_id=3, reason="Cites", type=EdgeKind.MANUAL, created_at=now),
        Link(id=2, source_id=1, target_id=2, reason="Explains", type=EdgeKind.MANUAL, created_at=now),
        Link(id=3, source_id=3, target_id=2, reason="Introduces", type=EdgeKind.MANUAL, created_at=now),
    )
    return Snapshot(notes=notes, links=links)
