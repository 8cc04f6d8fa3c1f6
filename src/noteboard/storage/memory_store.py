"""Dict-backed note store for demos, tests and single-process boards."""

import logging
from typing import Dict, Iterable, List, Optional

from noteboard.exceptions import ConnectivityError, NoteNotFoundError
from noteboard.models.schema import (
    ChangeEvent,
    ChangeKind,
    Note,
    NoteDraft,
    generate_id,
    utc_now,
)
from noteboard.storage.base import ChangeFeed, ChangeSubscription, NoteStore

logger = logging.getLogger(__name__)


class InMemoryNoteStore(NoteStore):
    """Note store held in a dict, with the same feed semantics as SqlNoteStore.

    ``reachable`` can be switched off to simulate an outage: every call then
    raises ``ConnectivityError``. ``publish`` applies a change as if another
    client had made it and announces it on the feed.
    """

    def __init__(self, notes: Optional[Iterable[Note]] = None, reachable: bool = True):
        self.notes: Dict[str, Note] = {n.id: n for n in notes or []}
        self.feed = ChangeFeed()
        self.reachable = reachable

    def _check_reachable(self) -> None:
        if not self.reachable:
            raise ConnectivityError("Database connection failed: store unreachable")

    def publish(self, kind: ChangeKind, note: Note) -> None:
        """Apply and announce a change made by someone else."""
        if kind is ChangeKind.DELETE:
            self.notes.pop(note.id, None)
        else:
            self.notes[note.id] = note
        self.feed.publish(ChangeEvent(kind, note.id, note.to_record()))

    async def probe(self) -> None:
        self._check_reachable()

    async def list_recent(self, limit: int) -> List[Note]:
        self._check_reachable()
        ordered = sorted(
            self.notes.values(), key=lambda n: (n.created_at, n.id), reverse=True
        )
        return ordered[:limit]

    async def create(self, draft: NoteDraft) -> Note:
        self._check_reachable()
        note = Note(id=generate_id(), created_at=utc_now(), **draft.model_dump())
        self.notes[note.id] = note
        logger.debug(f"Created note {note.id}")
        self.feed.publish(ChangeEvent(ChangeKind.INSERT, note.id, note.to_record()))
        return note

    async def update_position(self, note_id: str, x: float, y: float) -> Note:
        self._check_reachable()
        if note_id not in self.notes:
            raise NoteNotFoundError(note_id)
        note = self.notes[note_id].with_position(x, y)
        self.notes[note_id] = note
        self.feed.publish(ChangeEvent(ChangeKind.UPDATE, note.id, note.to_record()))
        return note

    async def delete(self, note_id: str) -> None:
        self._check_reachable()
        if self.notes.pop(note_id, None) is not None:
            self.feed.publish(ChangeEvent(ChangeKind.DELETE, note_id, {"id": note_id}))

    async def subscribe(self) -> ChangeSubscription:
        self._check_reachable()
        return self.feed.subscribe()

    async def close(self) -> None:
        self.feed.close()
