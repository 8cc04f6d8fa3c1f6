"""SQLite-backed note store."""

import asyncio
import logging
import threading
from typing import Any, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from noteboard.exceptions import (
    ConnectivityError,
    ErrorCode,
    NoteNotFoundError,
    TransportError,
)
from noteboard.models.db_models import DBNote, get_session_factory, init_db
from noteboard.models.schema import (
    ChangeEvent,
    ChangeKind,
    Note,
    NoteColor,
    NoteDraft,
    ensure_timezone_aware,
    generate_id,
    utc_now,
)
from noteboard.storage.base import ChangeFeed, ChangeSubscription, NoteStore

logger = logging.getLogger(__name__)


def _to_note(row: DBNote) -> Note:
    return Note(
        id=row.id,
        text=row.text,
        author=row.author,
        x=row.x,
        y=row.y,
        rotation=row.rotation,
        color=NoteColor(row.color),
        created_at=ensure_timezone_aware(row.created_at),
    )


class SqlNoteStore(NoteStore):
    """Note store on SQLAlchemy.

    Sessions are synchronous and run in worker threads so the event loop
    only ever waits on them. SQLite has no notification mechanism, so the
    change feed is fed by this store's own successful writes; every board
    sharing the store instance sees every change.
    """

    def __init__(self, engine: Optional[Any] = None, db_url: Optional[str] = None):
        """Initialize the store.

        Args:
            engine: Pre-configured SQLAlchemy engine. When None, one is
                    created with init_db(db_url).
            db_url: Database URL, used only when engine is None.
        """
        self.engine = engine if engine is not None else init_db(db_url)
        self.session_factory = get_session_factory(self.engine)
        self.feed = ChangeFeed()
        # Serializes session work; the in-memory engine shares one connection
        self._lock = threading.Lock()

    async def probe(self) -> None:
        try:
            count = await asyncio.to_thread(self._count)
        except SQLAlchemyError as e:
            raise ConnectivityError(
                f"Database connection failed: {e}", original_error=e
            ) from e
        logger.info(f"Store reachable ({count} notes)")

    async def list_recent(self, limit: int) -> List[Note]:
        try:
            return await asyncio.to_thread(self._list_recent, limit)
        except SQLAlchemyError as e:
            raise TransportError(
                "Failed to load notes",
                operation="list_recent",
                code=ErrorCode.STORE_READ_FAILED,
                original_error=e,
            ) from e

    async def create(self, draft: NoteDraft) -> Note:
        try:
            note = await asyncio.to_thread(self._create, draft)
        except SQLAlchemyError as e:
            raise TransportError(
                "Failed to save note",
                operation="create",
                code=ErrorCode.STORE_CREATE_FAILED,
                original_error=e,
            ) from e
        self.feed.publish(ChangeEvent(ChangeKind.INSERT, note.id, note.to_record()))
        return note

    async def update_position(self, note_id: str, x: float, y: float) -> Note:
        try:
            note = await asyncio.to_thread(self._update_position, note_id, x, y)
        except SQLAlchemyError as e:
            raise TransportError(
                "Failed to save note position",
                operation="update_position",
                note_id=note_id,
                code=ErrorCode.STORE_UPDATE_FAILED,
                original_error=e,
            ) from e
        self.feed.publish(ChangeEvent(ChangeKind.UPDATE, note.id, note.to_record()))
        return note

    async def delete(self, note_id: str) -> None:
        try:
            existed = await asyncio.to_thread(self._delete, note_id)
        except SQLAlchemyError as e:
            raise TransportError(
                "Failed to delete note",
                operation="delete",
                note_id=note_id,
                code=ErrorCode.STORE_DELETE_FAILED,
                original_error=e,
            ) from e
        if existed:
            self.feed.publish(ChangeEvent(ChangeKind.DELETE, note_id, {"id": note_id}))

    async def subscribe(self) -> ChangeSubscription:
        return self.feed.subscribe()

    async def close(self) -> None:
        self.feed.close()
        self.engine.dispose()

    # Synchronous session work, run via asyncio.to_thread

    def _count(self) -> int:
        with self._lock, self.session_factory() as session:
            return session.scalar(select(func.count()).select_from(DBNote))

    def _list_recent(self, limit: int) -> List[Note]:
        with self._lock, self.session_factory() as session:
            rows = session.scalars(
                select(DBNote)
                .order_by(DBNote.created_at.desc(), DBNote.id.desc())
                .limit(limit)
            ).all()
            return [_to_note(row) for row in rows]

    def _create(self, draft: NoteDraft) -> Note:
        with self._lock, self.session_factory() as session:
            row = DBNote(
                id=generate_id(),
                text=draft.text,
                author=draft.author,
                x=draft.x,
                y=draft.y,
                rotation=draft.rotation,
                color=draft.color.value,
                created_at=utc_now(),
            )
            session.add(row)
            session.commit()
            logger.debug(f"Created note {row.id}")
            return _to_note(row)

    def _update_position(self, note_id: str, x: float, y: float) -> Note:
        with self._lock, self.session_factory() as session:
            row = session.get(DBNote, note_id)
            if row is None:
                raise NoteNotFoundError(note_id)
            row.x = x
            row.y = y
            session.commit()
            return _to_note(row)

    def _delete(self, note_id: str) -> bool:
        with self._lock, self.session_factory() as session:
            row = session.get(DBNote, note_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True
