"""Reconciliation of local optimistic edits with the store's change feed.

The layer owns the canonical, newest-first note list. Local edits are
applied immediately; remote changes arrive on the change feed in no
particular order relative to our own requests. The one rule that keeps
the two from fighting: while a move for a note is in flight (the note is
in ``pending``), remote updates for that note are taken to be the echo of
that move and are dropped.

Everything here runs on one event loop. The only suspension points are
store calls, so no locking is needed around the note list or registry.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional, Set

from pydantic import ValidationError as PydanticValidationError

from noteboard.config import NoteboardConfig, config
from noteboard.exceptions import (
    ConnectivityError,
    NoteboardError,
    NoteNotFoundError,
    TransportError,
)
from noteboard.layout.placement import PlacementAlgorithm
from noteboard.layout.reflow import LayoutReflow
from noteboard.layout.registry import PositionRegistry
from noteboard.models.schema import (
    CanvasDimensions,
    ChangeEvent,
    ChangeKind,
    ConnectionState,
    Note,
)
from noteboard.moderation import Moderator, WordListModerator
from noteboard.observability import metrics, timed_operation
from noteboard.storage.base import ChangeSubscription, NoteStore
from noteboard.sync.notices import NoticeBoard
from noteboard.sync.submission import SubmissionGate

logger = logging.getLogger(__name__)

ChangeListener = Callable[[List[Note]], None]
ErrorListener = Callable[[str], None]
CommitListener = Callable[[str], None]
StateListener = Callable[[ConnectionState], None]


class ReconciliationLayer:
    """Canonical note set plus the rules for changing it."""

    def __init__(
        self,
        store: NoteStore,
        registry: PositionRegistry,
        placement: PlacementAlgorithm,
        reflow: LayoutReflow,
        canvas: CanvasDimensions,
        moderator: Optional[Moderator] = None,
        clock: Callable[[], float] = time.monotonic,
        settings: Optional[NoteboardConfig] = None,
    ):
        """Initialize the layer.

        Args:
            store: Persistent store and change-feed source.
            registry: Registry kept consistent with the note set.
            placement: Used to position new notes.
            reflow: Consulted on canvas resizes.
            canvas: Shared canvas dimensions.
            moderator: Content predicate; defaults to the word list.
            clock: Monotonic seconds, for the cooldown and notices.
            settings: Limits and timings; defaults to the global config.
        """
        self.store = store
        self.registry = registry
        self.placement = placement
        self.reflow = reflow
        self.canvas = canvas
        self.clock = clock
        self.settings = settings or config
        self.moderator = moderator or WordListModerator()
        self.gate = SubmissionGate(
            moderator=self.moderator,
            cooldown_seconds=self.settings.submission_cooldown_seconds,
            max_text_length=self.settings.max_text_length,
            min_text_length=self.settings.min_text_length,
            max_author_length=self.settings.max_author_length,
            min_author_length=self.settings.min_author_length,
        )
        self.notices = NoticeBoard(clock=clock, ttl=self.settings.notice_ttl_seconds)
        self.max_notes = self.settings.max_notes

        self.pending: Set[str] = set()
        self.connection_state = ConnectionState.CONNECTING
        self._notes: List[Note] = []
        self._subscription: Optional[ChangeSubscription] = None
        self._feed_task: Optional[asyncio.Task] = None

        self._change_listeners: List[ChangeListener] = []
        self._error_listeners: List[ErrorListener] = []
        self._commit_listeners: List[CommitListener] = []
        self._state_listeners: List[StateListener] = []

    # =========================================================================
    # UI-facing surface
    # =========================================================================

    @property
    def notes(self) -> List[Note]:
        """Canonical notes, newest first."""
        return list(self._notes)

    @property
    def connected(self) -> bool:
        return self.connection_state is ConnectionState.CONNECTED

    def get(self, note_id: str) -> Optional[Note]:
        for note in self._notes:
            if note.id == note_id:
                return note
        return None

    def on_change(self, listener: ChangeListener) -> None:
        self._change_listeners.append(listener)

    def on_error(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    def on_commit(self, listener: CommitListener) -> None:
        self._commit_listeners.append(listener)

    def on_state(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Probe the store, subscribe to its feed, load, then consume the feed.

        The subscription is opened before the initial load so nothing
        published while loading is missed; replayed inserts are
        de-duplicated by id.
        """
        await self.connect()
        if not self.connected:
            return
        try:
            self._subscription = await self.store.subscribe()
        except NoteboardError as e:
            self._disconnect(e)
            return
        await self.load()
        self._feed_task = asyncio.create_task(self._consume(self._subscription))

    async def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        if self._feed_task is not None:
            await self._feed_task
            self._feed_task = None

    async def connect(self) -> ConnectionState:
        self._set_state(ConnectionState.CONNECTING)
        try:
            await self.store.probe()
        except NoteboardError as e:
            self._disconnect(e)
        else:
            self._set_state(ConnectionState.CONNECTED)
            logger.info("Connected to note store")
        return self.connection_state

    async def load(self) -> None:
        """Install the most recent notes as-is and index their positions."""
        if not self.connected:
            return
        try:
            with timed_operation("load_notes") as op:
                notes = await self.store.list_recent(self.max_notes)
                op["count"] = len(notes)
        except NoteboardError as e:
            logger.error(f"Error loading notes: {e}")
            self._report_error(f"Failed to load notes: {e.message}")
            return

        self._notes = list(notes)[: self.max_notes]
        self._rebuild_registry()
        self.reflow.mark_loaded(self.canvas.width, self.canvas.height)
        logger.info(f"Loaded {len(self._notes)} notes")
        self._notify_change()

    async def refresh(self) -> None:
        """Drop local tracking and reload from the store."""
        self.notices.clear()
        self.registry.clear()
        self.pending.clear()
        self.reflow.reset()
        await self.load()

    # =========================================================================
    # Local mutations
    # =========================================================================

    async def create(self, text: str, author: str) -> Note:
        """Validate, place and store a new note.

        Raises:
            ValidationError: The gate rejected the submission (including
                ``CooldownError``); the store was not contacted.
            ConnectivityError: The board is not connected.
            TransportError: The store rejected the create.
        """
        now = self.clock()
        try:
            self.gate.check_cooldown(now)
            text, author = self.gate.prepare(text, author)
            self._require_connection("post a note")
        except NoteboardError as e:
            self._report_error(e.message)
            raise

        draft = self.placement.new_draft(
            text, author, self.canvas.width, self.canvas.height
        )
        try:
            with timed_operation("create_note", author=draft.author[:20]) as op:
                note = await self.store.create(draft)
                op["note_id"] = note.id
        except NoteboardError as e:
            logger.error(f"Error inserting note: {e}")
            self._report_error(f"Failed to post your note: {e.message}")
            if isinstance(e, TransportError):
                raise
            raise TransportError(e.message, operation="create", original_error=e) from e

        self.gate.record_submission(now)
        self._apply_insert(note)
        self.notices.success("Your note has been shared with everyone!")
        return note

    async def commit_move(self, note_id: str, x: float, y: float) -> bool:
        """Apply a finished move locally, then send it to the store.

        Returns False without doing anything when a move for the same note
        is still in flight. On failure the local position is kept.

        Raises:
            NoteNotFoundError: The note is not in the canonical set.
            ConnectivityError: Not connected; the move stays local only.
            TransportError: The store rejected the update.
        """
        if note_id in self.pending:
            logger.debug(f"Update already pending for note {note_id}; move rejected")
            return False
        if self.get(note_id) is None:
            raise NoteNotFoundError(note_id)

        self._apply_position(note_id, x, y)

        try:
            self._require_connection("save note positions")
        except ConnectivityError as e:
            self._report_error(e.message)
            raise

        self.pending.add(note_id)
        try:
            with timed_operation("commit_move", note_id=note_id) as op:
                await self.store.update_position(note_id, x, y)
                op["x"], op["y"] = round(x), round(y)
        except NoteboardError as e:
            logger.error(f"Error updating note position: {e}")
            self._report_error("Failed to save note position. Please try again.")
            if isinstance(e, TransportError):
                raise
            raise TransportError(
                e.message, operation="update_position", note_id=note_id, original_error=e
            ) from e
        finally:
            self.pending.discard(note_id)

        for listener in self._commit_listeners:
            listener(note_id)
        return True

    async def delete(self, note_id: str) -> None:
        """Delete a note from the store and the local set."""
        try:
            self._require_connection("delete notes")
        except ConnectivityError:
            self._report_error("Cannot delete note: not connected to database.")
            raise

        try:
            with timed_operation("delete_note", note_id=note_id):
                await self.store.delete(note_id)
        except NoteboardError as e:
            logger.error(f"Error deleting note: {e}")
            self._report_error(f"Failed to delete note: {e.message}")
            if isinstance(e, TransportError):
                raise
            raise TransportError(
                e.message, operation="delete", note_id=note_id, original_error=e
            ) from e

        self._apply_delete(note_id)

    def resize_canvas(self, width: float, height: float) -> bool:
        """Take a canvas size sample; returns True if the notes were reflowed."""
        previous_class = self.canvas.device_class
        self.canvas.update(width, height)

        reflowed = self.reflow.observe(width, height, self._notes)
        if reflowed is not None:
            self._notes = reflowed
            self._notify_change()
            return True
        if self.canvas.device_class is not previous_class:
            # Card footprint changed; positions stay, rectangles are resized
            self._rebuild_registry()
        return False

    # =========================================================================
    # Remote events
    # =========================================================================

    def handle_event(self, event: ChangeEvent) -> None:
        """Apply one change-feed event to the canonical set."""
        if event.kind is ChangeKind.DELETE:
            self._apply_delete(event.note_id)
            return

        if event.kind is ChangeKind.UPDATE and event.note_id in self.pending:
            # Most likely the echo of our own in-flight move. A genuine
            # concurrent edit is lost here as well; last committer wins.
            logger.info(f"Dropped remote update for note {event.note_id} (local move pending)")
            metrics.increment("conflict_drop")
            return

        note = self._parse(event)
        if note is None:
            return
        if event.kind is ChangeKind.INSERT:
            self._apply_insert(note)
        else:
            self._apply_update(note)

    async def _consume(self, subscription: ChangeSubscription) -> None:
        try:
            async for event in subscription:
                self.handle_event(event)
        except NoteboardError as e:
            logger.error(f"Change feed failed: {e}")
            self._disconnect(e)
        logger.debug("Change feed consumer stopped")

    def _parse(self, event: ChangeEvent) -> Optional[Note]:
        try:
            return Note.model_validate(event.record or {})
        except PydanticValidationError as e:
            logger.warning(f"Ignoring malformed {event.kind.value} event for {event.note_id}: {e}")
            return None

    # =========================================================================
    # Canonical set maintenance
    # =========================================================================

    def _apply_insert(self, note: Note) -> bool:
        if self.get(note.id) is not None:
            logger.debug(f"Ignoring duplicate insert for note {note.id}")
            return False
        notes = [note] + self._notes
        for dropped in notes[self.max_notes:]:
            self.registry.remove(dropped.id)
        self._notes = notes[: self.max_notes]
        self._register(note)
        self._notify_change()
        return True

    def _apply_update(self, note: Note) -> None:
        for index, existing in enumerate(self._notes):
            if existing.id == note.id:
                self._notes[index] = note
                self._register(note)
                self._notify_change()
                return
        logger.debug(f"Ignoring update for unknown note {note.id}")

    def _apply_delete(self, note_id: str) -> None:
        remaining = [n for n in self._notes if n.id != note_id]
        self.registry.remove(note_id)
        if len(remaining) != len(self._notes):
            self._notes = remaining
            self._notify_change()

    def _apply_position(self, note_id: str, x: float, y: float) -> None:
        for index, existing in enumerate(self._notes):
            if existing.id == note_id:
                moved = existing.with_position(x, y)
                self._notes[index] = moved
                self._register(moved)
                self._notify_change()
                return

    def _register(self, note: Note) -> None:
        size = self.canvas.card_size
        self.registry.upsert(note.id, note.x, note.y, size.width, size.height)

    def _rebuild_registry(self) -> None:
        self.registry.clear()
        for note in self._notes:
            self._register(note)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_connection(self, action: str) -> None:
        if not self.connected:
            raise ConnectivityError(
                f"Cannot {action}: not connected to database."
            )

    def _set_state(self, state: ConnectionState) -> None:
        if state is self.connection_state:
            return
        self.connection_state = state
        for listener in self._state_listeners:
            listener(state)

    def _disconnect(self, error: NoteboardError) -> None:
        logger.error(f"Store unreachable: {error}")
        self._set_state(ConnectionState.DISCONNECTED)
        self.notices.error(f"Database connection failed: {error.message}", sticky=True)
        for listener in self._error_listeners:
            listener(error.message)

    def _report_error(self, message: str) -> None:
        self.notices.error(message)
        for listener in self._error_listeners:
            listener(message)

    def _notify_change(self) -> None:
        if not self._change_listeners:
            return
        snapshot = self.notes
        for listener in self._change_listeners:
            listener(snapshot)

