"""Composition root for one client's view of the wall."""

import logging
import random
import time
from typing import Any, Callable, Dict, List, Optional

from noteboard.config import NoteboardConfig, config
from noteboard.exceptions import NoteNotFoundError
from noteboard.interaction.move import (
    MoveCommit,
    MoveController,
    PointerEvent,
    make_strategy,
)
from noteboard.layout.placement import PlacementAlgorithm
from noteboard.layout.reflow import LayoutReflow
from noteboard.layout.registry import PositionRegistry
from noteboard.models.schema import CanvasDimensions, ConnectionState, Note
from noteboard.moderation import Moderator
from noteboard.storage.base import NoteStore
from noteboard.sync.notices import Notice
from noteboard.sync.reconciliation import ReconciliationLayer

logger = logging.getLogger(__name__)


class NoteBoard:
    """Wires registry, placement, reflow, reconciliation and move controllers.

    Each board owns its own registry and canvas, so several boards (or
    tests) can share one store without sharing layout state.
    """

    def __init__(
        self,
        store: NoteStore,
        settings: Optional[NoteboardConfig] = None,
        canvas_width: Optional[float] = None,
        canvas_height: Optional[float] = None,
        moderator: Optional[Moderator] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or config
        self.store = store
        self.canvas = CanvasDimensions(
            width=self.settings.canvas_width if canvas_width is None else canvas_width,
            height=self.settings.canvas_height if canvas_height is None else canvas_height,
            breakpoint=self.settings.compact_breakpoint,
        )
        self.registry = PositionRegistry(padding=self.settings.collision_padding)
        self.placement = PlacementAlgorithm(
            self.registry,
            rng=rng,
            max_attempts=self.settings.placement_attempts,
            breakpoint=self.settings.compact_breakpoint,
        )
        self.reflow = LayoutReflow(
            self.placement,
            detect_threshold=self.settings.reflow_detect_threshold,
            trigger_threshold=self.settings.reflow_trigger_threshold,
        )
        self.sync = ReconciliationLayer(
            store,
            self.registry,
            self.placement,
            self.reflow,
            self.canvas,
            moderator=moderator,
            clock=clock,
            settings=self.settings,
        )
        self.strategy = make_strategy(self.settings.move_strategy)
        self._controllers: Dict[str, MoveController] = {}
        self.sync.on_change(self._sync_controllers)

    @property
    def notes(self) -> List[Note]:
        return self.sync.notes

    @property
    def connection_state(self) -> ConnectionState:
        return self.sync.connection_state

    @property
    def notice(self) -> Optional[Notice]:
        return self.sync.notices.current()

    async def start(self) -> None:
        await self.sync.start()

    async def stop(self) -> None:
        await self.sync.stop()

    async def refresh(self) -> None:
        self._controllers.clear()
        await self.sync.refresh()

    async def post_note(self, text: str, author: str) -> Note:
        return await self.sync.create(text, author)

    async def delete_note(self, note_id: str) -> None:
        await self.sync.delete(note_id)

    def resize(self, width: float, height: float) -> bool:
        return self.sync.resize_canvas(width, height)

    def controller(self, note_id: str) -> MoveController:
        """The move controller for a note, created on first use."""
        controller = self._controllers.get(note_id)
        if controller is None:
            note = self.sync.get(note_id)
            if note is None:
                raise NoteNotFoundError(note_id)
            controller = MoveController(
                note_id,
                note.x,
                note.y,
                self.canvas,
                self.registry,
                self.strategy,
                min_displacement=self.settings.move_min_displacement,
            )
            self._controllers[note_id] = controller
        return controller

    async def dispatch(self, note_id: str, event: PointerEvent) -> Optional[MoveCommit]:
        """Route an input event to a note; commits a finished move.

        Events for a note with an update still in flight are rejected: any
        move under way is cancelled and None is returned. Otherwise returns
        the commit if the event ended a move, whether or not the store
        accepted it (store errors propagate).
        """
        if note_id in self.sync.pending:
            controller = self._controllers.get(note_id)
            if controller is not None:
                controller.cancel()
            logger.info(f"Update already pending for note {note_id}; move rejected")
            return None
        commit = self.controller(note_id).handle(event)
        if commit is not None:
            await self.sync.commit_move(commit.note_id, commit.x, commit.y)
        return commit

    async def move_note(self, note_id: str, x: float, y: float) -> Optional[MoveCommit]:
        """Move a note so its top-left corner lands on ``(x, y)``.

        Replays the gesture the configured strategy expects, so the same
        clamping and commit rules apply as for pointer input.
        """
        controller = self.controller(note_id)
        if self.strategy.name == "move_mode":
            size = self.canvas.card_size
            gesture = [
                PointerEvent.toggle(),
                PointerEvent.click(x + size.width / 2, y + size.height / 2),
                PointerEvent.toggle(),
            ]
        else:
            start_x, start_y = controller.position
            gesture = [
                PointerEvent.down(start_x, start_y),
                PointerEvent.move(x, y),
                PointerEvent.up(x, y),
            ]
        commit = None
        for event in gesture:
            commit = await self.dispatch(note_id, event) or commit
        if commit is None:
            logger.debug(f"Move of note {note_id} to ({x}, {y}) produced no commit")
        return commit

    def status(self) -> Dict[str, Any]:
        notice = self.notice
        return {
            "connection": self.connection_state.value,
            "notes": len(self.sync.notes),
            "pending": sorted(self.sync.pending),
            "canvas": {
                "width": self.canvas.width,
                "height": self.canvas.height,
                "device_class": self.canvas.device_class.value,
            },
            "move_strategy": self.strategy.name,
            "notice": {"level": notice.level, "message": notice.message} if notice else None,
        }

    def _sync_controllers(self, notes: List[Note]) -> None:
        by_id = {note.id: note for note in notes}
        for note_id in list(self._controllers):
            note = by_id.get(note_id)
            if note is None:
                del self._controllers[note_id]
            else:
                self._controllers[note_id].sync_position(note.x, note.y)
