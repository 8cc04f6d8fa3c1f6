"""Tests for the NoteBoard composition root."""
import pytest

from noteboard.board import NoteBoard
from noteboard.config import NoteboardConfig
from noteboard.exceptions import NoteNotFoundError
from noteboard.interaction.move import MoveCommit, PointerEvent
from noteboard.models.schema import ChangeKind
from tests.fakes import FakeNoteStore, drain, make_note


class TestMoveNote:
    """Tests for moving notes through the board."""

    @pytest.mark.anyio
    async def test_drag_move(self, started_board, store):
        """A drag-strategy move lands on the requested position and is stored."""
        commit = await started_board.move_note("n1", 400, 300)

        assert commit == MoveCommit("n1", 400, 300)
        assert (store.notes["n1"].x, store.notes["n1"].y) == (400, 300)
        assert started_board.sync.get("n1").x == 400

    @pytest.mark.anyio
    async def test_small_move_not_committed(self, started_board, store):
        """A move below the minimum displacement never reaches the store."""
        commit = await started_board.move_note("n1", 102, 100)

        assert commit is None
        assert "update_position" not in store.calls
        assert started_board.sync.get("n1").x == 100

    @pytest.mark.anyio
    async def test_move_is_clamped(self, started_board, store):
        """Targets outside the canvas are clamped to the padded bounds."""
        commit = await started_board.move_note("n1", 5000, -50)
        assert commit == MoveCommit("n1", 975, 25)

    @pytest.mark.anyio
    async def test_move_mode_strategy(self, store, rng, clock):
        """The move-mode gesture reaches the same position."""
        settings = NoteboardConfig(canvas_width=1200, canvas_height=600, move_strategy="move_mode")
        board = NoteBoard(store, settings=settings, rng=rng, clock=clock)
        await board.start()
        try:
            commit = await board.move_note("n1", 400, 300)
            assert commit == MoveCommit("n1", 400, 300)
            assert store.notes["n1"].x == 400
        finally:
            await board.stop()

    @pytest.mark.anyio
    async def test_unknown_note(self, started_board):
        """Moving a note that is not on the board raises NoteNotFoundError."""
        with pytest.raises(NoteNotFoundError):
            await started_board.move_note("missing", 400, 300)

    @pytest.mark.anyio
    async def test_move_rejected_while_pending(self, started_board, store):
        """A move for a note with an update in flight changes nothing."""
        started_board.sync.pending.add("n1")

        commit = await started_board.move_note("n1", 600, 300)

        assert commit is None
        assert "update_position" not in store.calls
        assert started_board.sync.get("n1").x == 100
        assert started_board.registry.get("n1").x == 100
        assert started_board.controller("n1").position == (100, 100)

    @pytest.mark.anyio
    async def test_pending_cancels_active_drag(self, started_board, store):
        """A drag in progress is put back when its note becomes pending."""
        await started_board.dispatch("n1", PointerEvent.down(100, 100))
        await started_board.dispatch("n1", PointerEvent.move(400, 300))
        assert started_board.registry.get("n1").x == 400

        started_board.sync.pending.add("n1")
        commit = await started_board.dispatch("n1", PointerEvent.up(400, 300))

        assert commit is None
        assert not started_board.controller("n1").active
        assert started_board.registry.get("n1").x == 100
        assert "update_position" not in store.calls

    @pytest.mark.anyio
    async def test_dispatch_pointer_events(self, started_board, store):
        """Raw pointer events drive the same controller."""
        await started_board.dispatch("n2", PointerEvent.down(550, 150))
        await started_board.dispatch("n2", PointerEvent.move(600, 200))
        commit = await started_board.dispatch("n2", PointerEvent.up(600, 200))

        assert commit == MoveCommit("n2", 550, 150)
        assert store.notes["n2"].x == 550


class TestControllers:
    """Tests for keeping move controllers in step with the note set."""

    @pytest.mark.anyio
    async def test_remote_update_syncs_controller(self, started_board, store):
        """An idle controller adopts positions received from the feed."""
        controller = started_board.controller("n1")
        store.publish(ChangeKind.UPDATE, make_note("n1", x=700, y=300, minutes=1))
        await drain()
        assert controller.position == (700, 300)

    @pytest.mark.anyio
    async def test_remote_delete_drops_controller(self, started_board, store):
        """Deleting a note discards its controller and its registry entry."""
        started_board.controller("n1")
        store.publish(ChangeKind.DELETE, make_note("n1", minutes=1))
        await drain()

        assert "n1" not in started_board.registry
        with pytest.raises(NoteNotFoundError):
            started_board.controller("n1")


class TestStatus:
    """Tests for the board status snapshot."""

    @pytest.mark.anyio
    async def test_status(self, started_board):
        """Status reports connection, counts, canvas and strategy."""
        status = started_board.status()
        assert status["connection"] == "connected"
        assert status["notes"] == 3
        assert status["pending"] == []
        assert status["canvas"] == {"width": 1200, "height": 600, "device_class": "full"}
        assert status["move_strategy"] == "drag"
        assert status["notice"] is None

    @pytest.mark.anyio
    async def test_status_when_disconnected(self, settings, clock):
        """A disconnected board reports the sticky error notice."""
        board = NoteBoard(FakeNoteStore(reachable=False), settings=settings, clock=clock)
        await board.start()
        status = board.status()
        assert status["connection"] == "disconnected"
        assert status["notice"]["level"] == "error"
