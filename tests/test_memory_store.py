"""Tests for the in-memory note store."""
import pytest

from noteboard.exceptions import ConnectivityError, NoteNotFoundError
from noteboard.models.schema import ChangeKind, NoteDraft
from noteboard.storage.memory_store import InMemoryNoteStore
from tests.fakes import make_note


class TestInMemoryNoteStore:
    """Tests for InMemoryNoteStore."""

    @pytest.mark.anyio
    async def test_crud(self):
        """Create, move and delete round through the dict."""
        store = InMemoryNoteStore()
        note = await store.create(NoteDraft(text="Hello", author="Ana", x=10, y=20))
        moved = await store.update_position(note.id, 30, 40)
        assert (moved.x, moved.y) == (30, 40)
        await store.delete(note.id)
        await store.delete(note.id)
        assert await store.list_recent(10) == []

    @pytest.mark.anyio
    async def test_list_recent_orders_by_creation(self):
        """Newest notes come first."""
        store = InMemoryNoteStore([make_note("a", minutes=1), make_note("b", minutes=2)])
        assert [n.id for n in await store.list_recent(10)] == ["b", "a"]
        assert [n.id for n in await store.list_recent(1)] == ["b"]

    @pytest.mark.anyio
    async def test_update_unknown(self):
        """Updating an unknown note raises NoteNotFoundError."""
        with pytest.raises(NoteNotFoundError):
            await InMemoryNoteStore().update_position("missing", 0, 0)

    @pytest.mark.anyio
    async def test_unreachable(self):
        """An unreachable store fails every call with ConnectivityError."""
        store = InMemoryNoteStore(reachable=False)
        with pytest.raises(ConnectivityError):
            await store.probe()
        with pytest.raises(ConnectivityError):
            await store.list_recent(10)

    @pytest.mark.anyio
    async def test_publish_reaches_subscribers(self):
        """Simulated remote changes are applied and announced."""
        store = InMemoryNoteStore()
        subscription = await store.subscribe()
        store.publish(ChangeKind.INSERT, make_note("r1"))

        event = await subscription.__anext__()
        assert event.kind is ChangeKind.INSERT
        assert event.record["id"] == "r1"
        assert "r1" in store.notes
        await store.close()
        assert subscription.closed
