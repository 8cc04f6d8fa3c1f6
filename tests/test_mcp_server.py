# tests/test_mcp_server.py
"""Tests for the MCP server implementation."""
import json
from unittest.mock import MagicMock, patch

import pytest

from noteboard.board import NoteBoard
from noteboard.exceptions import TransportError
from noteboard.server.mcp_server import NoteboardMcpServer
from tests.fakes import FakeNoteStore


class TestMcpServer:
    """Tests for the NoteboardMcpServer class."""

    @pytest.fixture(autouse=True)
    def _server(self, store, settings, rng, clock):
        """Build a server over the fake store with FastMCP mocked out."""
        # Capture the tool decorator functions when registering
        self.registered_tools = {}
        self.mock_mcp = MagicMock()

        def mock_tool_decorator(*args, **kwargs):
            def tool_wrapper(func):
                self.registered_tools[kwargs.get("name")] = func
                return func
            return tool_wrapper
        self.mock_mcp.tool = mock_tool_decorator

        self.store = store
        self.board = NoteBoard(store, settings=settings, rng=rng, clock=clock)
        with patch("noteboard.server.mcp_server.FastMCP", return_value=self.mock_mcp) as fastmcp:
            self.server = NoteboardMcpServer(board=self.board)
            self.fastmcp = fastmcp
        yield

    async def _start(self):
        await self.server.start()

    def test_tools_registered(self):
        """Every board tool is registered under its name."""
        assert set(self.registered_tools) == {
            "board_post_note",
            "board_list_notes",
            "board_move_note",
            "board_delete_note",
            "board_resize_canvas",
            "board_status",
            "board_refresh",
        }
        assert "lifespan" in self.fastmcp.call_args.kwargs

    @pytest.mark.anyio
    async def test_post_note_tool(self):
        """board_post_note posts through the board and reports the ID."""
        await self._start()
        result = await self.registered_tools["board_post_note"](text="Hello wall", author="Ana")

        assert result.startswith("Note posted with ID: ")
        note_id = result.split()[4]
        assert note_id in self.store.notes
        await self.server.stop()

    @pytest.mark.anyio
    async def test_post_note_validation_error(self):
        """Validation failures come back as user-facing messages."""
        await self._start()
        result = await self.registered_tools["board_post_note"](text="hi", author="Ana")
        assert result == "Error: Note must be at least 3 characters long."
        await self.server.stop()

    @pytest.mark.anyio
    async def test_list_notes_tool(self):
        """board_list_notes lists newest first and honours the limit."""
        await self._start()
        result = await self.registered_tools["board_list_notes"](limit=2)

        assert result.startswith("# 2 note(s)")
        assert result.index("n3:") < result.index("n2:")
        assert "n1:" not in result
        await self.server.stop()

    @pytest.mark.anyio
    async def test_list_notes_empty(self, settings, rng, clock):
        """An empty board says so."""
        board = NoteBoard(FakeNoteStore(), settings=settings, rng=rng, clock=clock)
        with patch("noteboard.server.mcp_server.FastMCP", return_value=self.mock_mcp):
            NoteboardMcpServer(board=board)
        await board.start()
        assert await self.registered_tools["board_list_notes"]() == "The board is empty."
        await board.stop()

    @pytest.mark.anyio
    async def test_move_note_tool(self):
        """board_move_note moves and persists the note."""
        await self._start()
        result = await self.registered_tools["board_move_note"](note_id="n1", x=400, y=300)

        assert result == "Note n1 moved to (400, 300)"
        assert self.store.notes["n1"].x == 400
        await self.server.stop()

    @pytest.mark.anyio
    async def test_move_note_unchanged(self):
        """A tiny move is reported as unchanged."""
        await self._start()
        result = await self.registered_tools["board_move_note"](note_id="n1", x=101, y=101)
        assert result == "Note n1 not moved (position unchanged)."
        await self.server.stop()

    @pytest.mark.anyio
    async def test_move_note_pending(self):
        """A move for a note with an update in flight is reported as rejected."""
        await self._start()
        self.board.sync.pending.add("n1")
        result = await self.registered_tools["board_move_note"](note_id="n1", x=400, y=300)

        assert result == "Note n1 not moved (an update is already pending)."
        assert self.store.notes["n1"].x == 100
        await self.server.stop()

    @pytest.mark.anyio
    async def test_move_note_store_failure(self):
        """Store failures are reported, not raised."""
        await self._start()
        self.store.failures["update_position"] = TransportError("update failed")
        result = await self.registered_tools["board_move_note"](note_id="n1", x=400, y=300)
        assert result == "Error: update failed"
        await self.server.stop()

    @pytest.mark.anyio
    async def test_delete_note_tool(self):
        """board_delete_note removes the note."""
        await self._start()
        result = await self.registered_tools["board_delete_note"](note_id="n2")
        assert result == "Note deleted: n2"
        assert "n2" not in self.store.notes
        await self.server.stop()

    @pytest.mark.anyio
    async def test_resize_canvas_tool(self):
        """board_resize_canvas reports whether notes were redistributed."""
        await self._start()
        small = await self.registered_tools["board_resize_canvas"](width=1230, height=600)
        large = await self.registered_tools["board_resize_canvas"](width=600, height=500)

        assert small == "Canvas resized to 1230x600."
        assert large == "Canvas resized to 600x500; 3 note(s) redistributed."
        await self.server.stop()

    @pytest.mark.anyio
    async def test_resize_canvas_rejects_negative(self):
        """Negative sizes are invalid input."""
        result = await self.registered_tools["board_resize_canvas"](width=-1, height=600)
        assert result.startswith("Error: Invalid input (ref: ")

    @pytest.mark.anyio
    async def test_status_tool(self):
        """board_status returns JSON with board state and metrics."""
        await self._start()
        await self.registered_tools["board_move_note"](note_id="n1", x=400, y=300)
        status = json.loads(await self.registered_tools["board_status"]())

        assert status["connection"] == "connected"
        assert status["notes"] == 3
        assert status["metrics"]["total_operations"] >= 1
        await self.server.stop()

    @pytest.mark.anyio
    async def test_refresh_tool_reconnects(self):
        """board_refresh reconnects a board that started disconnected."""
        self.store.reachable = False
        await self._start()
        assert self.board.connection_state.value == "disconnected"

        self.store.reachable = True
        result = await self.registered_tools["board_refresh"]()

        assert result == "Board refreshed (connected): 3 note(s)"
        assert len(self.store.feed) == 1
        await self.server.stop()

    @pytest.mark.anyio
    async def test_stop_closes_store(self):
        """Stopping the server stops the board and closes the store."""
        await self._start()
        await self.server.stop()
        assert self.store.closed
        assert len(self.store.feed) == 0
