"""MCP server implementation for the note board."""

import json
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from mcp.server.fastmcp import FastMCP

from noteboard.board import NoteBoard
from noteboard.config import config
from noteboard.exceptions import NoteboardError
from noteboard.models.schema import Note
from noteboard.observability import metrics, timed_operation
from noteboard.storage.base import NoteStore
from noteboard.storage.sql_store import SqlNoteStore

logger = logging.getLogger(__name__)


def _format_note(note: Note) -> str:
    return (
        f"- {note.id}: \"{note.text}\" by {note.author} "
        f"at ({round(note.x)}, {round(note.y)}) "
        f"rot {note.rotation:+.1f} {note.color.value}"
    )


class NoteboardMcpServer:
    """MCP server exposing one shared note board."""

    def __init__(self, store: Optional[NoteStore] = None, engine=None, board: Optional[NoteBoard] = None):
        """Initialize the MCP server.

        Args:
            store: Note store to use. When None, a ``SqlNoteStore`` is
                   created on ``engine``.
            engine: Pre-configured SQLAlchemy engine for the default store.
            board: Fully built board; overrides ``store`` and ``engine``.
        """
        if board is None:
            store = store if store is not None else SqlNoteStore(engine=engine)
            board = NoteBoard(store)
        self.board = board
        self.store = board.store
        self._started = False
        self.mcp = FastMCP(config.server_name, lifespan=self._lifespan)
        self._register_tools()
        logger.info("Noteboard MCP server initialized")

    @asynccontextmanager
    async def _lifespan(self, server: FastMCP) -> AsyncIterator[None]:
        await self.start()
        try:
            yield
        finally:
            await self.stop()

    async def start(self) -> None:
        """Connect the board and start following the store."""
        if self._started:
            return
        await self.board.start()
        self._started = True
        logger.info(f"Board started ({self.board.connection_state.value})")

    async def stop(self) -> None:
        if not self._started:
            return
        await self.board.stop()
        await self.store.close()
        self._started = False
        logger.info("Board stopped")

    def format_error_response(self, error: Exception) -> str:
        """Format an error response in a consistent way.

        Args:
            error: The exception that occurred

        Returns:
            Formatted error message with appropriate level of detail
        """
        # Generate a unique error ID for traceability in logs
        error_id = str(uuid.uuid4())[:8]

        if isinstance(error, NoteboardError):
            # Domain errors carry user-facing messages
            logger.error(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            return f"Error: {error.message}"
        elif isinstance(error, ValueError):
            logger.error(f"Validation error [{error_id}]: {str(error)}")
            return f"Error: Invalid input (ref: {error_id})"
        else:
            logger.error(f"Unexpected error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: An unexpected error occurred (ref: {error_id})"

    def _register_tools(self) -> None:
        """Register MCP tools."""

        @self.mcp.tool(name="board_post_note")
        async def board_post_note(text: str, author: str) -> str:
            """Post a new sticky note to the shared board.
            Args:
                text: Note text (3-200 characters)
                author: Author name (2-50 characters; letters, digits, spaces, '.', '_', '-')
            """
            with timed_operation("board_post_note", author=author[:20]) as op:
                try:
                    note = await self.board.post_note(text, author)
                    op["note_id"] = note.id
                    return (
                        f"Note posted with ID: {note.id} "
                        f"at ({round(note.x)}, {round(note.y)})"
                    )
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="board_list_notes")
        async def board_list_notes(limit: int = 100) -> str:
            """List notes on the board, newest first.
            Args:
                limit: Maximum number of notes to list (default: 100)
            """
            try:
                notes = self.board.notes[: max(limit, 0)]
                if not notes:
                    return "The board is empty."
                result = f"# {len(notes)} note(s)\n\n"
                result += "\n".join(_format_note(note) for note in notes)
                return result
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="board_move_note")
        async def board_move_note(note_id: str, x: float, y: float) -> str:
            """Move a note so its top-left corner is at (x, y).

            The position is clamped to the canvas. Moves shorter than the
            minimum displacement are ignored.

            Args:
                note_id: ID of the note to move
                x: Target left edge in canvas pixels
                y: Target top edge in canvas pixels
            """
            with timed_operation("board_move_note", note_id=note_id) as op:
                try:
                    commit = await self.board.move_note(note_id, x, y)
                    if commit is None:
                        op["moved"] = False
                        if note_id in self.board.sync.pending:
                            return f"Note {note_id} not moved (an update is already pending)."
                        return f"Note {note_id} not moved (position unchanged)."
                    op["moved"] = True
                    return f"Note {note_id} moved to ({round(commit.x)}, {round(commit.y)})"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="board_delete_note")
        async def board_delete_note(note_id: str) -> str:
            """Delete a note from the board.
            Args:
                note_id: ID of the note to delete
            """
            with timed_operation("board_delete_note", note_id=note_id):
                try:
                    await self.board.delete_note(note_id)
                    return f"Note deleted: {note_id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="board_resize_canvas")
        async def board_resize_canvas(width: float, height: float) -> str:
            """Report a new canvas size; large changes redistribute the notes.
            Args:
                width: Canvas width in pixels
                height: Canvas height in pixels
            """
            try:
                if width < 0 or height < 0:
                    raise ValueError(f"Canvas size must be non-negative, got {width}x{height}")
                reflowed = self.board.resize(width, height)
                size = f"{round(width)}x{round(height)}"
                if reflowed:
                    return f"Canvas resized to {size}; {len(self.board.notes)} note(s) redistributed."
                return f"Canvas resized to {size}."
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="board_status")
        async def board_status() -> str:
            """Show connection state, the current notice and operation metrics."""
            try:
                status: Dict[str, Any] = self.board.status()
                status["metrics"] = metrics.get_summary()
                return json.dumps(status, indent=2, default=str)
            except Exception as e:
                return self.format_error_response(e)

        @self.mcp.tool(name="board_refresh")
        async def board_refresh() -> str:
            """Reload the board from the store, reconnecting if needed."""
            with timed_operation("board_refresh") as op:
                try:
                    if self.board.sync.connected:
                        await self.board.refresh()
                    else:
                        # Reconnect from scratch so the change feed is reopened
                        await self.board.stop()
                        await self.board.start()
                    op["count"] = len(self.board.notes)
                    return (
                        f"Board refreshed ({self.board.connection_state.value}): "
                        f"{len(self.board.notes)} note(s)"
                    )
                except Exception as e:
                    return self.format_error_response(e)

    def run(self) -> None:
        """Run the MCP server."""
        self.mcp.run()
