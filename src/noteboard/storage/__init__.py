"""Storage layer for the Noteboard MCP server."""

from noteboard.storage.base import ChangeFeed, ChangeSubscription, NoteStore
from noteboard.storage.memory_store import InMemoryNoteStore
from noteboard.storage.sql_store import SqlNoteStore

__all__ = [
    "ChangeFeed",
    "ChangeSubscription",
    "InMemoryNoteStore",
    "NoteStore",
    "SqlNoteStore",
]
