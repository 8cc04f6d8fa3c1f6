"""Common test fixtures for the Noteboard MCP server."""

import random

import pytest

from noteboard.board import NoteBoard
from noteboard.config import NoteboardConfig, config
from noteboard.observability import metrics
from tests.fakes import FakeClock, FakeNoteStore, make_note


@pytest.fixture(params=["asyncio"])
def anyio_backend(request):
    """Restrict anyio tests to asyncio only (trio is not installed)."""
    return request.param


@pytest.fixture(autouse=True)
def _reset_metrics():
    """Metrics are process-global; start every test from zero."""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def settings():
    """Board settings with the documented defaults and a full-size canvas."""
    return NoteboardConfig(
        in_memory_db=True,
        canvas_width=1200,
        canvas_height=600,
        move_strategy="drag",
    )


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Point the global config at a temporary database (auto-restored)."""
    monkeypatch.setattr(config, "database_path", tmp_path / "test_noteboard.db")
    monkeypatch.setattr(config, "in_memory_db", False)
    monkeypatch.setattr(config, "canvas_width", config.canvas_width)
    monkeypatch.setattr(config, "canvas_height", config.canvas_height)
    yield config


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def seeded_notes():
    """Three notes at well separated positions, newest first when listed."""
    return [
        make_note("n1", x=100, y=100, minutes=1),
        make_note("n2", x=500, y=100, minutes=2),
        make_note("n3", x=800, y=350, minutes=3),
    ]


@pytest.fixture
def store(seeded_notes):
    return FakeNoteStore(seeded_notes)


@pytest.fixture
def board(store, settings, rng, clock):
    """A board over the fake store; not started."""
    return NoteBoard(store, settings=settings, rng=rng, clock=clock)


@pytest.fixture
async def started_board(board, anyio_backend):
    """A connected board consuming the fake store's change feed."""
    await board.start()
    yield board
    await board.stop()


@pytest.fixture
def layer(started_board):
    return started_board.sync

