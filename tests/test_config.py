"""Tests for configuration and the error hierarchy."""
from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from noteboard.config import NoteboardConfig
from noteboard.exceptions import (
    ConnectivityError,
    CooldownError,
    ErrorCode,
    NoteNotFoundError,
    TransportError,
    ValidationError,
)


class TestNoteboardConfig:
    """Tests for NoteboardConfig defaults and validation."""

    def test_defaults(self, monkeypatch):
        """Defaults match the documented board rules."""
        for name in (
            "NOTEBOARD_MAX_NOTES",
            "NOTEBOARD_COOLDOWN_SECONDS",
            "NOTEBOARD_PLACEMENT_ATTEMPTS",
            "NOTEBOARD_MOVE_STRATEGY",
        ):
            monkeypatch.delenv(name, raising=False)
        settings = NoteboardConfig()
        assert settings.max_notes == 100
        assert settings.submission_cooldown_seconds == 5
        assert settings.placement_attempts == 30
        assert settings.collision_padding == 20
        assert settings.reflow_detect_threshold == 50
        assert settings.reflow_trigger_threshold == 100
        assert settings.compact_breakpoint == 768
        assert settings.move_strategy == "drag"

    def test_environment_overrides(self, monkeypatch):
        """NOTEBOARD_* variables override defaults."""
        monkeypatch.setenv("NOTEBOARD_MAX_NOTES", "25")
        monkeypatch.setenv("NOTEBOARD_MOVE_STRATEGY", "MOVE_MODE")
        settings = NoteboardConfig()
        assert settings.max_notes == 25
        assert settings.move_strategy == "move_mode"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_notes": 0},
            {"submission_cooldown_seconds": -1},
            {"min_text_length": 300},
            {"max_text_length": 250},
            {"max_author_length": 51},
            {"placement_attempts": 0},
            {"reflow_detect_threshold": 200, "reflow_trigger_threshold": 100},
            {"move_strategy": "teleport"},
        ],
    )
    def test_invalid_settings_rejected(self, overrides):
        """Inconsistent settings fail validation."""
        with pytest.raises(PydanticValidationError):
            NoteboardConfig(**overrides)

    def test_db_url(self, tmp_path):
        """File databases resolve against base_dir; in-memory is supported."""
        settings = NoteboardConfig(base_dir=tmp_path, database_path=Path("db/board.db"))
        assert settings.get_db_url() == f"sqlite:///{tmp_path / 'db' / 'board.db'}"
        assert (tmp_path / "db").is_dir()
        assert NoteboardConfig(in_memory_db=True).get_db_url() == "sqlite:///:memory:"

    def test_absolute_path_unchanged(self, tmp_path):
        """Absolute paths are returned as-is."""
        settings = NoteboardConfig(base_dir=Path("/elsewhere"))
        assert settings.get_absolute_path(tmp_path) == tmp_path


class TestExceptions:
    """Tests for the error hierarchy."""

    def test_str_includes_code_and_details(self):
        """String form carries the code name and details."""
        error = NoteNotFoundError("abc")
        assert str(error) == "[NOTE_NOT_FOUND] Note with ID 'abc' not found (note_id=abc)"

    def test_to_dict(self):
        """to_dict serializes code, message and details."""
        data = TransportError("boom", operation="create", note_id="n1").to_dict()
        assert data["error"] == "TransportError"
        assert data["code"] == ErrorCode.STORE_UPDATE_FAILED.value
        assert data["details"] == {"operation": "create", "note_id": "n1"}

    def test_cooldown_is_validation_error(self):
        """Cooldown rejections are validation errors carrying the wait."""
        error = CooldownError(3)
        assert isinstance(error, ValidationError)
        assert error.code is ErrorCode.SUBMISSION_COOLDOWN
        assert error.details["wait_seconds"] == 3

    def test_original_error_truncated(self):
        """Wrapped errors are kept but truncated in details."""
        cause = RuntimeError("x" * 500)
        error = ConnectivityError("down", original_error=cause)
        assert error.original_error is cause
        assert len(error.details["original_error"]) == 200
