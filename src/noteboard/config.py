"""Configuration module for the Noteboard MCP server."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from noteboard import __version__
from noteboard.models.schema import MAX_AUTHOR_LENGTH, MAX_TEXT_LENGTH

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config lives alongside the logs
_USER_ENV = Path.home() / ".noteboard" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

MOVE_STRATEGIES = ("drag", "move_mode")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class NoteboardConfig(BaseModel):
    """Configuration for the Noteboard server."""

    # Base directory for the project
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTEBOARD_BASE_DIR", "."))
    )
    # Database configuration
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("NOTEBOARD_DATABASE_PATH", "data/db/noteboard.db")
        )
    )
    # When True the store is an in-memory SQLite database (single process only)
    in_memory_db: bool = Field(
        default_factory=lambda: _env_bool("NOTEBOARD_IN_MEMORY_DB", "false")
    )
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("NOTEBOARD_LOG_DIR"))
            if os.getenv("NOTEBOARD_LOG_DIR")
            else None
        )
    )
    # Server configuration
    server_name: str = Field(default=os.getenv("NOTEBOARD_SERVER_NAME", "noteboard-mcp"))
    server_version: str = Field(default=__version__)

    # Canonical set and submission rules
    max_notes: int = Field(
        default_factory=lambda: int(os.getenv("NOTEBOARD_MAX_NOTES", "100"))
    )
    submission_cooldown_seconds: float = Field(
        default_factory=lambda: float(os.getenv("NOTEBOARD_COOLDOWN_SECONDS", "5"))
    )
    max_text_length: int = Field(default=MAX_TEXT_LENGTH)
    min_text_length: int = Field(default=3)
    max_author_length: int = Field(default=MAX_AUTHOR_LENGTH)
    min_author_length: int = Field(default=2)
    # How long error/success notices stay visible
    notice_ttl_seconds: float = Field(
        default_factory=lambda: float(os.getenv("NOTEBOARD_NOTICE_TTL_SECONDS", "3"))
    )

    # Layout
    compact_breakpoint: int = Field(
        default_factory=lambda: int(os.getenv("NOTEBOARD_COMPACT_BREAKPOINT", "768"))
    )
    placement_attempts: int = Field(
        default_factory=lambda: int(os.getenv("NOTEBOARD_PLACEMENT_ATTEMPTS", "30"))
    )
    collision_padding: float = Field(default=20.0)
    reflow_detect_threshold: float = Field(
        default_factory=lambda: float(
            os.getenv("NOTEBOARD_REFLOW_DETECT_THRESHOLD", "50")
        )
    )
    reflow_trigger_threshold: float = Field(
        default_factory=lambda: float(
            os.getenv("NOTEBOARD_REFLOW_TRIGGER_THRESHOLD", "100")
        )
    )
    # Default canvas used by the server until a client reports its size
    canvas_width: float = Field(
        default_factory=lambda: float(os.getenv("NOTEBOARD_CANVAS_WIDTH", "1200"))
    )
    canvas_height: float = Field(
        default_factory=lambda: float(os.getenv("NOTEBOARD_CANVAS_HEIGHT", "600"))
    )

    # Interaction
    move_strategy: str = Field(
        default_factory=lambda: os.getenv("NOTEBOARD_MOVE_STRATEGY", "drag").lower()
    )
    move_min_displacement: float = Field(
        default_factory=lambda: float(os.getenv("NOTEBOARD_MOVE_MIN_DISPLACEMENT", "5"))
    )

    @model_validator(mode="after")
    def _validate_limits(self) -> "NoteboardConfig":
        """Reject settings that would break the layout or submission rules."""
        if self.max_notes < 1:
            raise ValueError("max_notes must be >= 1")
        if self.submission_cooldown_seconds < 0:
            raise ValueError("submission_cooldown_seconds must be >= 0")
        if self.max_text_length > MAX_TEXT_LENGTH:
            raise ValueError(f"max_text_length cannot exceed {MAX_TEXT_LENGTH}")
        if self.max_author_length > MAX_AUTHOR_LENGTH:
            raise ValueError(f"max_author_length cannot exceed {MAX_AUTHOR_LENGTH}")
        if self.min_text_length > self.max_text_length:
            raise ValueError("min_text_length cannot exceed max_text_length")
        if self.min_author_length > self.max_author_length:
            raise ValueError("min_author_length cannot exceed max_author_length")
        if self.placement_attempts < 1:
            raise ValueError("placement_attempts must be >= 1")
        if self.reflow_trigger_threshold < self.reflow_detect_threshold:
            raise ValueError(
                "reflow_trigger_threshold must be >= reflow_detect_threshold"
            )
        if self.move_strategy not in MOVE_STRATEGIES:
            raise ValueError(
                f"move_strategy must be one of {', '.join(MOVE_STRATEGIES)}"
            )
        if self.move_min_displacement < 0:
            raise ValueError("move_min_displacement must be >= 0")
        if self.in_memory_db and self.database_path != Path("data/db/noteboard.db"):
            logger.warning(
                "in_memory_db is set; database_path %s will be ignored",
                self.database_path,
            )
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_db_url(self) -> str:
        """Get the database URL for SQLite."""
        if self.in_memory_db:
            return "sqlite:///:memory:"
        db_path = self.get_absolute_path(self.database_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"


# Create a global config instance
config = NoteboardConfig()
