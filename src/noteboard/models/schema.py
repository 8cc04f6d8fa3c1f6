"""Data models for the Noteboard MCP server."""

import datetime
import uuid
from dataclasses import dataclass
from datetime import timezone
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional

from pydantic import BaseModel, Field, field_validator

# Canvas width below which cards use the compact footprint
COMPACT_BREAKPOINT = 768

# Storage ceilings for note text and author names
MAX_TEXT_LENGTH = 200
MAX_AUTHOR_LENGTH = 50


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.datetime.now(timezone.utc)


def ensure_timezone_aware(dt_value: Optional[datetime.datetime]) -> datetime.datetime:
    """Ensure a datetime is timezone-aware, treating naive datetimes as UTC.

    SQLite hands back naive datetimes; they were written as UTC.
    """
    if dt_value is None:
        return utc_now()
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value


def generate_id() -> str:
    """Generate an opaque note ID (stores assign these, never clients)."""
    return uuid.uuid4().hex


class NoteColor(str, Enum):
    """Fixed palette of card colours (cosmetic only)."""

    YELLOW = "yellow"
    PEACH = "peach"
    BLUE = "blue"
    GREEN = "green"
    PURPLE = "purple"
    AMBER = "amber"
    LIME = "lime"
    CYAN = "cyan"
    ROSE = "rose"


class DeviceClass(str, Enum):
    """Card footprint class, derived from the canvas width."""

    COMPACT = "compact"
    FULL = "full"


class CardSize(NamedTuple):
    width: float
    height: float


_CARD_SIZES = {
    DeviceClass.COMPACT: CardSize(160.0, 120.0),
    DeviceClass.FULL: CardSize(200.0, 140.0),
}

# Distance kept between a card and the canvas edge
_EDGE_PADDING = {
    DeviceClass.COMPACT: 15.0,
    DeviceClass.FULL: 25.0,
}


def device_class(canvas_width: float, breakpoint: float = COMPACT_BREAKPOINT) -> DeviceClass:
    """Classify a canvas by width.

    This is the single place the compact/full decision is made; every
    consumer of card sizes goes through it.
    """
    return DeviceClass.COMPACT if canvas_width < breakpoint else DeviceClass.FULL


def card_size(cls: DeviceClass) -> CardSize:
    return _CARD_SIZES[cls]


def edge_padding(cls: DeviceClass) -> float:
    return _EDGE_PADDING[cls]


class ConnectionState(str, Enum):
    """Reachability of the store as seen by one board."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ChangeKind(str, Enum):
    """Kinds of events on the store's change feed."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ChangeEvent:
    """One change-feed notification.

    ``record`` is the raw store record; delete events may carry only the id.
    """

    kind: ChangeKind
    note_id: str
    record: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class OccupiedRect:
    """Rectangle a visible note currently covers on the canvas."""

    id: str
    x: float
    y: float
    width: float
    height: float


@dataclass
class CanvasDimensions:
    """Current size of the canvas, mutated on layout/resize events."""

    width: float = 0.0
    height: float = 0.0
    breakpoint: float = COMPACT_BREAKPOINT

    def update(self, width: float, height: float) -> None:
        self.width = width
        self.height = height

    @property
    def device_class(self) -> DeviceClass:
        return device_class(self.width, self.breakpoint)

    @property
    def card_size(self) -> CardSize:
        return card_size(self.device_class)

    @property
    def edge_padding(self) -> float:
        return edge_padding(self.device_class)


class Placement(NamedTuple):
    """Result of a placement request.

    ``degraded`` is True when the attempt limit ran out and the
    position may overlap another card.
    """

    x: float
    y: float
    degraded: bool = False


class NoteDraft(BaseModel):
    """Payload of a create request; the store assigns id and timestamp."""

    text: str = Field(..., max_length=MAX_TEXT_LENGTH, description="Note text")
    author: str = Field(..., max_length=MAX_AUTHOR_LENGTH, description="Author name")
    x: float = Field(..., description="Left edge in canvas pixels")
    y: float = Field(..., description="Top edge in canvas pixels")
    rotation: float = Field(default=0.0, description="Cosmetic tilt in degrees")
    color: NoteColor = Field(default=NoteColor.YELLOW, description="Card colour")

    model_config = {"extra": "forbid"}


class Note(BaseModel):
    """A note on the shared wall."""

    id: str = Field(..., description="Server-assigned unique ID")
    text: str = Field(..., max_length=MAX_TEXT_LENGTH, description="Note text")
    author: str = Field(..., max_length=MAX_AUTHOR_LENGTH, description="Author name")
    x: float = Field(default=0.0, description="Left edge in canvas pixels")
    y: float = Field(default=0.0, description="Top edge in canvas pixels")
    rotation: float = Field(default=0.0, description="Cosmetic tilt in degrees")
    color: NoteColor = Field(default=NoteColor.YELLOW, description="Card colour")
    created_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was created (UTC)"
    )

    model_config = {"validate_assignment": True, "extra": "ignore"}

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Note ID cannot be empty")
        return v

    @field_validator("created_at")
    @classmethod
    def validate_created_at(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_timezone_aware(v)

    def with_position(self, x: float, y: float) -> "Note":
        """Return a copy of the note moved to ``(x, y)``."""
        return self.model_copy(update={"x": x, "y": y})

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the flat record shape used on the change feed."""
        return self.model_dump(mode="json")
