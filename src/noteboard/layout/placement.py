"""Random placement of note cards on the canvas."""

import logging
import random
from typing import Optional, Tuple

from noteboard.layout.registry import PositionRegistry
from noteboard.models.schema import (
    COMPACT_BREAKPOINT,
    CardSize,
    DeviceClass,
    Note,
    NoteColor,
    NoteDraft,
    Placement,
    card_size,
    device_class,
    edge_padding,
)
from noteboard.observability import metrics

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 30

# Full width of the tilt range in degrees, centred on zero
_ROTATION_SPAN = {
    DeviceClass.COMPACT: 12.0,
    DeviceClass.FULL: 15.0,
}

_PALETTE = list(NoteColor)


def placement_envelope(
    canvas_width: float, canvas_height: float, size: CardSize, padding: float
) -> Tuple[float, float, float, float]:
    """Compute ``(x_min, x_max, y_min, y_max)`` for a card's top-left corner.

    An axis on which the card does not fit collapses to a single point.
    """
    x_max = max(canvas_width - size.width - padding, 0.0)
    y_max = max(canvas_height - size.height - padding, 0.0)
    return min(padding, x_max), x_max, min(padding, y_max), y_max


def fits_within(
    x: float,
    y: float,
    size: CardSize,
    canvas_width: float,
    canvas_height: float,
    padding: float,
) -> bool:
    """Whether a card at ``(x, y)`` lies inside the padded canvas."""
    return (
        x >= padding
        and y >= padding
        and x + size.width <= canvas_width - padding
        and y + size.height <= canvas_height - padding
    )


def clamp_to_canvas(
    x: float,
    y: float,
    size: CardSize,
    canvas_width: float,
    canvas_height: float,
    padding: float,
) -> Tuple[float, float]:
    """Clamp a top-left corner into the placement envelope."""
    x_min, x_max, y_min, y_max = placement_envelope(
        canvas_width, canvas_height, size, padding
    )
    return min(max(x, x_min), x_max), min(max(y, y_min), y_max)


class PlacementAlgorithm:
    """Picks positions for notes using bounded rejection sampling.

    Reads and writes the registry it was given; never touches the note set.
    """

    def __init__(
        self,
        registry: PositionRegistry,
        rng: Optional[random.Random] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        breakpoint: float = COMPACT_BREAKPOINT,
    ):
        self.registry = registry
        self.rng = rng or random.Random()
        self.max_attempts = max_attempts
        self.breakpoint = breakpoint

    def device_class(self, canvas_width: float) -> DeviceClass:
        return device_class(canvas_width, self.breakpoint)

    def place(
        self,
        canvas_width: float,
        canvas_height: float,
        exclude_id: Optional[str] = None,
    ) -> Placement:
        """Draw a free position for a card on a canvas of the given size.

        Up to ``max_attempts`` uniform draws are made inside the envelope;
        the first one the registry reports as free wins. If none is free the
        last draw is returned with ``degraded=True``: overlap is accepted
        rather than failing.
        """
        cls = self.device_class(canvas_width)
        size = card_size(cls)
        x_min, x_max, y_min, y_max = placement_envelope(
            canvas_width, canvas_height, size, edge_padding(cls)
        )

        x = y = 0.0
        for _ in range(self.max_attempts):
            x = self.rng.uniform(x_min, x_max)
            y = self.rng.uniform(y_min, y_max)
            if not self.registry.is_occupied(x, y, size.width, size.height, exclude_id):
                return Placement(x, y)

        logger.warning(
            f"No free slot after {self.max_attempts} attempts on "
            f"{canvas_width:.0f}x{canvas_height:.0f} canvas "
            f"({len(self.registry)} cards tracked); accepting overlap"
        )
        metrics.increment("degraded_placement")
        return Placement(x, y, degraded=True)

    def place_existing(
        self, note: Note, canvas_width: float, canvas_height: float
    ) -> Placement:
        """Position a note that already has coordinates.

        A stored position that still fits the padded canvas is kept as is,
        so reloading does not shuffle cards. Otherwise the note is placed
        afresh, ignoring its own previous slot. The result is registered.
        """
        cls = self.device_class(canvas_width)
        size = card_size(cls)
        if fits_within(note.x, note.y, size, canvas_width, canvas_height, edge_padding(cls)):
            placement = Placement(note.x, note.y)
        else:
            placement = self.place(canvas_width, canvas_height, exclude_id=note.id)
            logger.debug(
                f"Note {note.id} no longer fits at ({note.x:.0f}, {note.y:.0f}); "
                f"moved to ({placement.x:.0f}, {placement.y:.0f})"
            )
        self.registry.upsert(note.id, placement.x, placement.y, size.width, size.height)
        return placement

    def random_rotation(self, cls: DeviceClass) -> float:
        """Small random tilt; narrower on compact canvases."""
        return (self.rng.random() - 0.5) * _ROTATION_SPAN[cls]

    def random_color(self) -> NoteColor:
        return self.rng.choice(_PALETTE)

    def new_draft(
        self, text: str, author: str, canvas_width: float, canvas_height: float
    ) -> NoteDraft:
        """Build the create payload for a new note.

        Position, tilt and colour are drawn once here and never recomputed.
        """
        placement = self.place(canvas_width, canvas_height)
        return NoteDraft(
            text=text,
            author=author,
            x=placement.x,
            y=placement.y,
            rotation=self.random_rotation(self.device_class(canvas_width)),
            color=self.random_color(),
        )
