"""Re-placement of all notes after a material canvas resize."""

import logging
from typing import List, Optional, Sequence

from noteboard.layout.placement import PlacementAlgorithm
from noteboard.models.schema import Note

logger = logging.getLogger(__name__)

DEFAULT_DETECT_THRESHOLD = 50.0
DEFAULT_TRIGGER_THRESHOLD = 100.0


class LayoutReflow:
    """Decides when a resize warrants redistributing the notes.

    Two thresholds damp observer jitter: changes up to ``detect_threshold``
    on both axes are ignored outright, and only changes beyond
    ``trigger_threshold`` on some axis redistribute. Nothing happens until
    the initial load has been marked, so loaded positions are never
    perturbed.
    """

    def __init__(
        self,
        placement: PlacementAlgorithm,
        detect_threshold: float = DEFAULT_DETECT_THRESHOLD,
        trigger_threshold: float = DEFAULT_TRIGGER_THRESHOLD,
    ):
        self.placement = placement
        self.detect_threshold = detect_threshold
        self.trigger_threshold = trigger_threshold
        self.width = 0.0
        self.height = 0.0
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    def mark_loaded(self, width: float, height: float) -> None:
        """Record the baseline size once the initial note set is in place."""
        self.width = width
        self.height = height
        self._loaded = True

    def reset(self) -> None:
        """Re-arm the initial-load guard (e.g. before a refresh)."""
        self._loaded = False

    def observe(
        self, width: float, height: float, notes: Sequence[Note]
    ) -> Optional[List[Note]]:
        """Feed a canvas size sample.

        Returns the re-positioned notes, in input order, when a reflow ran;
        otherwise None.
        """
        width_diff = abs(width - self.width)
        height_diff = abs(height - self.height)

        if width_diff <= self.detect_threshold and height_diff <= self.detect_threshold:
            return None

        self.width = width
        self.height = height

        if not notes or not self._loaded:
            return None
        if width_diff <= self.trigger_threshold and height_diff <= self.trigger_threshold:
            return None

        logger.info(
            f"Canvas resized to {width:.0f}x{height:.0f} "
            f"(dw={width_diff:.0f}, dh={height_diff:.0f}); redistributing {len(notes)} notes"
        )
        return self.redistribute(notes, width, height)

    def redistribute(
        self, notes: Sequence[Note], width: float, height: float
    ) -> List[Note]:
        """Clear the registry and re-place every note in order."""
        self.placement.registry.clear()
        result = []
        for note in notes:
            placement = self.placement.place_existing(note, width, height)
            if (placement.x, placement.y) == (note.x, note.y):
                result.append(note)
            else:
                result.append(note.with_position(placement.x, placement.y))
        return result
