"""Index of the rectangles occupied by visible notes."""

from typing import Dict, List, Optional

from noteboard.models.schema import OccupiedRect

DEFAULT_COLLISION_PADDING = 20.0


class PositionRegistry:
    """Process-local mapping of note id to the rectangle it occupies.

    A plain mapping rather than a spatial index: lookups are linear,
    which is fine for the hundred or so cards a wall shows at once.
    Each board owns its own instance.
    """

    def __init__(self, padding: float = DEFAULT_COLLISION_PADDING):
        self.padding = padding
        self._rects: Dict[str, OccupiedRect] = {}

    def upsert(self, note_id: str, x: float, y: float, width: float, height: float) -> None:
        """Record the rectangle for ``note_id``, replacing any previous one."""
        self._rects[note_id] = OccupiedRect(note_id, x, y, width, height)

    def remove(self, note_id: str) -> None:
        """Forget ``note_id``; unknown ids are ignored."""
        self._rects.pop(note_id, None)

    def clear(self) -> None:
        self._rects.clear()

    def get(self, note_id: str) -> Optional[OccupiedRect]:
        return self._rects.get(note_id)

    def rects(self) -> List[OccupiedRect]:
        """Snapshot of all tracked rectangles."""
        return list(self._rects.values())

    def is_occupied(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        exclude_id: Optional[str] = None,
        padding: Optional[float] = None,
    ) -> bool:
        """Check whether a rectangle conflicts with any tracked one.

        Two rectangles conflict unless they are separated on at least one
        axis by more than ``padding``.
        """
        pad = self.padding if padding is None else padding
        for rect in self._rects.values():
            if exclude_id is not None and rect.id == exclude_id:
                continue
            separated = (
                x > rect.x + rect.width + pad
                or x + width + pad < rect.x
                or y > rect.y + rect.height + pad
                or y + height + pad < rect.y
            )
            if not separated:
                return True
        return False

    def __len__(self) -> int:
        return len(self._rects)

    def __contains__(self, note_id: object) -> bool:
        return note_id in self._rects
