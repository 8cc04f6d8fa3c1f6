"""Interactive repositioning of a single note.

Each note gets a ``MoveController`` that runs a small ``Idle -> Active ->
Idle`` state machine. How pointer input drives the machine is a pluggable
``MoveStrategy``: continuous dragging or an explicit move mode where the
next click places the card. Either way the controller emits a single
``MoveCommit`` when the move ends, and that is the only thing sent on to
the store.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Type

from noteboard.exceptions import ConfigurationError
from noteboard.layout.placement import clamp_to_canvas
from noteboard.layout.registry import PositionRegistry
from noteboard.models.schema import CanvasDimensions

logger = logging.getLogger(__name__)

DEFAULT_MIN_DISPLACEMENT = 5.0


class MoveState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class PointerKind(str, Enum):
    DOWN = "down"
    MOVE = "move"
    UP = "up"
    CLICK = "click"
    TOGGLE = "toggle"
    ESCAPE = "escape"


@dataclass(frozen=True)
class PointerEvent:
    """Pointer or key input routed to one note.

    Attributes:
        kind: What happened
        x, y: Pointer position in canvas coordinates
        on_control: The pointer is over one of the note's own controls
            (delete button, move toggle)
        inside_canvas: The pointer is within the canvas bounds
    """

    kind: PointerKind
    x: float = 0.0
    y: float = 0.0
    on_control: bool = False
    inside_canvas: bool = True

    @classmethod
    def down(cls, x: float, y: float, on_control: bool = False) -> "PointerEvent":
        return cls(PointerKind.DOWN, x, y, on_control=on_control)

    @classmethod
    def move(cls, x: float, y: float) -> "PointerEvent":
        return cls(PointerKind.MOVE, x, y)

    @classmethod
    def up(cls, x: float, y: float) -> "PointerEvent":
        return cls(PointerKind.UP, x, y)

    @classmethod
    def click(
        cls, x: float, y: float, on_control: bool = False, inside_canvas: bool = True
    ) -> "PointerEvent":
        return cls(PointerKind.CLICK, x, y, on_control=on_control, inside_canvas=inside_canvas)

    @classmethod
    def toggle(cls) -> "PointerEvent":
        return cls(PointerKind.TOGGLE, on_control=True)

    @classmethod
    def escape(cls) -> "PointerEvent":
        return cls(PointerKind.ESCAPE)


@dataclass(frozen=True)
class MoveCommit:
    """Final position of a finished move, ready to be sent downstream."""

    note_id: str
    x: float
    y: float


class MoveController:
    """Per-note move state machine.

    Only reads the canvas for bounds and keeps the registry in step with
    the card while it moves; the canonical note set is not touched here.
    """

    def __init__(
        self,
        note_id: str,
        x: float,
        y: float,
        canvas: CanvasDimensions,
        registry: PositionRegistry,
        strategy: "MoveStrategy",
        min_displacement: float = DEFAULT_MIN_DISPLACEMENT,
    ):
        self.note_id = note_id
        self.canvas = canvas
        self.registry = registry
        self.strategy = strategy
        self.min_displacement = min_displacement
        self.state = MoveState.IDLE
        self.position: Tuple[float, float] = (x, y)
        self.committed: Tuple[float, float] = (x, y)
        self._pointer_origin: Optional[Tuple[float, float]] = None
        self._start: Tuple[float, float] = (x, y)

    @property
    def active(self) -> bool:
        return self.state is MoveState.ACTIVE

    def handle(self, event: PointerEvent) -> Optional[MoveCommit]:
        """Feed one input event; returns a commit when a move finishes."""
        return self.strategy.handle(self, event)

    def sync_position(self, x: float, y: float) -> None:
        """Adopt a position from the note set, unless a move is under way."""
        if self.active:
            return
        self.position = (x, y)
        self.committed = (x, y)

    def cancel(self) -> None:
        """Abort an active move and put the card back where it started."""
        if not self.active:
            return
        self._place(*self._start)
        self._reset()

    def activate(self, pointer: Optional[Tuple[float, float]] = None) -> None:
        self.state = MoveState.ACTIVE
        self._pointer_origin = pointer
        self._start = self.position
        logger.debug(f"Move started for note {self.note_id} at {self.position}")

    def drag_to(self, pointer_x: float, pointer_y: float) -> None:
        """Shift the card by the pointer's offset from where the drag began."""
        origin_x, origin_y = self._pointer_origin or (pointer_x, pointer_y)
        self._place(
            self._start[0] + pointer_x - origin_x,
            self._start[1] + pointer_y - origin_y,
        )

    def center_on(self, pointer_x: float, pointer_y: float) -> None:
        size = self.canvas.card_size
        self._place(pointer_x - size.width / 2, pointer_y - size.height / 2)

    def displacement(self) -> float:
        """Distance between the card now and where the move started."""
        return math.hypot(
            self.position[0] - self._start[0], self.position[1] - self._start[1]
        )

    def finish(self, commit: bool) -> Optional[MoveCommit]:
        """Return to Idle, emitting a commit or reverting the card."""
        if not commit:
            self._place(*self._start)
            self._reset()
            logger.debug(f"Move of note {self.note_id} ended without commit")
            return None
        self.committed = self.position
        self._reset()
        logger.debug(f"Move of note {self.note_id} committed at {self.position}")
        return MoveCommit(self.note_id, *self.position)

    def _place(self, x: float, y: float) -> None:
        size = self.canvas.card_size
        x, y = clamp_to_canvas(
            x, y, size, self.canvas.width, self.canvas.height, self.canvas.edge_padding
        )
        self.position = (x, y)
        self.registry.upsert(self.note_id, x, y, size.width, size.height)

    def _reset(self) -> None:
        self.state = MoveState.IDLE
        self._pointer_origin = None


class MoveStrategy(ABC):
    """Maps input events onto a controller's state transitions."""

    name: str = ""

    @abstractmethod
    def handle(self, controller: MoveController, event: PointerEvent) -> Optional[MoveCommit]:
        """Apply ``event`` to ``controller``; return a commit if the move ended."""


class DragStrategy(MoveStrategy):
    """Press on the card, drag, release.

    A release commits only when the card travelled more than the
    controller's minimum displacement; smaller moves snap back and never
    reach the store.
    """

    name = "drag"

    def handle(self, controller: MoveController, event: PointerEvent) -> Optional[MoveCommit]:
        if not controller.active:
            if event.kind is PointerKind.DOWN and not event.on_control:
                controller.activate((event.x, event.y))
            return None

        if event.kind is PointerKind.MOVE:
            controller.drag_to(event.x, event.y)
        elif event.kind is PointerKind.UP:
            controller.drag_to(event.x, event.y)
            return controller.finish(
                controller.displacement() > controller.min_displacement
            )
        elif event.kind is PointerKind.ESCAPE:
            controller.cancel()
        return None


class MoveModeStrategy(MoveStrategy):
    """Toggle move mode, then click where the card should go.

    While active every click inside the canvas (and off the card's own
    controls) centres the card on the click. Toggling again, pressing
    Escape or clicking outside the canvas leaves move mode and commits if
    the card ended up somewhere new.
    """

    name = "move_mode"

    def handle(self, controller: MoveController, event: PointerEvent) -> Optional[MoveCommit]:
        if not controller.active:
            if event.kind is PointerKind.TOGGLE:
                controller.activate()
            return None

        if event.kind is PointerKind.CLICK:
            if not event.inside_canvas:
                return self._leave(controller)
            if not event.on_control:
                controller.center_on(event.x, event.y)
        elif event.kind in (PointerKind.TOGGLE, PointerKind.ESCAPE):
            return self._leave(controller)
        return None

    @staticmethod
    def _leave(controller: MoveController) -> Optional[MoveCommit]:
        if controller.position == controller.committed:
            controller.finish(commit=False)
            return None
        return controller.finish(commit=True)


STRATEGIES: Dict[str, Type[MoveStrategy]] = {
    DragStrategy.name: DragStrategy,
    MoveModeStrategy.name: MoveModeStrategy,
}


def make_strategy(name: str) -> MoveStrategy:
    """Instantiate the move strategy registered under ``name``."""
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown move strategy '{name}'", config_key="move_strategy"
        ) from None
