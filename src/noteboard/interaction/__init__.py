"""Pointer-driven note repositioning."""

from noteboard.interaction.move import (
    DragStrategy,
    MoveCommit,
    MoveController,
    MoveModeStrategy,
    MoveState,
    MoveStrategy,
    PointerEvent,
    PointerKind,
    make_strategy,
)

__all__ = [
    "DragStrategy",
    "MoveCommit",
    "MoveController",
    "MoveModeStrategy",
    "MoveState",
    "MoveStrategy",
    "PointerEvent",
    "PointerKind",
    "make_strategy",
]
