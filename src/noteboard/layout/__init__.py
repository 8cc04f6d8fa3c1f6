"""Spatial placement: the position registry, placement and reflow."""

from noteboard.layout.placement import PlacementAlgorithm
from noteboard.layout.reflow import LayoutReflow
from noteboard.layout.registry import PositionRegistry

__all__ = [
    "PositionRegistry",
    "PlacementAlgorithm",
    "LayoutReflow",
]
