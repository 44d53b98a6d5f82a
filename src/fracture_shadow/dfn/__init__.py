"""Explicit discrete fracture network: segments, gridblocks and their geometric interactions."""

from .geometry import (
    CrossoverMode,
    PointIJ,
    PointXY,
    SetFrame,
    angular_difference,
    check_crossover,
    crossover_point,
    strike_difference,
)
from .segment import GridDirection, MacrofractureSegment, NodeType
from .gridblock import BoundaryEdge, Gridblock
from .engine import PropagationCheck, SegmentGeometryEngine, StrikeRelation

__all__ = [
    "CrossoverMode", "PointIJ", "PointXY", "SetFrame",
    "angular_difference", "check_crossover", "crossover_point", "strike_difference",
    "GridDirection", "MacrofractureSegment", "NodeType",
    "BoundaryEdge", "Gridblock",
    "PropagationCheck", "SegmentGeometryEngine", "StrikeRelation",
]
