"""Explicit macrofracture segments.

A segment runs from its non-propagating node (nucleation point or the point
where it entered the gridblock) to its propagating node (the tip). All node
coordinates are in the local (I, J) frame of the segment's fracture set.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from fracture_shadow.dfn.geometry import PointIJ
from fracture_shadow.population import PropagationDirection


class NodeType(Enum):
    NUCLEATION_POINT = "nucleation_point"
    PROPAGATING = "propagating"
    CONNECTED_STRESS_SHADOW = "connected_stress_shadow"
    INTERSECTION = "intersection"
    CONVERGENCE = "convergence"
    CONNECTED_GRIDBLOCK_BOUND = "connected_gridblock_bound"
    NONCONNECTED_GRIDBLOCK_BOUND = "nonconnected_gridblock_bound"


class GridDirection(Enum):
    N = "N"
    E = "E"
    S = "S"
    W = "W"
    NONE = "none"


_ID_COUNTER = itertools.count(1)


@dataclass(eq=False)
class MacrofractureSegment:
    non_prop_node: PointIJ
    prop_node: PointIJ
    prop_dir: PropagationDirection
    dipset_index: int = 0
    prop_node_type: NodeType = NodeType.PROPAGATING
    non_prop_node_type: NodeType = NodeType.NUCLEATION_POINT
    non_prop_node_boundary: GridDirection = GridDirection.NONE
    prop_node_boundary: GridDirection = GridDirection.NONE
    terminating_segment: Optional["MacrofractureSegment"] = None
    segment_id: int = field(default_factory=lambda: next(_ID_COUNTER))
    _tracking_boundary: GridDirection = field(default=GridDirection.NONE, init=False, repr=False)

    @property
    def active(self) -> bool:
        return self.prop_node_type is NodeType.PROPAGATING

    @property
    def strike_length(self) -> float:
        return abs(self.prop_node.i - self.non_prop_node.i)

    @property
    def tracking_boundary(self) -> GridDirection:
        return self._tracking_boundary

    @tracking_boundary.setter
    def tracking_boundary(self, value: GridDirection) -> None:
        # A segment can only run along the boundary it entered through
        if value is GridDirection.NONE or value is self.non_prop_node_boundary:
            self._tracking_boundary = value

    def propagate(self, length: float) -> None:
        """Move the tip ``length`` along the propagation direction (J unchanged)."""
        if length <= 0.0:
            return
        self.prop_node = self.prop_node.moved(di=self.prop_dir.sign * float(length))

    def terminate(
        self,
        node_type: NodeType,
        other: Optional["MacrofractureSegment"] = None,
        boundary: GridDirection = GridDirection.NONE,
    ) -> None:
        self.prop_node_type = node_type
        self.terminating_segment = other
        if boundary is not GridDirection.NONE:
            self.prop_node_boundary = boundary

    def mirror(self) -> "MacrofractureSegment":
        """Segment growing from the same nucleation point in the opposite direction."""
        return MacrofractureSegment(
            non_prop_node=self.non_prop_node,
            prop_node=self.non_prop_node,
            prop_dir=self.prop_dir.opposite,
            dipset_index=self.dipset_index,
            non_prop_node_type=self.non_prop_node_type,
            non_prop_node_boundary=self.non_prop_node_boundary,
        )
