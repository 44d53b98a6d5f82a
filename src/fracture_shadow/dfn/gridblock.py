"""Gridblock geometry: corner points, boundaries and per-set local frames."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from fracture_shadow.dfn.geometry import PointIJ, PointXY, SetFrame
from fracture_shadow.dfn.segment import GridDirection
from fracture_shadow.population import FractureSet

# Boundary edges in corner order SW -> NW -> NE -> SE -> SW
_EDGE_CORNERS = (
    (GridDirection.W, 0, 1),
    (GridDirection.N, 1, 2),
    (GridDirection.E, 2, 3),
    (GridDirection.S, 3, 0),
)


@dataclass(frozen=True)
class BoundaryEdge:
    direction: GridDirection
    start: PointIJ
    end: PointIJ
    outward_sign: float  # +1 if the outward normal is the right-hand normal of start -> end

    def outward_normal(self) -> Tuple[float, float]:
        di = self.end.i - self.start.i
        dj = self.end.j - self.start.j
        return (self.outward_sign * dj, -self.outward_sign * di)


@dataclass
class Gridblock:
    """Quadrilateral gridblock; the corners may form a concave cell.

    ``neighbours`` maps each boundary to an index into the grid's own list of
    gridblocks, or None if there is no neighbour across that boundary.
    Orientation-dependent data is only rebuilt by :meth:`update`.
    """

    sw: PointXY
    nw: PointXY
    ne: PointXY
    se: PointXY
    thickness: float = 1.0
    fracture_sets: List[FractureSet] = field(default_factory=list)
    neighbours: Dict[GridDirection, Optional[int]] = field(default_factory=dict)

    def __post_init__(self):
        if self.thickness <= 0.0:
            raise ValueError(f"thickness={self.thickness} must be positive")
        self._frames: List[SetFrame] = []
        self._edges: List[List[BoundaryEdge]] = []
        self.update()

    @property
    def corners(self) -> Tuple[PointXY, PointXY, PointXY, PointXY]:
        return (self.sw, self.nw, self.ne, self.se)

    @property
    def centre(self) -> PointXY:
        c = self.corners
        return PointXY(sum(p.x for p in c) / 4.0, sum(p.y for p in c) / 4.0)

    @property
    def area(self) -> float:
        return abs(self._signed_area(self.corners))

    @staticmethod
    def _signed_area(points) -> float:
        s = 0.0
        for a in range(len(points)):
            p, q = points[a], points[(a + 1) % len(points)]
            px, py = (p.x, p.y) if hasattr(p, "x") else (p.i, p.j)
            qx, qy = (q.x, q.y) if hasattr(q, "x") else (q.i, q.j)
            s += px * qy - qx * py
        return 0.5 * s

    def is_connected(self, direction: GridDirection) -> bool:
        return self.neighbours.get(direction) is not None

    def update(self) -> None:
        """Rebuild local frames and boundary edges for the current set strikes."""
        origin = self.centre
        self._frames = []
        self._edges = []
        for fs in self.fracture_sets:
            frame = SetFrame(strike=float(fs.strike), origin=origin)
            pts = [frame.to_ij(p) for p in self.corners]
            # Anticlockwise polygons have their outward normal on the right of each edge
            sign = 1.0 if self._signed_area(pts) > 0.0 else -1.0
            edges = [BoundaryEdge(d, pts[a], pts[b], sign) for d, a, b in _EDGE_CORNERS]
            self._frames.append(frame)
            self._edges.append(edges)

    def _check_current(self, set_index: int) -> None:
        if len(self._frames) != len(self.fracture_sets):
            raise ValueError("fracture sets changed since the last Gridblock.update()")
        if not (0 <= set_index < len(self.fracture_sets)):
            raise ValueError(f"no fracture set {set_index} in this gridblock")

    def frame(self, set_index: int) -> SetFrame:
        self._check_current(set_index)
        return self._frames[set_index]

    def boundary_edges(self, set_index: int) -> List[BoundaryEdge]:
        self._check_current(set_index)
        return self._edges[set_index]

    def edge(self, set_index: int, direction: GridDirection) -> Optional[BoundaryEdge]:
        for e in self.boundary_edges(set_index):
            if e.direction is direction:
                return e
        return None
