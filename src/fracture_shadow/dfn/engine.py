"""Geometric interaction tests for propagating macrofracture segments.

Every predicate takes a propagating segment and the maximum length it may
still propagate in this step, and returns a :class:`PropagationCheck` whose
``max_length`` is shrunk to the nearest interaction. With ``terminate=True``
the segment's tip is tagged with the node type of the interaction.

Termination contract: stress-shadow interactions are mutual, so the partner
segment is tagged as well while it is still propagating. All other
predicates only annotate the segment being tested.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from fracture_shadow.control import PropagationControl
from fracture_shadow.dfn.geometry import PointIJ, check_crossover, strike_difference
from fracture_shadow.dfn.gridblock import BoundaryEdge, Gridblock
from fracture_shadow.dfn.segment import GridDirection, MacrofractureSegment, NodeType

# |sin| or |cos| of the strike difference above which sets count as orthogonal / parallel
ORTHOGONAL_THRESHOLD = 0.999
PARALLEL_THRESHOLD = 0.999


class StrikeRelation(Enum):
    ORTHOGONAL_PLUS = "orthogonal_plus"
    ORTHOGONAL_MINUS = "orthogonal_minus"
    OBLIQUE = "oblique"
    PARALLEL = "parallel"


@dataclass(frozen=True)
class PropagationCheck:
    hit: bool
    max_length: float
    other: Optional[MacrofractureSegment] = None
    boundary: GridDirection = GridDirection.NONE

    def __bool__(self) -> bool:
        return self.hit


class SegmentGeometryEngine:
    def __init__(self, gridblock: Gridblock, control: Optional[PropagationControl] = None):
        self.gridblock = gridblock
        self.control = control if control is not None else PropagationControl()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _width(self, set_index: int, dipset_index: int) -> float:
        return float(self.gridblock.fracture_sets[set_index].dip_sets[dipset_index].stress_shadow_width)

    def _log(self, msg: str) -> None:
        if self.control.debug_geometry:
            print(f"[dfn] {msg}")

    def _to_frame(self, p: PointIJ, from_set: int, to_set: int) -> PointIJ:
        if from_set == to_set:
            return p
        return self.gridblock.frame(from_set).convert(p, self.gridblock.frame(to_set))

    def _direction_sign(self, seg: MacrofractureSegment, from_set: int, to_set: int) -> float:
        """Sign of the segment's propagation direction projected on ``to_set``'s I axis."""
        if from_set == to_set:
            return seg.prop_dir.sign
        fi = self.gridblock.frame(from_set).i_axis
        ti = self.gridblock.frame(to_set).i_axis
        dot = fi[0] * ti[0] + fi[1] * ti[1]
        if abs(dot) < 1e-12:
            return 0.0
        return seg.prop_dir.sign * math.copysign(1.0, dot)

    def classify_strike(self, set_index: int, other_set: int) -> StrikeRelation:
        sets = self.gridblock.fracture_sets
        if other_set == set_index:
            return StrikeRelation.PARALLEL
        d = strike_difference(sets[set_index].strike, sets[other_set].strike)
        if math.cos(d) > PARALLEL_THRESHOLD:
            return StrikeRelation.PARALLEL
        if math.sin(d) > ORTHOGONAL_THRESHOLD:
            oi = self.gridblock.frame(other_set).i_axis
            pj = self.gridblock.frame(set_index).j_axis
            plus = oi[0] * pj[0] + oi[1] * pj[1] >= 0.0
            return StrikeRelation.ORTHOGONAL_PLUS if plus else StrikeRelation.ORTHOGONAL_MINUS
        return StrikeRelation.OBLIQUE

    # ------------------------------------------------------------------
    # Stress shadows
    # ------------------------------------------------------------------

    def stress_shadow_interaction(
        self,
        segment: MacrofractureSegment,
        set_index: int,
        max_length: float,
        target_set: Optional[int] = None,
        terminate: bool = False,
        check_relay: Optional[bool] = None,
    ) -> PropagationCheck:
        """First opposite-propagating tip whose stress shadow the segment runs into."""
        sets = self.gridblock.fracture_sets
        target = set_index if target_set is None else int(target_set)
        relay = self.control.relay_veto if check_relay is None else bool(check_relay)
        tol = self.control.geometry_tol

        cos_d = 1.0
        if target != set_index:
            cos_d = math.cos(strike_difference(sets[set_index].strike, sets[target].strike))
            if cos_d < 1e-3:
                return PropagationCheck(False, max_length)

        tip = segment.prop_node
        sign = segment.prop_dir.sign
        half_own = 0.5 * self._width(set_index, segment.dipset_index)

        best: Optional[MacrofractureSegment] = None
        best_dist = float(max_length)
        for other in sets[target].segments:
            if other is segment:
                continue
            # the mirror half grown from the same nucleation point
            if target == set_index and other.non_prop_node == segment.non_prop_node:
                continue
            if self._direction_sign(other, target, set_index) * sign >= 0.0:
                continue
            o_tip = self._to_frame(other.prop_node, target, set_index)
            half = half_own + 0.5 * self._width(target, other.dipset_index) / cos_d
            if abs(o_tip.j - tip.j) >= half:
                continue
            dist = (o_tip.i - tip.i) * sign
            if dist < -tol or dist > best_dist:
                continue
            if relay and self._relay_blocked(segment, other, set_index, tip, o_tip):
                self._log(f"relay veto between #{segment.segment_id} and #{other.segment_id}")
                continue
            best, best_dist = other, max(dist, 0.0)

        if best is None:
            return PropagationCheck(False, max_length)
        if terminate:
            segment.terminate(NodeType.CONNECTED_STRESS_SHADOW, best)
            if best.active:
                best.terminate(NodeType.CONNECTED_STRESS_SHADOW, segment)
        self._log(f"#{segment.segment_id} stress shadow of #{best.segment_id} at {best_dist:.4g}")
        return PropagationCheck(True, best_dist, best)

    def _relay_blocked(
        self,
        segment: MacrofractureSegment,
        other: MacrofractureSegment,
        set_index: int,
        tip: PointIJ,
        o_tip: PointIJ,
    ) -> bool:
        for k, fs in enumerate(self.gridblock.fracture_sets):
            for third in fs.segments:
                if third is segment or third is other:
                    continue
                a = self._to_frame(third.non_prop_node, k, set_index)
                b = self._to_frame(third.prop_node, k, set_index)
                if check_crossover(tip, o_tip, a, b):
                    return True
        return False

    # ------------------------------------------------------------------
    # Cross-set intersections
    # ------------------------------------------------------------------

    def fracture_intersection(
        self,
        segment: MacrofractureSegment,
        set_index: int,
        other_set: int,
        max_length: float,
        terminate: bool = False,
    ) -> PropagationCheck:
        """First segment of ``other_set`` crossed by the propagation path."""
        relation = self.classify_strike(set_index, other_set)
        if relation is StrikeRelation.PARALLEL:
            return PropagationCheck(False, max_length)

        tol = self.control.geometry_tol
        tip = segment.prop_node
        sign = segment.prop_dir.sign
        orthogonal = relation in (StrikeRelation.ORTHOGONAL_PLUS, StrikeRelation.ORTHOGONAL_MINUS)

        best: Optional[MacrofractureSegment] = None
        best_dist = float(max_length)
        for other in self.gridblock.fracture_sets[other_set].segments:
            a = self._to_frame(other.non_prop_node, other_set, set_index)
            b = self._to_frame(other.prop_node, other_set, set_index)
            if (a.j - tip.j) * (b.j - tip.j) > 0.0 or a.j == b.j:
                continue
            if orthogonal:
                cross_i = 0.5 * (a.i + b.i)
            else:
                cross_i = a.i + (tip.j - a.j) * (b.i - a.i) / (b.j - a.j)
            dist = (cross_i - tip.i) * sign
            if dist < -tol or dist > best_dist:
                continue
            best, best_dist = other, max(dist, 0.0)

        if best is None:
            return PropagationCheck(False, max_length)
        if terminate:
            segment.terminate(NodeType.INTERSECTION, best)
        self._log(f"#{segment.segment_id} intersects #{best.segment_id} ({relation.value}) at {best_dist:.4g}")
        return PropagationCheck(True, best_dist, best)

    # ------------------------------------------------------------------
    # Gridblock boundaries
    # ------------------------------------------------------------------

    def outward_crossings(self, segment: MacrofractureSegment, set_index: int) -> List[Tuple[float, BoundaryEdge]]:
        """Signed distances from the tip to every edge the propagation line leaves the cell through."""
        tip = segment.prop_node
        sign = segment.prop_dir.sign
        out = []
        for edge in self.gridblock.boundary_edges(set_index):
            a, b = edge.start, edge.end
            if a.j == b.j:
                continue
            lo, hi = (a, b) if a.j < b.j else (b, a)
            # Half-open so a vertex shared by two edges is counted once
            if not (lo.j <= tip.j < hi.j):
                continue
            n_i, _ = edge.outward_normal()
            if n_i * sign <= 0.0:
                continue
            cross_i = a.i + (tip.j - a.j) * (b.i - a.i) / (b.j - a.j)
            out.append(((cross_i - tip.i) * sign, edge))
        out.sort(key=lambda c: c[0])
        return out

    def _bound_type(self, direction: GridDirection) -> NodeType:
        if self.gridblock.is_connected(direction):
            return NodeType.CONNECTED_GRIDBLOCK_BOUND
        return NodeType.NONCONNECTED_GRIDBLOCK_BOUND

    def boundary_intersection(
        self,
        segment: MacrofractureSegment,
        set_index: int,
        max_length: float,
        terminate: bool = False,
    ) -> PropagationCheck:
        """Nearest gridblock boundary ahead of the tip.

        If no boundary lies ahead (tip already outside the cell) the length
        is set to 0 and the segment is left untouched.
        """
        tol = self.control.geometry_tol
        ahead = [
            (d, e) for d, e in self.outward_crossings(segment, set_index)
            if d >= -tol and e.direction is not segment.tracking_boundary
        ]
        if not ahead:
            self._log(f"#{segment.segment_id} found no boundary ahead of its tip")
            return PropagationCheck(False, 0.0)
        dist, edge = ahead[0]
        dist = max(dist, 0.0)
        if dist > max_length:
            return PropagationCheck(False, max_length)
        if terminate:
            segment.terminate(self._bound_type(edge.direction), boundary=edge.direction)
        return PropagationCheck(True, dist, boundary=edge.direction)

    def corner_intersection(
        self,
        segment: MacrofractureSegment,
        set_index: int,
        max_length: float,
        terminate: bool = False,
    ) -> PropagationCheck:
        """Corner reached by a segment running along its tracked boundary edge."""
        tracked = segment.tracking_boundary
        if tracked is GridDirection.NONE:
            return PropagationCheck(False, max_length)
        edges = self.gridblock.boundary_edges(set_index)
        idx = next(k for k, e in enumerate(edges) if e.direction is tracked)
        edge = edges[idx]
        # start corner is shared with the previous edge, end corner with the next
        corners = (
            (edge.start, edges[idx - 1].direction),
            (edge.end, edges[(idx + 1) % len(edges)].direction),
        )

        tol = self.control.geometry_tol
        tip = segment.prop_node
        sign = segment.prop_dir.sign
        best_dist = float(max_length)
        best_dir = GridDirection.NONE
        for corner, adjacent in corners:
            dist = (corner.i - tip.i) * sign
            if dist < -tol or dist > best_dist:
                continue
            best_dist, best_dir = max(dist, 0.0), adjacent

        if best_dir is GridDirection.NONE:
            return PropagationCheck(False, max_length)
        if terminate:
            segment.terminate(self._bound_type(best_dir), boundary=best_dir)
        return PropagationCheck(True, best_dist, boundary=best_dir)

    def check_fracture_convergence(
        self,
        segment: MacrofractureSegment,
        set_index: int,
        max_length: float,
        terminate: bool = False,
    ) -> PropagationCheck:
        """Meeting point with an opposite segment running along the same boundary edge."""
        tracked = segment.tracking_boundary
        if tracked is GridDirection.NONE:
            return PropagationCheck(False, max_length)

        tol = self.control.geometry_tol
        tip = segment.prop_node
        sign = segment.prop_dir.sign
        best: Optional[MacrofractureSegment] = None
        best_dist = float(max_length)
        for other in self.gridblock.fracture_sets[set_index].segments:
            if other is segment or other.tracking_boundary is not tracked:
                continue
            if other.prop_dir is segment.prop_dir:
                continue
            dist = (other.prop_node.i - tip.i) * sign
            if dist < -tol:
                continue
            # Two active tips meet half way
            meet = 0.5 * dist if other.active else dist
            if meet > best_dist:
                continue
            best, best_dist = other, max(meet, 0.0)

        if best is None:
            return PropagationCheck(False, max_length)
        if terminate:
            segment.terminate(NodeType.CONVERGENCE, best)
        return PropagationCheck(True, best_dist, best)
