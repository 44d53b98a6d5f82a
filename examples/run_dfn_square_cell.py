#!/usr/bin/env python3
"""Propagate a handful of explicit segments across a square gridblock until they terminate."""

import argparse
import math
import sys
from pathlib import Path

# Allow running examples without installing the package
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / 'src'
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from fracture_shadow import DipSet, FractureSet, Gridblock, MacrofractureSegment, PropagationControl, SegmentGeometryEngine
from fracture_shadow.dfn import GridDirection, PointIJ, PointXY
from fracture_shadow.population import PropagationDirection
from fracture_shadow.utils import print_run_header


def _pair(j, i0, dipset_index=0):
    nucleus = PointIJ(i0, j)
    plus = MacrofractureSegment(nucleus, nucleus, PropagationDirection.IPLUS, dipset_index=dipset_index)
    return [plus, plus.mirror()]


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--step", type=float, default=5.0, help="Propagation length per step (default: 5)")
    ap.add_argument("--max-steps", type=int, default=50, help="Safety cap on propagation steps (default: 50)")
    ap.add_argument("--relay-veto", action="store_true", help="Veto shadow interactions blocked by a third fracture")
    args = ap.parse_args()

    control = PropagationControl(relay_veto=args.relay_veto, debug_geometry=True)
    sets = [
        FractureSet(strike=0.5 * math.pi, dip_sets=[DipSet(stress_shadow_width=3.0)]),
        FractureSet(strike=0.0, dip_sets=[DipSet(stress_shadow_width=2.0)]),
    ]
    gb = Gridblock(
        sw=PointXY(0.0, 0.0), nw=PointXY(0.0, 100.0), ne=PointXY(100.0, 100.0), se=PointXY(100.0, 0.0),
        fracture_sets=sets, neighbours={GridDirection.E: 1, GridDirection.N: 2},
    )
    sets[0].segments.extend(_pair(0.0, -25.0) + _pair(1.0, 25.0) + _pair(-30.0, 0.0))
    sets[1].segments.extend(_pair(10.0, 0.0))
    engine = SegmentGeometryEngine(gb, control)

    print_run_header("dfn square cell")
    for step in range(1, args.max_steps + 1):
        moving = [(k, seg) for k, fs in enumerate(sets) for seg in fs.segments if seg.active]
        if not moving:
            break
        for k, seg in moving:
            if not seg.active:
                continue
            predicates = [
                lambda length, terminate: engine.boundary_intersection(seg, k, length, terminate),
                lambda length, terminate: engine.stress_shadow_interaction(seg, k, length, terminate=terminate),
            ]
            for other in range(len(sets)):
                if other != k:
                    predicates.append(
                        lambda length, terminate, o=other: engine.fracture_intersection(seg, k, o, length, terminate)
                    )
            checks = [(p(args.step, False), p) for p in predicates]
            hits = [(c, p) for c, p in checks if c.hit]
            if not hits:
                seg.propagate(args.step)
                continue
            nearest, predicate = min(hits, key=lambda cp: cp[0].max_length)
            predicate(args.step, True)
            seg.propagate(nearest.max_length)
        print(f"[step {step:2d}] active tips: {sum(seg.active for fs in sets for seg in fs.segments)}")

    for k, fs in enumerate(sets):
        for seg in fs.segments:
            other = seg.terminating_segment.segment_id if seg.terminating_segment is not None else "-"
            print(
                f"[set{k}] #{seg.segment_id:<3d} {seg.prop_dir.name:6s} length={seg.strike_length:7.3f}"
                f"  tip={seg.prop_node_type.value}  other={other}  boundary={seg.prop_node_boundary.value}"
            )


if __name__ == "__main__":
    main()
