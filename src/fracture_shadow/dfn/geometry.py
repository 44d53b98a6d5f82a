"""Planar geometry helpers for the explicit DFN.

Azimuths and strikes are measured in radians clockwise from north (+Y), with
X pointing east. Each fracture set works in a local frame with I along strike
and J perpendicular to it, anticlockwise from I.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class PointXY:
    x: float
    y: float


@dataclass(frozen=True)
class PointIJ:
    i: float
    j: float

    def moved(self, di: float = 0.0, dj: float = 0.0) -> "PointIJ":
        return PointIJ(self.i + di, self.j + dj)


class CrossoverMode(Enum):
    """How to treat crossover points outside the first segment."""

    EXTEND = "extend"
    TRIM = "trim"
    RESTRICT = "restrict"


def angular_difference(azimuth1: float, azimuth2: float) -> float:
    """Smallest angle between two azimuths in [0, 2pi)."""
    d = abs(azimuth1 - azimuth2)
    return d if d < math.pi else 2.0 * math.pi - d


def strike_difference(strike1: float, strike2: float) -> float:
    """Smallest angle between two (non-directional) strikes, in [0, pi/2]."""
    s1 = math.fmod(strike1, math.pi)
    s2 = math.fmod(strike2, math.pi)
    if s1 < 0.0:
        s1 += math.pi
    if s2 < 0.0:
        s2 += math.pi
    d = abs(s1 - s2)
    return d if d < 0.5 * math.pi else math.pi - d


def check_crossover(p1, p2, q1, q2) -> bool:
    """True if segment p1-p2 crosses segment q1-q2 (end points included).

    Points are any objects with ``x``/``y`` or ``i``/``j`` attributes, or
    2-sequences.
    """
    x1, y1 = _xy(p1)
    x2, y2 = _xy(q1)
    dx1, dy1 = _xy(p2)[0] - x1, _xy(p2)[1] - y1
    dx2, dy2 = _xy(q2)[0] - x2, _xy(q2)[1] - y2

    den = dx2 * dy1 - dx1 * dy2
    if den == 0.0:
        return False
    p = (dx2 * (y2 - y1) - (x2 - x1) * dy2) / den
    if p < 0.0 or p > 1.0:
        return False
    den = dx1 * dy2 - dx2 * dy1
    p = (dx1 * (y1 - y2) - (x1 - x2) * dy1) / den
    return 0.0 <= p <= 1.0


def crossover_point(p1, p2, q1, q2, mode: CrossoverMode = CrossoverMode.EXTEND) -> Optional[Tuple[float, float]]:
    """Crossover of line p1-p2 with line q1-q2, as a position on the first line.

    Returns None for parallel or degenerate lines (single-precision test on
    the denominator), or for RESTRICT when the crossover lies outside p1-p2.
    TRIM clamps it to the nearest end of p1-p2.
    """
    x1, y1 = _xy(p1)
    x2, y2 = _xy(q1)
    dx1, dy1 = _xy(p2)[0] - x1, _xy(p2)[1] - y1
    dx2, dy2 = _xy(q2)[0] - x2, _xy(q2)[1] - y2

    den = dx2 * dy1 - dx1 * dy2
    if np.float32(den) == np.float32(0.0):
        return None
    p = (dx2 * (y2 - y1) - (x2 - x1) * dy2) / den
    if mode is CrossoverMode.TRIM:
        p = min(max(p, 0.0), 1.0)
    elif mode is CrossoverMode.RESTRICT and (p < 0.0 or p > 1.0):
        return None
    return (x1 + p * dx1, y1 + p * dy1)


def _xy(p) -> Tuple[float, float]:
    if hasattr(p, "x"):
        return float(p.x), float(p.y)
    if hasattr(p, "i"):
        return float(p.i), float(p.j)
    return float(p[0]), float(p[1])


@dataclass(frozen=True)
class SetFrame:
    """Local (I, J) frame of a fracture set with its origin at the gridblock centre."""

    strike: float
    origin: PointXY

    @property
    def i_axis(self) -> Tuple[float, float]:
        return (math.sin(self.strike), math.cos(self.strike))

    @property
    def j_axis(self) -> Tuple[float, float]:
        return (-math.cos(self.strike), math.sin(self.strike))

    def to_ij(self, p: PointXY) -> PointIJ:
        dx = p.x - self.origin.x
        dy = p.y - self.origin.y
        ix, iy = self.i_axis
        jx, jy = self.j_axis
        return PointIJ(dx * ix + dy * iy, dx * jx + dy * jy)

    def to_xy(self, p: PointIJ) -> PointXY:
        ix, iy = self.i_axis
        jx, jy = self.j_axis
        return PointXY(self.origin.x + p.i * ix + p.j * jx, self.origin.y + p.i * iy + p.j * jy)

    def convert(self, p: PointIJ, other: "SetFrame") -> PointIJ:
        """Re-express a point given in this frame in ``other``'s frame."""
        return other.to_ij(self.to_xy(p))
