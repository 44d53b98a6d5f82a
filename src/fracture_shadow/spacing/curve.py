"""Piecewise spacing curve S(x) of a fracture set.

S(x) is the linear density of gaps between adjacent stress shadows that are
at least ``x`` long. Dip sets are sorted by descending stress-shadow width
``W_1 >= ... >= W_n`` and the curve is defined interval by interval, with
interval ``k`` (0-based) spanning ``[W_{k+1}, W_k)`` in 1-based notation,
``W_0 = inf`` and ``W_{n+1} = 0``:

    S(x) = (AA_k + CC_k) exp(-BB_k (x - lower_k)) - CC_k

or, when ``float32(CC_k) == float32(CC_k + BB_k)``, the straight line between
``AA_k`` at the lower end and ``AA_{k-1}`` at the upper end.

``AA_k = S(lower_k)`` so ``AA_n`` is the total density and ``S(inf) = 0``.

Reference: Welch et al., "Fracture spacing distributions in layer-bound
fracture sets" (exclusion-zone formulation of stress-shadow spacing).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from fracture_shadow.pieces import Piece, decay, exp_span


@dataclass(frozen=True, eq=False)
class SpacingCurve:
    widths: np.ndarray  # (n,) descending
    aa: np.ndarray  # (n + 1,)
    bb: np.ndarray  # (n + 1,)
    cc: np.ndarray  # (n + 1,)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_arrays(cls, widths: Sequence[float], aa, bb, cc) -> "SpacingCurve":
        w = np.asarray(widths, dtype=float).copy()
        n = w.size
        arrays = [np.asarray(v, dtype=float).copy() for v in (aa, bb, cc)]
        for name, arr in zip(("aa", "bb", "cc"), arrays):
            if arr.shape != (n + 1,):
                raise ValueError(f"{name} must have length {n + 1}, got {arr.shape}")
        if arrays[0][0] > 0.0 and not arrays[1][0] > 0.0:
            raise ValueError("the open-ended interval needs a positive decay rate BB")
        for arr in (w, *arrays):
            arr.setflags(write=False)
        return cls(w, *arrays)

    @classmethod
    def empty(cls, widths: Sequence[float]) -> "SpacingCurve":
        n = len(widths)
        return cls.from_arrays(widths, np.zeros(n + 1), np.zeros(n + 1), np.zeros(n + 1))

    @classmethod
    def poisson(cls, widths: Sequence[float], density: float, clear_volume: float) -> "SpacingCurve":
        """Randomly placed fractures: S(x) = rho exp(-rho x / clear_volume)."""
        w = np.asarray(widths, dtype=float)
        rho = float(density)
        if rho <= 0.0:
            return cls.empty(w)
        rate = rho / clear_volume if clear_volume > 0.0 else math.inf
        aa = np.array([rho * decay(rate, float(x)) for x in w] + [rho], dtype=float)
        bb = np.full(w.size + 1, rate, dtype=float)
        return cls.from_arrays(w, aa, bb, np.zeros(w.size + 1))

    @classmethod
    def evenly_distributed(cls, n_dipsets: int, density: float) -> "SpacingCurve":
        """No stress shadows: AA = BB = total density and CC = 0 on every interval."""
        rho = max(float(density), 0.0)
        full = np.full(n_dipsets + 1, rho, dtype=float)
        return cls.from_arrays(np.zeros(n_dipsets), full, full, np.zeros(n_dipsets + 1))

    # ------------------------------------------------------------------
    # Interval geometry
    # ------------------------------------------------------------------

    @property
    def n_dipsets(self) -> int:
        return int(self.widths.size)

    @property
    def n_intervals(self) -> int:
        return int(self.widths.size) + 1

    @property
    def total_density(self) -> float:
        return float(self.aa[-1])

    def lower(self, k: int) -> float:
        return float(self.widths[k]) if k < self.n_dipsets else 0.0

    def upper(self, k: int) -> float:
        return math.inf if k == 0 else float(self.widths[k - 1])

    def span(self, k: int) -> float:
        return self.upper(k) - self.lower(k)

    def is_linear(self, k: int) -> bool:
        if k == 0 or not self.span(k) > 0.0:
            return False
        c = self.cc[k]
        return bool(np.float32(c) == np.float32(c + self.bb[k]))

    def locate(self, x: float) -> int:
        for k in range(self.n_intervals):
            if x >= self.lower(k):
                return k
        return self.n_intervals - 1

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, x: float) -> float:
        """Density of gaps of length >= x."""
        x = max(float(x), 0.0)
        if math.isinf(x) or self.total_density <= 0.0:
            return 0.0
        k = self.locate(x)
        t = x - self.lower(k)
        A = float(self.aa[k])
        if self.is_linear(k):
            B = float(self.aa[k - 1])
            return A + (B - A) * t / self.span(k)
        C = float(self.cc[k])
        return (A + C) * decay(float(self.bb[k]), t) - C

    def interval_volume(self, k: int, start: float = 0.0) -> float:
        """Integral of S over [max(start, lower_k), upper_k)."""
        L = self.lower(k)
        span = self.span(k)
        t0 = max(float(start) - L, 0.0)
        if not span > t0:
            return 0.0
        A = float(self.aa[k])
        if A <= 0.0 and k == 0:
            return 0.0
        if self.is_linear(k):
            B = float(self.aa[k - 1])
            return A * (span - t0) + (B - A) * (span * span - t0 * t0) / (2.0 * span)
        C = float(self.cc[k])
        b = float(self.bb[k])
        vol = (A + C) * exp_span(b, t0, span) if (A + C) != 0.0 else 0.0
        if C != 0.0:
            vol -= C * (span - t0)
        return vol

    def integral_above(self, width: float) -> float:
        """Unclamped gap volume beyond ``width``: integral of S over [width, inf)."""
        w = max(float(width), 0.0)
        total = 0.0
        for k in range(self.n_intervals):
            if self.upper(k) <= w:
                break
            total += self.interval_volume(k, w)
        return total

    def total_volume(self) -> float:
        return self.integral_above(0.0)

    def clear_zone_volume(self, width: float) -> float:
        """Volume fraction in which a shadow of ``width`` fits without overlap, in [0, 1]."""
        if self.total_density <= 0.0:
            return 1.0
        return float(min(max(self.integral_above(width), 0.0), 1.0))

    def gap_pieces(self) -> List[Piece]:
        """Exact piecewise representation of x -> integral_above(x) on [0, inf)."""
        pieces: List[Piece] = []
        if self.total_density <= 0.0:
            return pieces
        cz_upper = 0.0
        for k in range(self.n_intervals):
            L, U, span = self.lower(k), self.upper(k), self.span(k)
            if not span > 0.0:
                continue
            A = float(self.aa[k])
            if self.is_linear(k):
                B = float(self.aa[k - 1])
                p = Piece(
                    start=L, end=U,
                    c=cz_upper + A * span + 0.5 * (B - A) * span,
                    m=-A,
                    q=-(B - A) / (2.0 * span),
                )
            else:
                C = float(self.cc[k])
                b = float(self.bb[k])
                if k == 0 and A <= 0.0:
                    p = Piece(start=L, end=U)
                elif math.isinf(b):
                    c0 = cz_upper - C * span if C != 0.0 else cz_upper
                    p = Piece(start=L, end=U, c=c0, m=C)
                else:
                    a = (A + C) / b
                    c0 = cz_upper - a * decay(b, span)
                    if C != 0.0:
                        c0 -= C * span
                    p = Piece(start=L, end=U, a=a, k=b, c=c0, m=C)
            pieces.append(p)
            cz_upper = p.value(L)
        pieces.reverse()
        return pieces

    def describe(self) -> str:
        rows = []
        for k in range(self.n_intervals):
            shape = "lin" if self.is_linear(k) else "exp"
            rows.append(
                f"[{self.lower(k):.4g}, {self.upper(k):.4g}) {shape} "
                f"AA={self.aa[k]:.5g} BB={self.bb[k]:.5g} CC={self.cc[k]:.5g}"
            )
        return "\n".join(rows)
