"""Piecewise exponential-plus-quadratic functions and their exponential moments.

A :class:`Piece` represents, on ``[start, end)``,

    f(x) = a * exp(-k (x - start)) + c + m (x - start) + q (x - start)**2

which is the shape of every clear-zone and inverse-proximity-zone integral in
the spacing model. Products with ``exp(-F x)`` can then be integrated exactly.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Iterable, List

from scipy.special import exprel


def decay(rate: float, t: float) -> float:
    """exp(-rate * t) with the limits used throughout the package (t <= 0 -> 1, rate = inf -> 0)."""
    if t <= 0.0:
        return 1.0
    if math.isinf(rate) and rate > 0.0:
        return 0.0
    return math.exp(-rate * t)


def exp_span(rate: float, t0: float, t1: float) -> float:
    """Integral of exp(-rate * t) over [t0, t1]; t1 may be +inf."""
    if not t1 > t0:
        return 0.0
    if math.isinf(rate) and rate > 0.0:
        return 0.0
    span = t1 - t0
    if math.isinf(span):
        return decay(rate, t0) / rate if rate > 0.0 else math.inf
    return decay(rate, t0) * span * float(exprel(-rate * span))


def exp_moment(n: int, lam: float, span: float) -> float:
    """Integral of t**n * exp(-lam * t) over [0, span], for n in {0, 1, 2}.

    Parameters
    ----------
    n : int
        Moment order (0, 1 or 2).
    lam : float
        Decay rate; may be zero or negative for finite spans.
    span : float
        Upper limit; +inf is allowed if ``lam > 0``.

    Returns
    -------
    float
        The moment (``inf`` for a divergent infinite integral).
    """
    if n not in (0, 1, 2):
        raise ValueError(f"exp_moment supports n in (0, 1, 2), got {n}")
    if not span > 0.0:
        return 0.0
    if math.isinf(lam) and lam > 0.0:
        return 0.0
    if math.isinf(span):
        if lam <= 0.0:
            return math.inf
        return math.factorial(n) / lam ** (n + 1)

    x = lam * span
    if abs(x) < 1e-2:
        # Taylor series in lam
        total = 0.0
        for j in range(4):
            total += (-lam) ** j * span ** (n + j + 1) / (math.factorial(j) * (n + j + 1))
        return total

    e = math.exp(-x)
    if n == 0:
        return span * float(exprel(-x))
    if n == 1:
        return (1.0 - e * (1.0 + x)) / lam ** 2
    return (2.0 - e * (x * x + 2.0 * x + 2.0)) / lam ** 3


@dataclass(frozen=True)
class Piece:
    start: float
    end: float
    a: float = 0.0
    k: float = 0.0
    c: float = 0.0
    m: float = 0.0
    q: float = 0.0

    def contains(self, x: float) -> bool:
        return self.start <= x < self.end

    def value(self, x: float) -> float:
        t = float(x) - self.start
        out = self.c + self.m * t + self.q * t * t
        if self.a != 0.0:
            out += self.a * decay(self.k, t)
        return out

    def shifted_to(self, new_start: float) -> "Piece":
        """Same function, re-expanded about ``new_start`` (must lie inside the piece)."""
        d = float(new_start) - self.start
        if d == 0.0:
            return self
        a = self.a * decay(self.k, d) if self.a != 0.0 else 0.0
        return Piece(
            start=float(new_start),
            end=self.end,
            a=a,
            k=self.k,
            c=self.c + self.m * d + self.q * d * d,
            m=self.m + 2.0 * self.q * d,
            q=self.q,
        )

    def translated(self, offset: float) -> "Piece":
        return replace(self, start=self.start + offset, end=self.end + offset)

    def scaled(self, factor: float) -> "Piece":
        return replace(self, a=self.a * factor, c=self.c * factor, m=self.m * factor, q=self.q * factor)

    def stretched(self, s: float) -> "Piece":
        """Express f(s * l) as a piece in ``l`` (s > 0)."""
        return Piece(
            start=self.start / s,
            end=self.end / s,
            a=self.a,
            k=self.k * s,
            c=self.c,
            m=self.m * s,
            q=self.q * s * s,
        )

    def exp_weighted_integral(self, rate: float, lower: float) -> float:
        """Integral of exp(-rate * x) * f(x) over [max(lower, start), end)."""
        lo = max(float(lower), self.start)
        if not self.end > lo:
            return 0.0
        p = self.shifted_to(lo)
        span = self.end - lo
        total = 0.0
        if p.a != 0.0:
            total += p.a * exp_moment(0, rate + p.k, span)
        if p.c != 0.0:
            total += p.c * exp_moment(0, rate, span)
        if p.m != 0.0:
            total += p.m * exp_moment(1, rate, span)
        if p.q != 0.0:
            total += p.q * exp_moment(2, rate, span)
        if total == 0.0:
            return 0.0
        return decay(rate, lo) * total if rate >= 0.0 else math.exp(-rate * lo) * total


def crop(pieces: Iterable[Piece], lower: float) -> List[Piece]:
    """Restrict a piece list to [lower, inf), re-expanding the piece that straddles ``lower``."""
    out = []
    for p in pieces:
        if p.end <= lower:
            continue
        out.append(p.shifted_to(lower) if p.start < lower else p)
    return out


def evaluate_pieces(pieces: List[Piece], x: float) -> float:
    for p in pieces:
        if p.contains(x):
            return p.value(x)
    return 0.0
