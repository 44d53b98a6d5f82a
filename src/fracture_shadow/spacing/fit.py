"""Fit of the spacing-curve decay coefficients to a target gap volume.

Given the breakpoint densities AA (one per dip-set width plus the total
density) and a decay rate for the open-ended interval, the remaining freedom
is one CC per closed interval. The fit ties them together as
``CC_k = CC_last * AA_k / AA_last`` and solves for ``CC_last`` with a fixed
number of Newton-Raphson steps on the closed-form interval volumes. Whatever
residual is left over is absorbed by BB of the open-ended interval, so the
total gap volume matches ``one_minus_psi`` whenever that interval is
populated.
"""

from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np

from fracture_shadow.spacing.curve import SpacingCurve


def decay_rate(base: float, top: float, cc: float, span: float) -> float:
    """BB of an interval running from ``base`` (lower end) to ``top`` (upper end).

    Non-positive log arguments, NaN and -inf all map to +inf, i.e. an
    L-shaped interval.
    """
    den = top + cc
    if den == 0.0:
        return math.inf
    ratio = (base + cc) / den
    if not ratio > 0.0 or math.isinf(ratio):
        return math.inf
    b = math.log(ratio) / span
    if math.isnan(b) or b == -math.inf:
        return math.inf
    return b


def interval_volume_cc(base: float, top: float, cc: float, span: float) -> Tuple[float, float]:
    """Volume of a closed interval for a given CC, and its derivative d(volume)/d(CC)."""
    if base - top <= 0.0:
        return base * span, 0.0
    b = decay_rate(base, top, cc, span)
    if math.isinf(b):
        return top * span, 0.0
    if np.float32(cc) == np.float32(cc + b):
        return 0.5 * (base + top) * span, 0.0
    drop = base - top
    vol = drop / b - cc * span
    dvol = drop * drop / (b * b * (base + cc) * (top + cc) * span) - span
    return vol, dvol



def _floor_volume(a: np.ndarray, spans: np.ndarray, allow_negative_cc: bool) -> float:
    """Smallest volume the closed intervals can hold for breakpoints ``a``."""
    if allow_negative_cc:
        return float(np.sum(a[:-1] * spans))
    return float(sum(interval_volume_cc(a[k], a[k - 1], 0.0, spans[k - 1])[0] for k in range(1, a.size)))


def _scaled(a: np.ndarray, s: float) -> np.ndarray:
    # Every breakpoint except the total density
    out = a.copy()
    out[:-1] *= s
    return out


def _seed_top(a: np.ndarray, spans: np.ndarray, target: float, allow_negative_cc: bool) -> np.ndarray:
    """Give an empty open-ended interval some gaps, keeping the floor below ``target``."""
    v_floor = _floor_volume(a, spans, allow_negative_cc)
    limit = v_floor + 0.5 * (target - v_floor)
    seed = float(a[-1])
    lifted = a.copy()
    for _ in range(60):
        lifted = a.copy()
        lifted[:-1] = np.maximum(lifted[:-1], seed)
        if _floor_volume(lifted, spans, allow_negative_cc) <= limit:
            break
        seed *= 0.5
    return lifted


def _floor_scale(a: np.ndarray, spans: np.ndarray, target: float, top_volume: float, allow_negative_cc: bool) -> float:
    """Factor on AA_0..AA_{n-1} that brings floor plus open-ended volume down to ``target``."""
    if target > _floor_volume(a, spans, allow_negative_cc):
        return 1.0
    if allow_negative_cc:
        return target / (float(np.sum(a[:-1] * spans)) + top_volume)
    lo, hi = 0.0, 1.0
    for _ in range(60):
        s = 0.5 * (lo + hi)
        if _floor_volume(_scaled(a, s), spans, False) + s * top_volume > target:
            hi = s
        else:
            lo = s
    return lo


def fit_spacing_curve(
    one_minus_psi: float,
    total_density: float,
    widths: Sequence[float],
    aa: Sequence[float],
    bb1: float,
    cc_guess: float = 0.0,
    allow_negative_cc: bool = True,
    iterations: int = 2,
    debug: bool = False,
) -> SpacingCurve:
    """Fit BB and CC so that the gap volume of the curve equals ``one_minus_psi``.

    Parameters
    ----------
    one_minus_psi : float
        Target gap volume, i.e. the volume outside all stress shadows.
    total_density : float
        Total macrofracture density (AA of the last interval).
    widths : sequence of float
        Stress-shadow widths sorted in descending order.
    aa : sequence of float
        Breakpoint densities, length ``len(widths) + 1``.
    bb1 : float
        Predicted decay rate of the open-ended interval.
    cc_guess : float
        Starting value for CC of the last interval.
    allow_negative_cc : bool
        Whether CC may go negative (L-shaped floors).
    iterations : int
        Number of Newton-Raphson steps.

    Returns
    -------
    SpacingCurve
        A curve whose ``total_volume()`` equals ``one_minus_psi`` and with
        ``AA_k + CC_k >= 0`` on every interval. If the target lies below the
        floor the breakpoints AA_0..AA_{n-1} are scaled down; if the
        open-ended interval is empty but room is left, it is seeded.
    """
    w = np.asarray(widths, dtype=float)
    n = int(w.size)
    if n == 0:
        raise ValueError("fit_spacing_curve needs at least one dip set width")
    rho = float(total_density)
    if rho <= 0.0:
        return SpacingCurve.empty(w)

    a = np.asarray(aa, dtype=float).copy()
    if a.shape != (n + 1,):
        raise ValueError(f"aa must have length {n + 1}, got {a.shape}")
    a[n] = rho
    a = np.maximum.accumulate(np.clip(a, 0.0, rho))
    target = max(float(one_minus_psi), 0.0)

    spans = np.array([w[k - 1] - (w[k] if k < n else 0.0) for k in range(1, n + 1)], dtype=float)
    live = spans > 0.0
    bb = np.zeros(n + 1, dtype=float)
    cc = np.zeros(n + 1, dtype=float)

    if not a[0] > 0.0 and target > _floor_volume(a, spans, allow_negative_cc):
        a = _seed_top(a, spans, target, allow_negative_cc)
    bb1 = float(bb1) if bb1 > 0.0 else math.inf
    top_volume = float(a[0]) / bb1 if a[0] > 0.0 else 0.0
    closed_target = target - top_volume

    # Straight intervals are the most room a convex interval can hold (AA + CC >= 0)
    v_ceiling = float(np.sum(0.5 * (a[1:] + a[:-1]) * spans))
    v_floor = _floor_volume(a, spans, allow_negative_cc)
    weights = a[1:] / rho

    def closed_volume(x: float) -> Tuple[float, float]:
        f = 0.0
        fp = 0.0
        for k in range(1, n + 1):
            if live[k - 1]:
                v, dv = interval_volume_cc(a[k], a[k - 1], x * weights[k - 1], spans[k - 1])
                f += v
                fp += weights[k - 1] * dv
        return f, fp

    branch = "convex"
    x = 0.0
    if closed_target < v_floor:
        branch = "floor"
    elif closed_target >= v_ceiling:
        # Excess room: straight intervals, the open-ended interval takes the rest
        branch = "excess"
    else:
        # CC_k above -AA_{k-1} keeps every interval convex
        positive = weights > 0.0
        x_lo = float(np.max(-a[:-1][positive] / weights[positive]))
        if not allow_negative_cc:
            x_lo = max(x_lo, 0.0)
        lo, hi = x_lo, math.inf
        if cc_guess > x_lo:
            x = float(cc_guess)
        else:
            x = 0.5 * x_lo if x_lo < 0.0 else x_lo + rho

        def step(x: float, lo: float, hi: float, tag: str):
            f, fp = closed_volume(x)
            f -= closed_target
            if debug:
                print(f"[spacing-fit] {tag} cc_last={x:.6g} residual={f:.3e} slope={fp:.3e}")
            if f > 0.0:
                hi = min(hi, x)
            else:
                lo = max(lo, x)
            x_new = x - f / fp if math.isfinite(fp) and fp > 0.0 else math.nan
            if not lo < x_new < hi:
                # Bisect inside the bracket, or walk out while the top end is open
                x_new = 0.5 * (lo + hi) if math.isfinite(hi) else x + 2.0 * max(x - lo, rho)
            return x_new, lo, hi, f

        for it in range(int(iterations)):
            x, lo, hi, _ = step(x, lo, hi, f"newton it={it}")

        if closed_volume(x)[0] >= target:
            # The open-ended interval cannot take a negative share
            if closed_volume(x_lo)[0] < target:
                tol = 1e-13 * max(target, 1.0)
                for it in range(200):
                    x, lo, hi, f = step(x, lo, hi, f"refine it={it}")
                    if abs(f) <= tol or (math.isfinite(hi) and hi - lo <= 1e-15 * max(abs(hi), 1.0)):
                        break
                if closed_volume(x)[0] >= target:
                    x = lo
            else:
                branch = "floor"

        if branch == "convex":
            for k in range(1, n + 1):
                if live[k - 1]:
                    cc[k] = x * weights[k - 1]
                    bb[k] = decay_rate(a[k], a[k - 1], cc[k], spans[k - 1])

    if branch == "floor":
        s = _floor_scale(a, spans, target, top_volume, allow_negative_cc)
        a = _scaled(a, s)
        for k in range(1, n + 1):
            if not live[k - 1]:
                continue
            if allow_negative_cc:
                bb[k] = math.inf
                cc[k] = -a[k - 1]
            else:
                bb[k] = decay_rate(a[k], a[k - 1], 0.0, spans[k - 1])

    bb[0] = bb1
    trial = SpacingCurve.from_arrays(w, a, bb, cc)
    rest = sum(trial.interval_volume(k) for k in range(1, n + 1))
    remaining = target - rest
    bb[0] = float(a[0]) / remaining if a[0] > 0.0 and remaining > 0.0 else math.inf

    curve = SpacingCurve.from_arrays(w, a, bb, cc)
    if debug:
        print(
            f"[spacing-fit] branch={branch} target={target:.6g} "
            f"volume={curve.total_volume():.6g} BB1={bb[0]:.6g}"
        )
    return curve
