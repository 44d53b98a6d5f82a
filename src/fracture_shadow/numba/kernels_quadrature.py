"""Numba-friendly quadrature kernels.

Inputs are 1D float64 arrays; no Python objects.
"""

from __future__ import annotations

import numpy as np


def simpson_sum(x: np.ndarray, y: np.ndarray) -> float:
    """Composite Simpson rule over consecutive 3-point spans.

    ``x`` holds breakpoints with midpoints interleaved, so its length is odd
    and ``x[2i + 1]`` is the midpoint of ``[x[2i], x[2i + 2]]``.
    """
    total = 0.0
    n = x.shape[0]
    i = 0
    while i + 2 < n:
        h = x[i + 2] - x[i]
        total += h * (y[i] + 4.0 * y[i + 1] + y[i + 2]) / 6.0
        i += 2
    return total


def interleave_midpoints(points: np.ndarray) -> np.ndarray:
    n = points.shape[0]
    if n == 0:
        return np.empty(0, dtype=np.float64)
    out = np.empty(2 * n - 1, dtype=np.float64)
    for i in range(n - 1):
        out[2 * i] = points[i]
        out[2 * i + 1] = 0.5 * (points[i] + points[i + 1])
    out[2 * n - 2] = points[n - 1]
    return out
