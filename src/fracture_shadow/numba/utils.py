"""Opt-in Numba compilation of quadrature kernels.

Kernels are written as plain Python functions restricted to what Numba's
``nopython`` mode accepts. They run as-is unless ``use_numba`` is requested,
in which case they are compiled with :func:`numba.njit`. Requesting Numba
without it installed falls back to the pure-Python kernel.
"""

from __future__ import annotations

import importlib.util
from typing import Callable, Dict

_COMPILED: Dict[Callable, Callable] = {}
_FALLBACK_REPORTED = False


def numba_available() -> bool:
    return importlib.util.find_spec("numba") is not None


def resolve_kernel(fn: Callable, use_numba: bool) -> Callable:
    global _FALLBACK_REPORTED
    if not use_numba:
        return fn
    if not numba_available():
        if not _FALLBACK_REPORTED:
            print("[numba] requested but not installed; falling back to pure Python")
            _FALLBACK_REPORTED = True
        return fn
    compiled = _COMPILED.get(fn)
    if compiled is None:
        import numba

        compiled = numba.njit(cache=False)(fn)
        _COMPILED[fn] = compiled
    return compiled
