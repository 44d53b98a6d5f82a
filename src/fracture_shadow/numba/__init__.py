"""Opt-in Numba kernels.

Enable by setting ``PropagationControl(use_numba=True)``; the pure-Python
kernels are used otherwise.
"""

from .utils import numba_available, resolve_kernel

__all__ = [
    "numba_available",
    "resolve_kernel",
]
