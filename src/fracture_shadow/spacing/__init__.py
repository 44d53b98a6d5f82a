"""Piecewise spacing curve and its fit.

The solver lives in :mod:`fracture_shadow.spacing.solver`; it is not imported
here because it depends on :mod:`fracture_shadow.population`, which itself
uses the curve.
"""

from .curve import SpacingCurve
from .fit import decay_rate, fit_spacing_curve, interval_volume_cc

__all__ = [
    "SpacingCurve",
    "decay_rate",
    "fit_spacing_curve",
    "interval_volume_cc",
]
