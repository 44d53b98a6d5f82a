"""Spacing-distribution solver for one fracture set.

Keeps the piecewise spacing curve of a :class:`FractureSet` consistent with
the current dip-set densities and stress-shadow widths. The host calls
:meth:`SpacingDistributionSolver.recompute_after_width_change` and
:meth:`SpacingDistributionSolver.recompute_after_growth` explicitly once per
step; nothing is recomputed implicitly when a dip-set property is set.

Growth model
------------
New fractures of dip set q nucleate uniformly in the clear zone of q, i.e. in
gaps at least ``W_q`` long. A gap of length g then splits into two gaps whose
lengths sum to ``g - W_q``. To first order in the new density ``d rho_q``:

    dS(x) = d rho_q / V_q * [2 CZ(x + W_q) - CZ(a) - (a - W_q) S(a)],
    a = max(x, W_q),  V_q = CZ(W_q),  CZ(w) = integral_w^inf S

and the open-ended exponential interval keeps its shape with its decay rate
increased by ``d rho_q / V_q``.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from fracture_shadow.control import DistributionMode, PropagationControl
from fracture_shadow.population import EvolutionStage, FractureSet
from fracture_shadow.spacing.curve import SpacingCurve
from fracture_shadow.spacing.fit import fit_spacing_curve

MAX_GROWTH_SUBSTEPS = 64


class RecomputeStatus(Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    NOT_IMPLEMENTED = "not_implemented"


class SpacingDistributionSolver:
    def __init__(self, fracture_set: FractureSet, control: Optional[PropagationControl] = None):
        self.fracture_set = fracture_set
        self.control = control if control is not None else PropagationControl()
        self._widths: Optional[np.ndarray] = None
        self._p32: Optional[np.ndarray] = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def mode(self) -> DistributionMode:
        return self.fracture_set.mode(self.control.distribution_mode)

    @property
    def curve(self) -> Optional[SpacingCurve]:
        return self.fracture_set.curve

    def sorted_order(self) -> List[int]:
        return self.fracture_set.sorted_order()

    def evaluate(self, x: float) -> float:
        """Density of gaps between stress shadows of length >= x."""
        curve = self.fracture_set.curve
        if curve is None:
            return 0.0
        return curve.evaluate(x)

    def fit(
        self,
        one_minus_psi: float,
        total_density: float,
        widths: Sequence[float],
        aa: Sequence[float],
        bb1: float,
        cc_guess: float = 0.0,
    ) -> SpacingCurve:
        return fit_spacing_curve(
            one_minus_psi,
            total_density,
            widths,
            aa,
            bb1,
            cc_guess=cc_guess,
            allow_negative_cc=self.control.allow_negative_cc,
            iterations=self.control.newton_iterations,
            debug=self.control.debug_fit,
        )

    # ------------------------------------------------------------------
    # Per-step updates
    # ------------------------------------------------------------------

    def recompute_after_width_change(self) -> bool:
        """Remap the curve onto new stress-shadow widths; False if no width changed."""
        fs = self.fracture_set
        self._require_dip_sets()
        widths_now = fs.widths()
        if self._widths is not None and np.array_equal(widths_now, self._widths):
            return False
        if self._widths is None and fs.curve is None:
            self._widths = widths_now.copy()
            return False

        mode = self.mode
        if mode is DistributionMode.DUCTILE_BOUNDARY:
            return False

        order = fs.sorted_order()
        sorted_widths = widths_now[order]
        if mode is DistributionMode.EVENLY_DISTRIBUTED:
            self._store(SpacingCurve.evenly_distributed(len(order), fs.total_density), order)
            return True

        old = fs.curve
        rho = fs.total_density
        if old is None or old.total_density <= 0.0 or rho <= 0.0:
            self._store(SpacingCurve.empty(sorted_widths), order)
            return True

        aa = [old.evaluate(w) for w in sorted_widths] + [rho]
        new = self.fit(
            1.0 - fs.stress_shadow_volume(),
            rho,
            sorted_widths,
            aa,
            float(old.bb[0]),
            cc_guess=float(old.cc[-1]),
        )
        if self.control.debug_fit:
            print(f"[spacing] width change remapped onto W={np.round(sorted_widths, 6).tolist()}")
        self._store(new, order)
        return True

    def recompute_after_growth(self) -> RecomputeStatus:
        """Update the curve for the dip-set densities added since the last call."""
        fs = self.fracture_set
        dip_sets = self._require_dip_sets()
        mode = self.mode
        if mode is DistributionMode.DUCTILE_BOUNDARY:
            if self.control.debug_fit:
                print("[spacing] ductile boundary stress distribution is not supported; state left unchanged")
            return RecomputeStatus.NOT_IMPLEMENTED

        if self._widths is not None and not np.array_equal(fs.widths(), self._widths):
            self.recompute_after_width_change()

        p32_now = fs.densities()
        p32_prev = self._p32 if self._p32 is not None and self._p32.shape == p32_now.shape else np.zeros_like(p32_now)
        increments = np.clip(p32_now - p32_prev, 0.0, None)

        for ds in dip_sets:
            if ds.stage is EvolutionStage.NOT_ACTIVATED and ds.p32 > 0.0:
                ds.stage = EvolutionStage.GROWING

        order = fs.sorted_order()
        sorted_widths = fs.widths()[order]
        rho = float(p32_now.sum())

        if mode is DistributionMode.EVENLY_DISTRIBUTED:
            self._store(SpacingCurve.evenly_distributed(len(order), rho), order)
            self._p32 = p32_now
            return RecomputeStatus.UPDATED

        old = fs.curve
        if old is not None and old.n_dipsets != len(order):
            old = None
        chi_old = np.array(
            [1.0 - old.clear_zone_volume(ds.stress_shadow_width) if old is not None and old.total_density > 0.0 else 0.0
             for ds in dip_sets],
            dtype=float,
        )

        one_minus_psi = 1.0 - fs.stress_shadow_volume()
        if rho <= 0.0:
            new = SpacingCurve.empty(sorted_widths)
        elif old is None or old.total_density <= 0.0:
            new = SpacingCurve.poisson(sorted_widths, rho, one_minus_psi)
        else:
            new = self._grow_and_fit(old, order, p32_prev, p32_now)

        self._store(new, order)

        added = float(increments.sum())
        if added > 0.0:
            for i, ds in enumerate(dip_sets):
                chi_new = 1.0 - ds.clear_zone_volume
                ds.d_chi_d_p32 = (chi_new - chi_old[i]) / added
        self._p32 = p32_now
        if self.control.debug_fit:
            print(
                f"[spacing] growth rho={rho:.6g} psi={1.0 - one_minus_psi:.6g} "
                f"S(0)={new.evaluate(0.0):.6g} volume={new.total_volume():.6g}"
            )
        return RecomputeStatus.UPDATED

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_dip_sets(self):
        dip_sets = self.fracture_set.dip_sets
        if not dip_sets:
            raise ValueError("fracture set has no dip sets; spacing distribution is undefined")
        for i, ds in enumerate(dip_sets):
            if not ds.stress_shadow_width >= 0.0:
                raise ValueError(f"dip set {i}: stress_shadow_width={ds.stress_shadow_width} must be non-negative")
        return dip_sets

    @staticmethod
    def _split_gain(curve: SpacingCurve, x: float, width: float) -> float:
        """Change in S(x) per unit of (new density / clear-zone volume) of a dip set with ``width``."""
        a = max(x, width)
        below = 2.0 * curve.integral_above(x + width)
        within = curve.integral_above(a)
        correction = (a - width) * curve.evaluate(a)
        return below - within - correction

    def _grow(self, old: SpacingCurve, sorted_widths: np.ndarray, sorted_increments: np.ndarray) -> Tuple[np.ndarray, float]:
        n = sorted_widths.size
        aa = np.array(old.aa, dtype=float)
        bb1 = float(old.bb[0])
        for q in range(n):
            d_rho = float(sorted_increments[q])
            if d_rho <= 0.0:
                continue
            wq = float(sorted_widths[q])
            vq = old.integral_above(wq)
            if not vq > 0.0:
                continue
            rate = d_rho / vq
            bb1 += rate
            for k in range(n):
                aa[k] += rate * self._split_gain(old, float(sorted_widths[k]), wq)
        return aa, bb1

    def _store(self, curve: SpacingCurve, order: List[int]) -> None:
        fs = self.fracture_set
        fs.curve = curve
        evenly = self.mode is DistributionMode.EVENLY_DISTRIBUTED
        for pos, idx in enumerate(order):
            ds = fs.dip_sets[idx]
            ds.aa = float(curve.aa[pos])
            ds.bb = float(curve.bb[pos])
            ds.cc = float(curve.cc[pos])
            ds.cc_step = float(curve.cc[pos + 1] - curve.cc[pos])
            ds.clear_zone_volume = 1.0 if evenly else curve.clear_zone_volume(ds.stress_shadow_width)
        self._widths = fs.widths().copy()

    def _substeps(self, old: SpacingCurve, grown: np.ndarray) -> int:
        """Sub-steps needed so no breakpoint loses more than half its density in one step."""
        n_sub = 1
        for before, after in zip(old.aa[:-1], grown[:-1]):
            if before > 0.0 and after < 0.5 * before:
                n_sub = max(n_sub, int(math.ceil((before - after) / (0.5 * before))))
        return min(n_sub, MAX_GROWTH_SUBSTEPS)

    def _grow_and_fit(self, old: SpacingCurve, order: List[int], p32_prev: np.ndarray, p32_now: np.ndarray) -> SpacingCurve:
        sorted_widths = self.fracture_set.widths()[order]
        increments = np.clip(p32_now - p32_prev, 0.0, None)[order]
        aa, bb1 = self._grow(old, sorted_widths, increments)
        n_sub = self._substeps(old, aa)
        if n_sub > 1 and self.control.debug_fit:
            print(f"[spacing] growth split into {n_sub} sub-steps")

        curve = old
        for i in range(1, n_sub + 1):
            if n_sub > 1:
                aa, bb1 = self._grow(curve, sorted_widths, increments / n_sub)
            p32 = (p32_prev + (p32_now - p32_prev) * (i / n_sub))[order]
            rho = float(p32.sum())
            aa[-1] = rho
            curve = self.fit(
                1.0 - float(np.dot(p32, sorted_widths)),
                rho,
                sorted_widths,
                aa,
                bb1,
                cc_guess=float(curve.cc[-1]),
            )
        return curve
