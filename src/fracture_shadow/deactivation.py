"""Deactivation probabilities of propagating fracture tips.

A tip of dip set p stops when it enters the stress shadow of another fracture.
Within its own set this happens at the instantaneous rate F_II per unit
propagation length; for the other sets the probability of having stayed clear
after a distance l follows from their inverse proximity-zone volumes, taken
along the apparent spacing ``sin(dtheta) * l``.

    Phi(l) = Phi_II(l) * Phi_IJ(l)
    Phi_II(l) = exp(-F_II l)
    Phi_IJ(l) = prod_o IPZV_o(off_o + s_o l) / IPZV_o(off_o)

The mean distance a tip still propagates beyond a cutoff c is the integral of
Phi from c to infinity. Three evaluations are available:

* ``quick``: every factor replaced by an exponential (exact with one set).
* ``exact_pair``: the dominant other set integrated exactly piece by piece,
  the remaining sets folded into the exponential rate.
* ``general``: Simpson quadrature between the breakpoints of all factors plus
  the exact exponential tail.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Optional, Tuple

import numpy as np

from fracture_shadow.control import (
    DistributionMode,
    MeanDistancePolicy,
    POLICY_ALIASES,
    PropagationControl,
    normalize_selector,
)
from fracture_shadow.dfn.geometry import strike_difference
from fracture_shadow.dfn.gridblock import Gridblock
from fracture_shadow.exclusion import ExclusionZoneVolumeCalculator
from fracture_shadow.history import SpacingSnapshot
from fracture_shadow.numba import resolve_kernel
from fracture_shadow.numba.kernels_quadrature import interleave_midpoints, simpson_sum
from fracture_shadow.pieces import decay
from fracture_shadow.population import EvolutionStage, FractureSet, PropagationDirection

# Sets whose strikes differ by less than this (in sin) do not cross the tip path
_MIN_SIN = 1e-6


class _CrossTerm:
    """Other fracture set seen from the propagating set."""

    __slots__ = ("index", "calc", "s", "offset", "base", "density", "psi")

    def __init__(self, index, calc, s, offset, base, density, psi):
        self.index = index
        self.calc = calc
        self.s = s
        self.offset = offset
        self.base = base
        self.density = density
        self.psi = psi

    def factor(self, distance: float) -> float:
        if not self.base > 0.0:
            return 0.0
        v = self.calc.inverse_proximity_zone_volume(self.offset + self.s * distance)
        return max(v, 0.0) / self.base


class DeactivationProbabilityModel:
    def __init__(self, gridblock: Gridblock, set_index: int, control: Optional[PropagationControl] = None):
        if not (0 <= set_index < len(gridblock.fracture_sets)):
            raise ValueError(f"no fracture set {set_index} in this gridblock")
        self.gridblock = gridblock
        self.set_index = int(set_index)
        self.control = control if control is not None else PropagationControl()
        self._calcs = [ExclusionZoneVolumeCalculator(fs, self.control) for fs in gridblock.fracture_sets]

    @property
    def fracture_set(self) -> FractureSet:
        return self.gridblock.fracture_sets[self.set_index]

    @property
    def mode(self) -> DistributionMode:
        return self.fracture_set.mode(self.control.distribution_mode)

    def _log(self, msg: str) -> None:
        if self.control.debug_deactivation:
            print(f"[deactivation] {msg}")

    # ------------------------------------------------------------------
    # Blocking weights
    # ------------------------------------------------------------------

    def zeta_ii(self) -> float:
        z = self.control.zeta
        if not z.compute_zeta_ii:
            return float(z.zeta_ii_default)
        return min(0.5 * self._calcs[self.set_index].stress_shadow_volume(), 1.0)

    def zeta_ij(self) -> float:
        z = self.control.zeta
        if not z.compute_zeta_ij:
            return float(z.zeta_ij_default)
        if not self.control.cross_set_shadow_coupling:
            return 0.0
        clear = 1.0
        for o, calc in enumerate(self._calcs):
            if o != self.set_index:
                clear *= max(1.0 - calc.stress_shadow_volume(), 0.0)
        return 1.0 - clear

    # ------------------------------------------------------------------
    # Same-set deactivation
    # ------------------------------------------------------------------

    def instantaneous_f_ii(self, p: int, prop_dir: PropagationDirection) -> float:
        """Rate per unit length at which a tip of dip set ``p`` meets same-set shadows."""
        if self.mode is DistributionMode.DUCTILE_BOUNDARY:
            return 0.0
        dip_sets = self.fracture_set.dip_sets
        ds = dip_sets[p]
        facing = PropagationDirection(prop_dir).opposite
        v_p = ds.propagation_rate
        thickness = self.gridblock.thickness

        total = 0.0
        for q in dip_sets:
            growth = 1.0 + q.propagation_rate / v_p if v_p > 0.0 else 1.0
            total += q.active_p30(facing) * thickness * growth
        rate = max(ds.d_chi_d_p32, 0.0) * total * (1.0 - self.zeta_ii()) * (1.0 - self.zeta_ij())
        return float(rate)

    def phi_ii(
        self,
        p: int,
        prop_dir: PropagationDirection,
        distance: Optional[float] = None,
        duration: Optional[float] = None,
    ) -> float:
        if distance is None:
            if duration is None:
                raise ValueError("phi_ii needs a distance or a duration")
            distance = self.fracture_set.dip_sets[p].propagation_rate * float(duration)
        return decay(self.instantaneous_f_ii(p, prop_dir), max(float(distance), 0.0))

    # ------------------------------------------------------------------
    # Cross-set deactivation
    # ------------------------------------------------------------------

    def _cross_terms(self) -> List[_CrossTerm]:
        sets = self.gridblock.fracture_sets
        own = sets[self.set_index]
        coupled = self.control.cross_set_shadow_coupling
        out = []
        for o, fs in enumerate(sets):
            if o == self.set_index:
                continue
            s = abs(math.sin(strike_difference(own.strike, fs.strike)))
            if s <= _MIN_SIN:
                continue
            calc = self._calcs[o]
            offset = calc.mean_stress_shadow_width() if coupled else 0.0
            base = calc.inverse_proximity_zone_volume(offset) if coupled else 1.0
            out.append(_CrossTerm(o, calc, s, offset, base, fs.total_density, calc.stress_shadow_volume()))
        return out

    def phi_ij(self, distance: float) -> float:
        """Probability that a tip has not met any other set's shadow after ``distance``."""
        l = max(float(distance), 0.0)
        out = 1.0
        for term in self._cross_terms():
            out *= term.factor(l)
        return out

    def phi(self, p: int, prop_dir: PropagationDirection, distance: float) -> float:
        return self.phi_ii(p, prop_dir, distance) * self.phi_ij(distance)

    def _quick_rate(self, term: _CrossTerm) -> float:
        if self.control.cross_set_shadow_coupling and term.psi < 1.0:
            return term.s * term.density / (1.0 - term.psi)
        return term.s * term.density

    # ------------------------------------------------------------------
    # Mean propagation distance
    # ------------------------------------------------------------------

    def select_policy(self, terms: Optional[List[_CrossTerm]] = None) -> MeanDistancePolicy:
        if terms is None:
            terms = [t for t in self._cross_terms() if t.density > 0.0]
        if not terms:
            return MeanDistancePolicy.QUICK
        densities = [t.density for t in terms]
        if max(densities) >= self.control.anisotropy_cutoff * sum(densities):
            return MeanDistancePolicy.EXACT_PAIR
        return MeanDistancePolicy.GENERAL

    def mean_propagation_distance(
        self,
        p: int,
        prop_dir: PropagationDirection,
        cutoffs: Iterable[float],
        policy=None,
    ) -> np.ndarray:
        """Integral of Phi from each cutoff to infinity (``inf`` if Phi never decays)."""
        cut = np.atleast_1d(np.asarray(cutoffs, dtype=float))
        selected = normalize_selector(
            policy if policy is not None else self.control.mean_distance_policy,
            POLICY_ALIASES,
            MeanDistancePolicy,
            "mean_distance_policy",
        )
        terms = [t for t in self._cross_terms() if t.density > 0.0]
        if selected is MeanDistancePolicy.AUTO:
            selected = self.select_policy(terms)
        f_ii = self.instantaneous_f_ii(p, prop_dir)
        self._log(f"set {self.set_index} dipset {p} {prop_dir.name}: F_II={f_ii:.4g} policy={selected.value}")

        if selected is MeanDistancePolicy.QUICK:
            rate = f_ii + sum(self._quick_rate(t) for t in terms)
            return np.array([self._quick(rate, c) for c in cut])
        if selected is MeanDistancePolicy.EXACT_PAIR:
            return np.array([self._exact_pair(f_ii, terms, c) for c in cut])
        return np.array([self._general(f_ii, terms, c) for c in cut])

    @staticmethod
    def _quick(rate: float, cutoff: float) -> float:
        if not rate > 0.0:
            return math.inf
        return decay(rate, max(cutoff, 0.0)) / rate

    def _exact_pair(self, f_ii: float, terms: List[_CrossTerm], cutoff: float) -> float:
        cutoff = max(cutoff, 0.0)
        if not terms:
            return self._quick(f_ii, cutoff)
        dominant = max(terms, key=lambda t: t.density)
        rate = f_ii + sum(self._quick_rate(t) for t in terms if t is not dominant)
        pieces = dominant.calc.inverse_proximity_pieces(dominant.offset)
        return float(sum(pc.stretched(dominant.s).exp_weighted_integral(rate, cutoff) for pc in pieces))

    def _breakpoints(self, terms: List[_CrossTerm], cutoff: float) -> np.ndarray:
        pts = {cutoff}
        for t in terms:
            for b in t.calc.breakpoints():
                l = (b - t.offset) / t.s
                if l > cutoff and math.isfinite(l):
                    pts.add(l)
        return np.array(sorted(pts), dtype=float)

    def _refine(self, pts: np.ndarray, rate: float) -> np.ndarray:
        if pts.size < 2 or not rate > 0.0:
            return pts
        h = 1.0 / (self.control.quadrature_panels_per_decay_length * rate)
        spans = np.diff(pts)
        counts = np.maximum(np.ceil(spans / h), 1.0)
        budget = (self.control.quadrature_max_points - 1) // 2
        if counts.sum() > budget:
            counts = np.maximum(np.floor(counts * budget / counts.sum()), 1.0)
        out = [pts[:1]]
        for a, b, n in zip(pts[:-1], pts[1:], counts.astype(int)):
            out.append(np.linspace(a, b, n + 1)[1:])
        return np.concatenate(out)

    def _general(self, f_ii: float, terms: List[_CrossTerm], cutoff: float) -> float:
        cutoff = max(cutoff, 0.0)

        def big_phi(l: float) -> float:
            out = decay(f_ii, l)
            for t in terms:
                out *= t.factor(l)
            return out

        ref_rate = f_ii + sum(self._quick_rate(t) for t in terms)
        pts = self._refine(self._breakpoints(terms, cutoff), ref_rate)
        interleave = resolve_kernel(interleave_midpoints, self.control.use_numba)
        simpson = resolve_kernel(simpson_sum, self.control.use_numba)
        x = interleave(pts)
        y = np.array([big_phi(float(v)) for v in x], dtype=float)
        body = float(simpson(x, y)) if x.size >= 3 else 0.0

        last = float(pts[-1])
        phi_last = big_phi(last)
        if not phi_last > 0.0:
            return body
        tail_rate = f_ii + sum(t.s * t.calc.asymptotic_rate() for t in terms)
        if not tail_rate > 0.0:
            return math.inf
        return body + phi_last / tail_rate

    # ------------------------------------------------------------------
    # Stage bookkeeping
    # ------------------------------------------------------------------

    def check_deactivation(self) -> List[int]:
        """Advance dip-set evolution stages; returns the dip sets that changed."""
        changed = []
        for idx, ds in enumerate(self.fracture_set.dip_sets):
            before = ds.stage
            if ds.stage is EvolutionStage.GROWING and ds.clear_zone_volume < self.control.minimum_clear_zone_volume:
                ds.stage = EvolutionStage.RESIDUAL_ACTIVITY
            if ds.stage is EvolutionStage.RESIDUAL_ACTIVITY and ds.active_p30() <= 0.0:
                ds.stage = EvolutionStage.DEACTIVATED
            if ds.stage is not before:
                self._log(f"set {self.set_index} dipset {idx}: {before.value} -> {ds.stage.value}")
                changed.append(idx)
        return changed

    def record_timestep(self, duration: float, time: Optional[float] = None) -> SpacingSnapshot:
        """Append the current state with per-dip-set Phi and cumulative half-lengths.

        On an empty history an initial snapshot (Phi = 1, zero half-lengths)
        is recorded first so that index 0 is always the initial state.
        """
        fs = self.fracture_set
        mode = self.control.distribution_mode
        history = fs.history
        if len(history) == 0:
            n = len(fs.dip_sets)
            history.record(fs.snapshot(timestep=0, time=0.0, default=mode, phi=[1.0] * n, half_length=[0.0] * n))
        prev = history.latest

        phi: List[float] = []
        half: List[float] = []
        for p, ds in enumerate(fs.dip_sets):
            l = ds.propagation_rate * float(duration)
            both = [self.phi(p, d, l) for d in PropagationDirection]
            phi.append(0.5 * sum(both))
            prior = prev.half_length[p] if p < len(prev.half_length) else 0.0
            half.append(prior + l)

        t = prev.time + float(duration) if time is None else float(time)
        snap = fs.snapshot(timestep=len(history), time=t, default=mode, phi=phi, half_length=half)
        history.record(snap)
        self._log(f"set {self.set_index} step {snap.timestep}: phi={np.round(phi, 6).tolist()}")
        return snap


def mean_distances_by_dipset(
    model: DeactivationProbabilityModel, cutoff: float = 0.0, policy=None
) -> List[Tuple[float, float]]:
    """(I+, I-) mean propagation distances for every dip set of the model's set."""
    out = []
    for p in range(len(model.fracture_set.dip_sets)):
        plus = model.mean_propagation_distance(p, PropagationDirection.IPLUS, [cutoff], policy)[0]
        minus = model.mean_propagation_distance(p, PropagationDirection.IMINUS, [cutoff], policy)[0]
        out.append((float(plus), float(minus)))
    return out
