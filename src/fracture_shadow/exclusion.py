"""Clear-zone, exclusion-zone and proximity-zone volumes of a fracture set.

All volumes are fractions of the gridblock volume. Queries can be evaluated
against the live state or against a recorded timestep.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from fracture_shadow.control import DistributionMode, PropagationControl
from fracture_shadow.history import SpacingSnapshot
from fracture_shadow.pieces import Piece, crop, evaluate_pieces
from fracture_shadow.population import FractureSet


class ExclusionZoneVolumeCalculator:
    def __init__(self, fracture_set: FractureSet, control: Optional[PropagationControl] = None):
        self.fracture_set = fracture_set
        self.control = control if control is not None else PropagationControl()

    def _state(self, timestep: Optional[int]) -> SpacingSnapshot:
        if timestep is None:
            return self.fracture_set.snapshot(default=self.control.distribution_mode)
        return self.fracture_set.history.snapshot(int(timestep))

    @staticmethod
    def _gap_volume(state: SpacingSnapshot, width: float) -> float:
        if state.curve is None or state.total_density <= 0.0:
            return 1.0
        return state.curve.clear_zone_volume(width)

    # ------------------------------------------------------------------
    # Stress shadow and clear zone
    # ------------------------------------------------------------------

    def stress_shadow_volume(self, timestep: Optional[int] = None) -> float:
        return self._state(timestep).stress_shadow_volume

    def mean_stress_shadow_width(self, timestep: Optional[int] = None) -> float:
        return self._state(timestep).mean_stress_shadow_width

    def clear_zone_volume(self, width: float, timestep: Optional[int] = None) -> float:
        """Volume in which a fracture with a stress shadow of ``width`` can nucleate, in [0, 1]."""
        state = self._state(timestep)
        if state.mode is not DistributionMode.STRESS_SHADOW:
            return 1.0
        return self._gap_volume(state, width)

    def exclusion_zone_volume(self, width: float, timestep: Optional[int] = None) -> float:
        return 1.0 - self.clear_zone_volume(width, timestep)

    # ------------------------------------------------------------------
    # Proximity zone
    # ------------------------------------------------------------------

    def proximity_zone_volume(self, pz_width: float, timestep: Optional[int] = None) -> float:
        """Volume within a zone of total width ``pz_width`` around the fractures."""
        state = self._state(timestep)
        return self._proximity(state, float(pz_width))

    def _proximity(self, state: SpacingSnapshot, pz: float) -> float:
        if state.mode is DistributionMode.DUCTILE_BOUNDARY or pz <= 0.0:
            return 0.0
        rho = state.total_density
        if rho <= 0.0:
            return 0.0
        mean_w = state.mean_stress_shadow_width
        if pz <= mean_w or state.stress_shadow_volume >= 1.0 or state.curve is None:
            return min(pz * rho, 1.0)
        return float(min(max(1.0 - self._gap_volume(state, pz - mean_w), 0.0), 1.0))

    def inverse_proximity_zone_volume(self, pz_width: float, timestep: Optional[int] = None) -> float:
        return 1.0 - self.proximity_zone_volume(pz_width, timestep)

    def inverse_proximity_zone_volumes(
        self, pz_widths: Sequence[float], timesteps: Optional[Sequence[Optional[int]]] = None
    ) -> np.ndarray:
        """Batched inverse proximity-zone volumes, shape ``(len(timesteps), len(pz_widths))``.

        ``timesteps=None`` evaluates the live state only (a single row).
        """
        steps = [None] if timesteps is None else list(timesteps)
        widths = np.asarray(pz_widths, dtype=float).ravel()
        out = np.empty((len(steps), widths.size), dtype=float)
        for r, step in enumerate(steps):
            state = self._state(step)
            for c, pz in enumerate(widths):
                out[r, c] = 1.0 - self._proximity(state, float(pz))
        return out

    def inverse_proximity_pieces(self, offset: float = 0.0, timestep: Optional[int] = None) -> List[Piece]:
        """IPZV(offset + d) / IPZV(offset) as exact pieces in d on [0, inf).

        Returns a single zero piece if no volume is left at ``offset``.
        """
        state = self._state(timestep)
        rho = state.total_density
        if state.mode is DistributionMode.DUCTILE_BOUNDARY or rho <= 0.0:
            return [Piece(0.0, np.inf, c=1.0)]

        mean_w = state.mean_stress_shadow_width
        if state.stress_shadow_volume >= 1.0 or state.curve is None:
            end = 1.0 / rho
            pieces = [Piece(0.0, end, c=1.0, m=-rho), Piece(end, np.inf)]
        else:
            pieces = []
            if mean_w > 0.0:
                pieces.append(Piece(0.0, mean_w, c=1.0, m=-rho))
            pieces.extend(p.translated(mean_w) for p in state.curve.gap_pieces())

        offset = max(float(offset), 0.0)
        base = evaluate_pieces(pieces, offset)
        if not base > 0.0:
            return [Piece(0.0, np.inf)]
        return [p.translated(-offset).scaled(1.0 / base) for p in crop(pieces, offset)]

    def breakpoints(self, timestep: Optional[int] = None) -> List[float]:
        """Proximity-zone widths at which IPZV changes functional form."""
        state = self._state(timestep)
        rho = state.total_density
        if rho <= 0.0 or state.mode is DistributionMode.DUCTILE_BOUNDARY:
            return []
        if state.stress_shadow_volume >= 1.0 or state.curve is None:
            return [1.0 / rho]
        mean_w = state.mean_stress_shadow_width
        pts = {mean_w}
        pts.update(mean_w + float(w) for w in state.curve.widths)
        return sorted(p for p in pts if p > 0.0)

    def asymptotic_rate(self, timestep: Optional[int] = None) -> float:
        """Decay rate of IPZV beyond its last breakpoint (0 if it never decays)."""
        state = self._state(timestep)
        if state.total_density <= 0.0 or state.mode is DistributionMode.DUCTILE_BOUNDARY:
            return 0.0
        if state.stress_shadow_volume >= 1.0 or state.curve is None:
            return np.inf
        return float(state.curve.bb[0])
