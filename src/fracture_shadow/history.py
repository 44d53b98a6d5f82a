"""Per-timestep snapshots of a fracture set's spacing state.

Exclusion and proximity-zone queries can be evaluated against any recorded
timestep, e.g. to integrate deactivation probabilities over the history of a
fracture that nucleated several steps ago.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from fracture_shadow.control import DistributionMode
from fracture_shadow.spacing.curve import SpacingCurve


@dataclass(frozen=True)
class SpacingSnapshot:
    timestep: int
    time: float
    mode: DistributionMode
    curve: Optional[SpacingCurve]
    p32: Tuple[float, ...]
    widths: Tuple[float, ...]
    clear_zone_volumes: Tuple[float, ...] = ()
    d_chi_d_p32: Tuple[float, ...] = ()
    phi: Tuple[float, ...] = ()
    half_length: Tuple[float, ...] = ()

    @property
    def total_density(self) -> float:
        return float(sum(self.p32))

    @property
    def stress_shadow_volume(self) -> float:
        if self.mode is not DistributionMode.STRESS_SHADOW:
            return 0.0
        return float(np.dot(self.p32, self.widths)) if self.p32 else 0.0

    @property
    def mean_stress_shadow_width(self) -> float:
        rho = self.total_density
        if rho <= 0.0:
            return 0.0
        return self.stress_shadow_volume / rho


class TimestepHistory:
    """Ordered list of snapshots; index 0 is the initial state."""

    def __init__(self):
        self._snapshots: List[SpacingSnapshot] = []

    def __len__(self) -> int:
        return len(self._snapshots)

    def __iter__(self):
        return iter(self._snapshots)

    def record(self, snapshot: SpacingSnapshot) -> None:
        self._snapshots.append(snapshot)

    def replace_last(self, snapshot: SpacingSnapshot) -> None:
        if not self._snapshots:
            raise ValueError("no timestep recorded yet")
        self._snapshots[-1] = snapshot

    def snapshot(self, timestep: int) -> SpacingSnapshot:
        if not (0 <= timestep < len(self._snapshots)):
            raise ValueError(f"timestep {timestep} not recorded (have {len(self._snapshots)})")
        return self._snapshots[timestep]

    @property
    def latest(self) -> Optional[SpacingSnapshot]:
        return self._snapshots[-1] if self._snapshots else None

    def cumulative_phi(self, n: int, m: int, dipset: int) -> float:
        """Probability that a fracture active at the end of timestep ``m`` is still active after ``n``."""
        if n <= m:
            return 1.0
        out = 1.0
        for k in range(m + 1, n + 1):
            phi = self.snapshot(k).phi
            if dipset < len(phi):
                out *= phi[dipset]
        return out

    def cumulative_half_length(self, n: int, m: int, dipset: int) -> float:
        """Half-length grown between the ends of timesteps ``m`` and ``n`` (0 if ``n < m``)."""
        if n < m:
            return 0.0
        hn = self.snapshot(n).half_length
        hm = self.snapshot(m).half_length
        if dipset >= len(hn) or dipset >= len(hm):
            return 0.0
        return float(hn[dipset] - hm[dipset])
