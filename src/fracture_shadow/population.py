"""Fracture population data: dip sets and fracture sets."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

import numpy as np

from fracture_shadow.control import DistributionMode, DISTRIBUTION_ALIASES, normalize_selector
from fracture_shadow.history import SpacingSnapshot, TimestepHistory
from fracture_shadow.spacing.curve import SpacingCurve

if TYPE_CHECKING:
    from fracture_shadow.dfn.segment import MacrofractureSegment


class EvolutionStage(Enum):
    NOT_ACTIVATED = "not_activated"
    GROWING = "growing"
    RESIDUAL_ACTIVITY = "residual_activity"
    DEACTIVATED = "deactivated"


class PropagationDirection(Enum):
    IPLUS = 1
    IMINUS = -1

    @property
    def sign(self) -> float:
        return float(self.value)

    @property
    def opposite(self) -> "PropagationDirection":
        return PropagationDirection.IMINUS if self is PropagationDirection.IPLUS else PropagationDirection.IPLUS


@dataclass
class DipSet:
    """One dip set of macrofractures within a fracture set.

    Densities follow the usual DFN convention: P30 is the number of
    half-macrofracture tips per unit volume, P32 the fracture area per unit
    volume (equivalently the linear density normal to strike for
    layer-bound fractures).
    """

    stress_shadow_width: float = 0.0
    p32: float = 0.0
    a_p30_iplus: float = 0.0
    a_p30_iminus: float = 0.0
    s_p30_ii: float = 0.0
    s_p30_ij: float = 0.0
    propagation_rate: float = 0.0
    dip: float = 0.5 * math.pi
    mode: str = "mode1"

    # Spacing coefficients of this dip set's interval, written by the solver
    aa: float = 0.0
    bb: float = 0.0
    cc: float = 0.0
    cc_step: float = 0.0

    clear_zone_volume: float = 1.0
    d_chi_d_p32: float = 0.0
    stage: EvolutionStage = EvolutionStage.NOT_ACTIVATED

    def __post_init__(self):
        if self.stress_shadow_width < 0.0:
            raise ValueError(f"stress_shadow_width={self.stress_shadow_width} must be non-negative")
        if self.p32 < 0.0:
            raise ValueError(f"p32={self.p32} must be non-negative")

    def active_p30(self, direction: Optional[PropagationDirection] = None) -> float:
        if direction is None:
            return self.a_p30_iplus + self.a_p30_iminus
        if direction is PropagationDirection.IPLUS:
            return self.a_p30_iplus
        return self.a_p30_iminus


@dataclass
class FractureSet:
    strike: float
    dip_sets: List[DipSet] = field(default_factory=list)
    distribution_mode: Optional[DistributionMode] = None
    segments: List["MacrofractureSegment"] = field(default_factory=list)
    curve: Optional[SpacingCurve] = None
    history: TimestepHistory = field(default_factory=TimestepHistory)

    def __post_init__(self):
        if self.distribution_mode is not None:
            self.distribution_mode = normalize_selector(
                self.distribution_mode, DISTRIBUTION_ALIASES, DistributionMode, "distribution_mode"
            )

    def mode(self, default: DistributionMode = DistributionMode.STRESS_SHADOW) -> DistributionMode:
        return self.distribution_mode if self.distribution_mode is not None else default

    def sorted_order(self) -> List[int]:
        """Dip-set indices by non-increasing stress-shadow width (stable for ties)."""
        return sorted(range(len(self.dip_sets)), key=lambda i: -self.dip_sets[i].stress_shadow_width)

    def widths(self) -> np.ndarray:
        return np.array([ds.stress_shadow_width for ds in self.dip_sets], dtype=float)

    def densities(self) -> np.ndarray:
        return np.array([ds.p32 for ds in self.dip_sets], dtype=float)

    @property
    def total_density(self) -> float:
        return float(sum(ds.p32 for ds in self.dip_sets))

    def stress_shadow_volume(self, default: DistributionMode = DistributionMode.STRESS_SHADOW) -> float:
        if self.mode(default) is not DistributionMode.STRESS_SHADOW:
            return 0.0
        return float(np.dot(self.densities(), self.widths())) if self.dip_sets else 0.0

    def mean_stress_shadow_width(self, default: DistributionMode = DistributionMode.STRESS_SHADOW) -> float:
        rho = self.total_density
        if rho <= 0.0:
            return 0.0
        return self.stress_shadow_volume(default) / rho

    def snapshot(
        self,
        timestep: int = -1,
        time: float = 0.0,
        default: DistributionMode = DistributionMode.STRESS_SHADOW,
        phi=(),
        half_length=(),
    ) -> SpacingSnapshot:
        return SpacingSnapshot(
            timestep=timestep,
            time=float(time),
            mode=self.mode(default),
            curve=self.curve,
            p32=tuple(float(ds.p32) for ds in self.dip_sets),
            widths=tuple(float(ds.stress_shadow_width) for ds in self.dip_sets),
            clear_zone_volumes=tuple(float(ds.clear_zone_volume) for ds in self.dip_sets),
            d_chi_d_p32=tuple(float(ds.d_chi_d_p32) for ds in self.dip_sets),
            phi=tuple(float(v) for v in phi),
            half_length=tuple(float(v) for v in half_length),
        )
