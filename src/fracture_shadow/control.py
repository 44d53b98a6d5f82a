"""Run-control parameters for fracture spacing and deactivation calculations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class DistributionMode(Enum):
    """How stress is distributed around propagating macrofractures."""

    EVENLY_DISTRIBUTED = "evenly_distributed"
    STRESS_SHADOW = "stress_shadow"
    DUCTILE_BOUNDARY = "ductile_boundary"


class MeanDistancePolicy(Enum):
    AUTO = "auto"
    QUICK = "quick"
    EXACT_PAIR = "exact_pair"
    GENERAL = "general"


DISTRIBUTION_ALIASES = {
    "evenly_distributed": DistributionMode.EVENLY_DISTRIBUTED,
    "evenlydistributedstress": DistributionMode.EVENLY_DISTRIBUTED,
    "evenly": DistributionMode.EVENLY_DISTRIBUTED,
    "even": DistributionMode.EVENLY_DISTRIBUTED,
    "stress_shadow": DistributionMode.STRESS_SHADOW,
    "stressshadow": DistributionMode.STRESS_SHADOW,
    "shadow": DistributionMode.STRESS_SHADOW,
    "ductile_boundary": DistributionMode.DUCTILE_BOUNDARY,
    "ductileboundary": DistributionMode.DUCTILE_BOUNDARY,
    "ductile": DistributionMode.DUCTILE_BOUNDARY,
}

POLICY_ALIASES = {
    "auto": MeanDistancePolicy.AUTO,
    "quick": MeanDistancePolicy.QUICK,
    "exponential": MeanDistancePolicy.QUICK,
    "exact_pair": MeanDistancePolicy.EXACT_PAIR,
    "exact": MeanDistancePolicy.EXACT_PAIR,
    "pair": MeanDistancePolicy.EXACT_PAIR,
    "general": MeanDistancePolicy.GENERAL,
    "quadrature": MeanDistancePolicy.GENERAL,
    "simpson": MeanDistancePolicy.GENERAL,
}


def normalize_selector(value, aliases: dict, enum_cls, label: str):
    if isinstance(value, enum_cls):
        return value
    key = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
    if key in aliases:
        return aliases[key]
    options = ", ".join(sorted({m.value for m in enum_cls}))
    raise ValueError(f"Unknown {label}='{value}'. Use one of: {options}.")


@dataclass(frozen=True)
class ZetaConfig:
    """Blocking weights for shadowed interaction partners.

    ``zeta_ii`` is the fraction of same-set partner tips already shielded by a
    stress shadow, ``zeta_ij`` the fraction shielded by other sets. Each is
    either computed from the live fracture population or taken as a fixed
    default.
    """

    compute_zeta_ii: bool = False
    compute_zeta_ij: bool = False
    zeta_ii_default: float = 0.25
    zeta_ij_default: float = 0.0

    def __post_init__(self):
        for name in ("zeta_ii_default", "zeta_ij_default"):
            v = float(getattr(self, name))
            if not (0.0 <= v <= 1.0):
                raise ValueError(f"{name}={v} must lie in [0, 1]")


@dataclass
class PropagationControl:
    # Stress distribution around macrofractures
    distribution_mode: DistributionMode = DistributionMode.STRESS_SHADOW

    # Dip sets stop nucleating once their clear zone volume drops below this
    minimum_clear_zone_volume: float = 0.01

    # Exact pair integral is used if one other set carries at least this
    # fraction of the total cross-set density
    anisotropy_cutoff: float = 1.0

    # Nucleation is excluded from the stress shadows of other sets
    cross_set_shadow_coupling: bool = True

    # Spacing fit
    allow_negative_cc: bool = True
    newton_iterations: int = 2

    # Mean propagation distance
    mean_distance_policy: MeanDistancePolicy = MeanDistancePolicy.AUTO
    quadrature_panels_per_decay_length: int = 4
    quadrature_max_points: int = 4001

    zeta: ZetaConfig = field(default_factory=ZetaConfig)

    # Explicit DFN geometry
    relay_veto: bool = False
    geometry_tol: float = 1e-9

    # Optional Numba acceleration of the quadrature kernel
    use_numba: bool = False

    debug_fit: bool = False
    debug_deactivation: bool = False
    debug_geometry: bool = False

    def __post_init__(self):
        """Normalize string selectors and check ranges."""

        self.distribution_mode = normalize_selector(
            self.distribution_mode, DISTRIBUTION_ALIASES, DistributionMode, "distribution_mode"
        )
        self.mean_distance_policy = normalize_selector(
            self.mean_distance_policy, POLICY_ALIASES, MeanDistancePolicy, "mean_distance_policy"
        )

        if not (0.0 <= float(self.minimum_clear_zone_volume) <= 1.0):
            raise ValueError(
                f"minimum_clear_zone_volume={self.minimum_clear_zone_volume} must lie in [0, 1]"
            )
        if not (0.0 < float(self.anisotropy_cutoff) <= 1.0):
            raise ValueError(f"anisotropy_cutoff={self.anisotropy_cutoff} must lie in (0, 1]")
        if int(self.newton_iterations) < 0:
            raise ValueError("newton_iterations must be non-negative")
        if int(self.quadrature_panels_per_decay_length) < 1:
            raise ValueError("quadrature_panels_per_decay_length must be at least 1")
        if int(self.quadrature_max_points) < 3:
            raise ValueError("quadrature_max_points must be at least 3")
        self.newton_iterations = int(self.newton_iterations)
