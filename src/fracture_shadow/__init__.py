"""fracture_shadow package: stress-shadow spacing and deactivation of layer-bound fracture sets."""

from .control import DistributionMode, MeanDistancePolicy, PropagationControl, ZetaConfig
from .population import DipSet, EvolutionStage, FractureSet, PropagationDirection
from .history import SpacingSnapshot, TimestepHistory
from .spacing import SpacingCurve
from .spacing.solver import RecomputeStatus, SpacingDistributionSolver
from .exclusion import ExclusionZoneVolumeCalculator
from .deactivation import DeactivationProbabilityModel
from .dfn import Gridblock, MacrofractureSegment, SegmentGeometryEngine

__all__ = [
    "DistributionMode", "MeanDistancePolicy", "PropagationControl", "ZetaConfig",
    "DipSet", "EvolutionStage", "FractureSet", "PropagationDirection",
    "SpacingSnapshot", "TimestepHistory",
    "SpacingCurve", "RecomputeStatus", "SpacingDistributionSolver",
    "ExclusionZoneVolumeCalculator",
    "DeactivationProbabilityModel",
    "Gridblock", "MacrofractureSegment", "SegmentGeometryEngine",
]
