import math

import numpy as np
import pytest

from fracture_shadow.control import PropagationControl
from fracture_shadow.exclusion import ExclusionZoneVolumeCalculator
from fracture_shadow.pieces import evaluate_pieces
from fracture_shadow.population import DipSet, FractureSet
from fracture_shadow.spacing.solver import SpacingDistributionSolver


def _grown_set(control=None, p32=0.02, width=10.0, steps=1):
    fs = FractureSet(strike=0.0, dip_sets=[DipSet(stress_shadow_width=width)])
    solver = SpacingDistributionSolver(fs, control)
    for _ in range(steps):
        fs.dip_sets[0].p32 += p32 / steps
        solver.recompute_after_growth()
    return fs


def test_shadow_and_clear_zone_volumes():
    fs = _grown_set()
    calc = ExclusionZoneVolumeCalculator(fs)
    assert calc.stress_shadow_volume() == pytest.approx(0.2)
    assert calc.mean_stress_shadow_width() == pytest.approx(10.0)
    assert calc.clear_zone_volume(0.0) == pytest.approx(0.8)
    assert calc.exclusion_zone_volume(0.0) == pytest.approx(0.2)
    assert calc.clear_zone_volume(10.0) == pytest.approx(0.8 * math.exp(-0.25))
    print("✓ Shadow, clear-zone and exclusion-zone volumes OK")


def test_proximity_zone_continuous_at_mean_width():
    fs = _grown_set(steps=3)
    calc = ExclusionZoneVolumeCalculator(fs)
    mean_w = calc.mean_stress_shadow_width()
    below = calc.proximity_zone_volume(mean_w)
    above = calc.proximity_zone_volume(mean_w + 1e-9)
    assert abs(below - above) < 1e-6, f"jump at mean width: {below} vs {above}"
    assert calc.proximity_zone_volume(0.0) == 0.0
    assert calc.proximity_zone_volume(1e6) == pytest.approx(1.0)

    pz = np.linspace(0.0, 80.0, 161)
    vals = np.array([calc.proximity_zone_volume(x) for x in pz])
    assert np.all((vals >= 0.0) & (vals <= 1.0))
    assert np.all(np.diff(vals) >= -1e-12), "proximity zone must grow with its width"
    print("✓ Proximity zone continuous and monotone")


def test_batched_inverse_proximity_over_history():
    fs = FractureSet(strike=0.0, dip_sets=[DipSet(stress_shadow_width=10.0)])
    solver = SpacingDistributionSolver(fs)
    for k in range(3):
        fs.dip_sets[0].p32 += 0.01
        solver.recompute_after_growth()
        fs.history.record(fs.snapshot(timestep=k, time=float(k)))

    calc = ExclusionZoneVolumeCalculator(fs)
    widths = [0.0, 5.0, 12.0, 30.0]
    table = calc.inverse_proximity_zone_volumes(widths, timesteps=[0, 2])
    assert table.shape == (2, 4)
    for r, step in enumerate([0, 2]):
        for c, w in enumerate(widths):
            assert table[r, c] == pytest.approx(calc.inverse_proximity_zone_volume(w, timestep=step))
    # denser fractures leave less room far from any fracture
    assert table[1, 3] < table[0, 3]
    live = calc.inverse_proximity_zone_volumes(widths)
    assert live.shape == (1, 4)
    assert np.allclose(live[0], table[1])

    with pytest.raises(ValueError):
        calc.clear_zone_volume(0.0, timestep=7)
    print("✓ Batched inverse proximity volumes OK")


def test_inverse_proximity_pieces_are_exact():
    fs = _grown_set(steps=4)
    calc = ExclusionZoneVolumeCalculator(fs)
    for offset in (0.0, 4.0, 10.0, 17.0):
        pieces = calc.inverse_proximity_pieces(offset)
        base = calc.inverse_proximity_zone_volume(offset)
        for d in (0.0, 1.0, 6.0, 9.5, 12.0, 25.0, 60.0):
            ref = calc.inverse_proximity_zone_volume(offset + d) / base
            assert abs(evaluate_pieces(pieces, d) - ref) < 1e-9, f"offset={offset} d={d}"


def test_breakpoints_and_asymptotic_rate():
    fs = _grown_set()
    calc = ExclusionZoneVolumeCalculator(fs)
    assert calc.breakpoints() == pytest.approx([10.0, 20.0])
    assert calc.asymptotic_rate() == pytest.approx(0.025)


def test_saturated_set_is_linear():
    fs = _grown_set(p32=0.1, width=12.0)
    calc = ExclusionZoneVolumeCalculator(fs)
    assert calc.stress_shadow_volume() >= 1.0
    assert calc.proximity_zone_volume(4.0) == pytest.approx(0.4)
    assert calc.inverse_proximity_zone_volume(20.0) == pytest.approx(0.0)
    assert calc.breakpoints() == pytest.approx([10.0])
    assert math.isinf(calc.asymptotic_rate())


def test_evenly_distributed_has_no_exclusion():
    fs = _grown_set(control=PropagationControl(distribution_mode="evenly"))
    calc = ExclusionZoneVolumeCalculator(fs, PropagationControl(distribution_mode="evenly"))
    assert calc.stress_shadow_volume() == 0.0
    assert calc.clear_zone_volume(10.0) == 1.0
    for pz in (1.0, 10.0, 50.0):
        assert calc.inverse_proximity_zone_volume(pz) == pytest.approx(math.exp(-0.02 * pz))


def test_ductile_boundary_is_neutral():
    control = PropagationControl(distribution_mode="ductile")
    fs = FractureSet(strike=0.0, dip_sets=[DipSet(stress_shadow_width=10.0, p32=0.02)])
    calc = ExclusionZoneVolumeCalculator(fs, control)
    assert calc.clear_zone_volume(5.0) == 1.0
    assert calc.proximity_zone_volume(5.0) == 0.0
    assert calc.breakpoints() == []
    assert calc.asymptotic_rate() == 0.0
