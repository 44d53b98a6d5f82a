import math

import numpy as np
import pytest

from fracture_shadow.control import MeanDistancePolicy, PropagationControl, ZetaConfig
from fracture_shadow.deactivation import DeactivationProbabilityModel
from fracture_shadow.dfn.geometry import PointXY
from fracture_shadow.dfn.gridblock import Gridblock
from fracture_shadow.population import DipSet, EvolutionStage, FractureSet, PropagationDirection
from fracture_shadow.spacing.solver import SpacingDistributionSolver

IPLUS = PropagationDirection.IPLUS
IMINUS = PropagationDirection.IMINUS


def _propagating_set(strike=0.0):
    ds = DipSet(
        stress_shadow_width=2.0,
        a_p30_iplus=0.02,
        a_p30_iminus=0.01,
        propagation_rate=1.0,
        d_chi_d_p32=5.0,
    )
    return FractureSet(strike=strike, dip_sets=[ds])


def _grown_set(strike, p32=0.02, width=10.0, steps=1):
    fs = FractureSet(strike=strike, dip_sets=[DipSet(stress_shadow_width=width)])
    solver = SpacingDistributionSolver(fs)
    for _ in range(steps):
        fs.dip_sets[0].p32 += p32 / steps
        solver.recompute_after_growth()
    return fs


def _gridblock(*sets):
    return Gridblock(
        sw=PointXY(0.0, 0.0),
        nw=PointXY(0.0, 100.0),
        ne=PointXY(100.0, 100.0),
        se=PointXY(100.0, 0.0),
        thickness=1.0,
        fracture_sets=list(sets),
    )


def test_instantaneous_rate_and_phi_ii():
    model = DeactivationProbabilityModel(_gridblock(_propagating_set()), 0)
    # I+ tips meet the I- tips: 0.01 * thickness * (1 + v/v) * (1 - 0.25)
    f_plus = model.instantaneous_f_ii(0, IPLUS)
    assert f_plus == pytest.approx(5.0 * 0.01 * 2.0 * 0.75)
    f_minus = model.instantaneous_f_ii(0, IMINUS)
    assert f_minus == pytest.approx(5.0 * 0.02 * 2.0 * 0.75)

    assert model.phi_ii(0, IPLUS, distance=0.0) == 1.0
    assert model.phi_ii(0, IPLUS, distance=3.0) == pytest.approx(math.exp(-3.0 * f_plus))
    assert model.phi_ii(0, IPLUS, duration=3.0) == pytest.approx(math.exp(-3.0 * f_plus))
    with pytest.raises(ValueError):
        model.phi_ii(0, IPLUS)
    print("✓ F_II and Phi_II OK")


def test_static_dipset_has_unit_growth_factor():
    fs = _propagating_set()
    fs.dip_sets[0].propagation_rate = 0.0
    model = DeactivationProbabilityModel(_gridblock(fs), 0)
    assert model.instantaneous_f_ii(0, IPLUS) == pytest.approx(5.0 * 0.01 * 0.75)


def test_computed_zeta():
    own = _grown_set(0.0, p32=0.02, width=10.0)
    own.dip_sets[0].a_p30_iminus = 0.01
    own.dip_sets[0].propagation_rate = 1.0
    other = _grown_set(0.5 * math.pi, p32=0.01, width=20.0)
    gb = _gridblock(own, other)

    control = PropagationControl(zeta=ZetaConfig(compute_zeta_ii=True, compute_zeta_ij=True))
    model = DeactivationProbabilityModel(gb, 0, control)
    assert model.zeta_ii() == pytest.approx(0.1)
    assert model.zeta_ij() == pytest.approx(0.2)

    uncoupled = PropagationControl(
        cross_set_shadow_coupling=False, zeta=ZetaConfig(compute_zeta_ij=True)
    )
    assert DeactivationProbabilityModel(gb, 0, uncoupled).zeta_ij() == 0.0


def test_phi_ij_uses_apparent_spacing():
    own = _propagating_set(strike=0.0)
    other = _grown_set(math.radians(60.0))
    model = DeactivationProbabilityModel(_gridblock(own, other), 0)
    s = math.sin(math.radians(60.0))
    assert model.phi_ij(0.0) == pytest.approx(1.0)
    for l in (1.0, 7.0, 40.0):
        assert model.phi_ij(l) == pytest.approx(math.exp(-0.025 * s * l))
        assert model.phi(0, IPLUS, l) == pytest.approx(model.phi_ii(0, IPLUS, l) * model.phi_ij(l))

    parallel = _grown_set(math.pi)
    model = DeactivationProbabilityModel(_gridblock(own, parallel), 0)
    assert model.phi_ij(50.0) == 1.0


def test_policies_agree_without_cross_sets():
    model = DeactivationProbabilityModel(_gridblock(_propagating_set()), 0)
    f = model.instantaneous_f_ii(0, IPLUS)
    cutoffs = [0.0, 2.0, 15.0]
    expected = np.array([math.exp(-f * c) / f for c in cutoffs])
    assert model.select_policy() is MeanDistancePolicy.QUICK
    for policy in ("quick", "exact_pair", "general", "auto"):
        got = model.mean_propagation_distance(0, IPLUS, cutoffs, policy=policy)
        assert got.shape == (3,)
        assert np.allclose(got, expected, rtol=1e-12), f"{policy}: {got} vs {expected}"
    print("✓ All policies reduce to the exponential without other sets")


def test_no_active_tips_never_deactivate():
    fs = _propagating_set()
    fs.dip_sets[0].a_p30_iplus = 0.0
    fs.dip_sets[0].a_p30_iminus = 0.0
    model = DeactivationProbabilityModel(_gridblock(fs), 0)
    assert math.isinf(model.mean_propagation_distance(0, IPLUS, [0.0], policy="quick")[0])
    assert math.isinf(model.mean_propagation_distance(0, IPLUS, [0.0], policy="general")[0])


@pytest.mark.parametrize("angle_deg", [90.0, 60.0])
def test_exact_pair_matches_closed_form(angle_deg):
    own = _propagating_set(strike=0.0)
    other = _grown_set(math.radians(angle_deg))
    model = DeactivationProbabilityModel(_gridblock(own, other), 0)
    assert model.select_policy() is MeanDistancePolicy.EXACT_PAIR

    s = math.sin(math.radians(angle_deg))
    rate = model.instantaneous_f_ii(0, IPLUS) + 0.025 * s
    cutoffs = [0.0, 5.0, 30.0]
    expected = np.array([math.exp(-rate * c) / rate for c in cutoffs])
    exact = model.mean_propagation_distance(0, IPLUS, cutoffs, policy="exact_pair")
    general = model.mean_propagation_distance(0, IPLUS, cutoffs, policy="general")
    quick = model.mean_propagation_distance(0, IPLUS, cutoffs, policy="quick")
    assert np.allclose(exact, expected, rtol=1e-9)
    assert np.allclose(general, expected, rtol=1e-3)
    assert np.allclose(quick, expected, rtol=1e-9)
    print(f"✓ Mean distance at {angle_deg:.0f} deg matches the closed form")


def test_exact_pair_and_general_match_quadrature():
    quad = pytest.importorskip("scipy.integrate").quad
    own = _propagating_set(strike=0.0)
    other = FractureSet(
        strike=0.5 * math.pi,
        dip_sets=[DipSet(stress_shadow_width=12.0), DipSet(stress_shadow_width=3.0)],
    )
    solver = SpacingDistributionSolver(other)
    for _ in range(5):
        other.dip_sets[0].p32 += 0.003
        other.dip_sets[1].p32 += 0.006
        solver.recompute_after_growth()

    model = DeactivationProbabilityModel(_gridblock(own, other), 0)
    for c in (0.0, 8.0):
        ref, _ = quad(lambda l: model.phi(0, IPLUS, l), c, np.inf, limit=200)
        exact = model.mean_propagation_distance(0, IPLUS, [c], policy="exact_pair")[0]
        general = model.mean_propagation_distance(0, IPLUS, [c], policy="general")[0]
        assert abs(exact - ref) / ref < 1e-2, f"exact_pair {exact} vs quad {ref}"
        assert abs(general - ref) / ref < 1e-2, f"general {general} vs quad {ref}"
    print("✓ exact_pair and general agree with adaptive quadrature")


def test_general_policy_with_two_cross_sets():
    quad = pytest.importorskip("scipy.integrate").quad
    own = _propagating_set(strike=0.0)
    a = _grown_set(0.5 * math.pi, p32=0.01, width=8.0, steps=3)
    b = _grown_set(0.25 * math.pi, p32=0.015, width=5.0, steps=3)
    model = DeactivationProbabilityModel(_gridblock(own, a, b), 0)
    assert model.select_policy() is MeanDistancePolicy.GENERAL

    auto = model.mean_propagation_distance(0, IMINUS, [0.0, 10.0])
    for c, got in zip((0.0, 10.0), auto):
        ref, _ = quad(lambda l: model.phi(0, IMINUS, l), c, np.inf, limit=200)
        assert abs(got - ref) / ref < 1e-2, f"cutoff {c}: {got} vs {ref}"


def test_check_deactivation_stages():
    fs = _propagating_set()
    ds = fs.dip_sets[0]
    ds.stage = EvolutionStage.GROWING
    ds.clear_zone_volume = 0.5
    model = DeactivationProbabilityModel(_gridblock(fs), 0)
    assert model.check_deactivation() == []

    ds.clear_zone_volume = 0.005
    assert model.check_deactivation() == [0]
    assert ds.stage is EvolutionStage.RESIDUAL_ACTIVITY

    ds.a_p30_iplus = 0.0
    ds.a_p30_iminus = 0.0
    assert model.check_deactivation() == [0]
    assert ds.stage is EvolutionStage.DEACTIVATED
    assert model.check_deactivation() == []


def test_record_timestep_history():
    fs = _propagating_set()
    model = DeactivationProbabilityModel(_gridblock(fs), 0)
    first = model.record_timestep(2.0)
    assert len(fs.history) == 2
    assert fs.history.snapshot(0).phi == (1.0,)
    assert first.timestep == 1
    assert first.time == pytest.approx(2.0)
    assert first.half_length == (2.0,)
    expected = 0.5 * (model.phi(0, IPLUS, 2.0) + model.phi(0, IMINUS, 2.0))
    assert first.phi[0] == pytest.approx(expected)

    second = model.record_timestep(2.0)
    assert second.half_length == (4.0,)
    assert fs.history.cumulative_phi(2, 0, 0) == pytest.approx(first.phi[0] * second.phi[0])
    assert fs.history.cumulative_half_length(2, 1, 0) == pytest.approx(2.0)


def test_ductile_mode_is_neutral():
    model = DeactivationProbabilityModel(
        _gridblock(_propagating_set()), 0, PropagationControl(distribution_mode="ductile")
    )
    assert model.instantaneous_f_ii(0, IPLUS) == 0.0
    assert model.phi(0, IPLUS, 100.0) == 1.0


def test_invalid_set_index():
    with pytest.raises(ValueError):
        DeactivationProbabilityModel(_gridblock(_propagating_set()), 3)


def test_general_policy_without_numba_installed(monkeypatch):
    import fracture_shadow.numba.utils as nb_utils

    monkeypatch.setattr(nb_utils, "numba_available", lambda: False)
    own = _propagating_set(strike=0.0)
    a = _grown_set(0.5 * math.pi, p32=0.01, width=8.0, steps=3)
    b = _grown_set(0.25 * math.pi, p32=0.015, width=5.0, steps=3)
    block = _gridblock(own, a, b)
    cutoffs = [0.0, 10.0]
    plain = DeactivationProbabilityModel(block, 0, PropagationControl(use_numba=False))
    requested = DeactivationProbabilityModel(block, 0, PropagationControl(use_numba=True))
    got = requested.mean_propagation_distance(0, IMINUS, cutoffs, policy="general")
    assert np.allclose(got, plain.mean_propagation_distance(0, IMINUS, cutoffs, policy="general"))
