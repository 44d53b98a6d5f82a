import math

import pytest

from fracture_shadow.dfn.geometry import (
    CrossoverMode,
    PointIJ,
    PointXY,
    SetFrame,
    angular_difference,
    check_crossover,
    crossover_point,
    strike_difference,
)


def test_strike_difference_is_non_directional():
    assert strike_difference(0.1, 0.1 + math.pi) == pytest.approx(0.0, abs=1e-12)
    assert strike_difference(0.0, 0.5 * math.pi) == pytest.approx(0.5 * math.pi)
    assert strike_difference(0.2, math.pi - 0.2) == pytest.approx(0.4)
    assert strike_difference(-0.3, 0.3) == pytest.approx(0.6)
    assert angular_difference(0.1, 2.0 * math.pi - 0.1) == pytest.approx(0.2)
    print("✓ Strike differences OK")


def test_check_crossover():
    assert check_crossover((0.0, 0.0), (2.0, 2.0), (0.0, 2.0), (2.0, 0.0))
    # end point touching counts
    assert check_crossover(PointXY(0.0, 0.0), PointXY(1.0, 0.0), PointXY(1.0, -1.0), PointXY(1.0, 1.0))
    # parallel
    assert not check_crossover((0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (1.0, 1.0))
    # lines cross outside the segments
    assert not check_crossover((0.0, 0.0), (1.0, 0.0), (2.0, -1.0), (2.0, 1.0))
    assert check_crossover(PointIJ(-1.0, 0.0), PointIJ(1.0, 0.0), PointIJ(0.0, -1.0), PointIJ(0.0, 1.0))


def test_crossover_point_modes():
    p1, p2 = (0.0, 0.0), (1.0, 0.0)
    q1, q2 = (2.0, -1.0), (2.0, 1.0)
    assert crossover_point(p1, p2, q1, q2) == pytest.approx((2.0, 0.0))
    assert crossover_point(p1, p2, q1, q2, CrossoverMode.TRIM) == pytest.approx((1.0, 0.0))
    assert crossover_point(p1, p2, q1, q2, CrossoverMode.RESTRICT) is None
    assert crossover_point(p1, p2, (0.5, -1.0), (0.5, 1.0), CrossoverMode.RESTRICT) == pytest.approx((0.5, 0.0))
    assert crossover_point(p1, p2, (0.0, 1.0), (1.0, 1.0)) is None
    print("✓ Crossover modes OK")


def test_set_frame_round_trip():
    origin = PointXY(50.0, 50.0)
    frame = SetFrame(strike=0.5 * math.pi, origin=origin)
    ij = frame.to_ij(PointXY(60.0, 70.0))
    # strike east: I along +x, J along +y
    assert ij.i == pytest.approx(10.0)
    assert ij.j == pytest.approx(20.0)

    other = SetFrame(strike=0.3, origin=origin)
    for p in (PointXY(0.0, 0.0), PointXY(12.5, -3.0), PointXY(99.0, 51.0)):
        back = frame.to_xy(frame.to_ij(p))
        assert back.x == pytest.approx(p.x) and back.y == pytest.approx(p.y)
        converted = frame.convert(frame.to_ij(p), other)
        direct = other.to_ij(p)
        assert converted.i == pytest.approx(direct.i) and converted.j == pytest.approx(direct.j)
