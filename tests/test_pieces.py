import math

import numpy as np
import pytest

from fracture_shadow.pieces import Piece, crop, evaluate_pieces, exp_moment, exp_span

quad = pytest.importorskip("scipy.integrate").quad


@pytest.mark.parametrize("n", [0, 1, 2])
@pytest.mark.parametrize("lam", [0.0, 1e-4, 0.5, -0.3, 4.0])
def test_exp_moment_matches_quadrature(n, lam):
    span = 3.0
    ref, _ = quad(lambda t: t ** n * math.exp(-lam * t), 0.0, span)
    got = exp_moment(n, lam, span)
    assert abs(got - ref) <= 1e-10 * max(1.0, abs(ref)), f"n={n} lam={lam}: {got} vs {ref}"


def test_exp_moment_infinite_span():
    for n in (0, 1, 2):
        assert abs(exp_moment(n, 0.7, math.inf) - math.factorial(n) / 0.7 ** (n + 1)) < 1e-12
    assert exp_moment(0, 0.0, math.inf) == math.inf
    assert exp_moment(1, math.inf, 2.0) == 0.0
    with pytest.raises(ValueError):
        exp_moment(3, 1.0, 1.0)
    print("✓ Infinite-span moments OK")


def test_exp_span_limits():
    assert exp_span(0.0, 1.0, 3.0) == pytest.approx(2.0)
    assert exp_span(2.0, 0.0, math.inf) == pytest.approx(0.5)
    assert exp_span(math.inf, 0.0, 1.0) == 0.0
    assert exp_span(1.0, 2.0, 1.0) == 0.0


def test_piece_exp_weighted_integral():
    p = Piece(start=1.0, end=4.0, a=2.0, k=0.5, c=0.3, m=-0.05, q=0.01)
    rate, lower = 0.4, 1.5
    ref, _ = quad(lambda x: math.exp(-rate * x) * p.value(x), lower, p.end)
    got = p.exp_weighted_integral(rate, lower)
    assert abs(got - ref) < 1e-10, f"{got} vs {ref}"
    # Lower bound below the piece start integrates the whole piece
    full, _ = quad(lambda x: math.exp(-rate * x) * p.value(x), p.start, p.end)
    assert abs(p.exp_weighted_integral(rate, 0.0) - full) < 1e-10
    print("✓ Exponentially weighted piece integral OK")


def test_piece_transforms():
    p = Piece(start=1.0, end=5.0, a=1.5, k=0.3, c=0.2, m=0.1, q=-0.02)
    xs = np.linspace(2.0, 4.9, 7)

    shifted = p.shifted_to(2.0)
    assert shifted.start == 2.0
    assert np.allclose([shifted.value(x) for x in xs], [p.value(x) for x in xs])

    moved = p.translated(3.0)
    assert np.allclose([moved.value(x + 3.0) for x in xs], [p.value(x) for x in xs])

    half = p.scaled(0.5)
    assert np.allclose([half.value(x) for x in xs], [0.5 * p.value(x) for x in xs])

    s = 2.0
    st = p.stretched(s)
    ls = xs / s
    assert st.start == pytest.approx(0.5) and st.end == pytest.approx(2.5)
    assert np.allclose([st.value(l) for l in ls], [p.value(s * l) for l in ls])
    print("✓ Piece transforms OK")


def test_crop_and_evaluate():
    pieces = [Piece(0.0, 2.0, c=1.0, m=-0.25), Piece(2.0, math.inf, a=0.5, k=1.0)]
    assert evaluate_pieces(pieces, 1.0) == pytest.approx(0.75)
    assert evaluate_pieces(pieces, 3.0) == pytest.approx(0.5 * math.exp(-1.0))
    cropped = crop(pieces, 1.0)
    assert cropped[0].start == 1.0
    assert cropped[0].value(1.5) == pytest.approx(pieces[0].value(1.5))
    assert crop(pieces, 5.0)[0].start == 5.0
