import numpy as np
import pytest

from fracture_shadow.numba import numba_available, resolve_kernel
from fracture_shadow.numba.kernels_quadrature import interleave_midpoints, simpson_sum


def test_simpson_is_exact_for_cubics():
    x = interleave_midpoints(np.array([0.0, 0.5, 1.25, 2.0]))
    assert x.shape == (7,)
    assert np.allclose(x[1::2], [0.25, 0.875, 1.625])
    y = x ** 3 - 2.0 * x
    assert simpson_sum(x, y) == pytest.approx(2.0 ** 4 / 4.0 - 2.0 ** 2)
    print("✓ Simpson kernel exact for cubics")


def test_degenerate_inputs():
    assert interleave_midpoints(np.empty(0)).shape == (0,)
    single = interleave_midpoints(np.array([3.0]))
    assert single.tolist() == [3.0]
    assert simpson_sum(single, np.array([1.0])) == 0.0


def test_pure_python_kernel_when_disabled():
    assert resolve_kernel(simpson_sum, False) is simpson_sum


def test_numba_kernels_match_python():
    pytest.importorskip("numba")
    assert numba_available()
    rng = np.random.default_rng(0)
    pts = np.sort(rng.uniform(0.0, 50.0, size=40))
    x_py = interleave_midpoints(pts)
    y = np.exp(-0.1 * x_py) * (1.0 + 0.2 * np.sin(x_py))

    x_nb = resolve_kernel(interleave_midpoints, True)(pts)
    assert np.allclose(x_nb, x_py)
    s_nb = resolve_kernel(simpson_sum, True)(x_py, y)
    assert abs(s_nb - simpson_sum(x_py, y)) < 1e-12
    print("✓ Numba quadrature kernels match pure Python")


def test_missing_numba_falls_back_to_python(monkeypatch, capsys):
    import fracture_shadow.numba.utils as nb_utils

    monkeypatch.setattr(nb_utils, "numba_available", lambda: False)
    monkeypatch.setattr(nb_utils, "_FALLBACK_REPORTED", False)
    assert resolve_kernel(simpson_sum, True) is simpson_sum
    assert resolve_kernel(interleave_midpoints, True) is interleave_midpoints
    out = capsys.readouterr().out
    assert out.count("falling back to pure Python") == 1
    print("✓ Missing numba falls back to the pure-Python kernels")
