import numpy as np
import pytest

from dsolite.accumulator14 import Accumulator14


def _fresh():
    acc = Accumulator14()
    acc.initialize()
    return acc


def test_single_update_gives_outer_product():
    acc = _fresh()
    j = np.arange(1, 15, dtype=np.float32)
    acc.update_single(j)
    acc.finish()
    np.testing.assert_allclose(acc.h, np.outer(j, j))
    assert acc.num == 1


def test_lanes_are_summed_in_finish():
    acc = _fresh()
    j1 = np.arange(14, dtype=np.float32)
    j2 = np.ones(14, dtype=np.float32)
    acc.update_single(j1, 0)
    acc.update_single(j2, 3)
    acc.finish()
    np.testing.assert_allclose(acc.h, np.outer(j1, j1) + np.outer(j2, j2))


def test_sse_update_matches_four_single_updates():
    rng = np.random.default_rng(1)
    jac = rng.integers(-3, 4, size=(14, 4)).astype(np.float32)
    a = _fresh()
    a.update_sse(jac)
    a.finish()
    b = _fresh()
    for lane in range(4):
        b.update_single(jac[:, lane], lane)
    b.finish()
    np.testing.assert_allclose(a.h, b.h)
    np.testing.assert_allclose(a.h, jac @ jac.T)


def test_result_is_symmetric():
    rng = np.random.default_rng(7)
    acc = _fresh()
    for _ in range(5):
        acc.update_single(rng.normal(size=14))
    acc.finish()
    np.testing.assert_array_equal(acc.h, acc.h.T)


def test_many_updates_survive_level_shifts():
    acc = _fresh()
    j = np.zeros(14, dtype=np.float32)
    j[2] = 1.0
    j[5] = 2.0
    n = 2500
    for _ in range(n):
        acc.update_single(j)
    acc.finish()
    np.testing.assert_allclose(acc.h, n * np.outer(j, j))
    assert acc.num == n


def test_initialize_clears_state():
    acc = _fresh()
    acc.update_single(np.ones(14))
    acc.initialize()
    acc.finish()
    assert not acc.h.any()
    assert acc.num == 0
    assert not acc.b.any()


def test_bad_shapes_and_lanes_raise():
    acc = _fresh()
    with pytest.raises(ValueError):
        acc.update_single(np.ones(9))
    with pytest.raises(ValueError):
        acc.update_single(np.ones(14), 4)
    with pytest.raises(ValueError):
        acc.update_sse(np.ones((14, 3)))