import numpy as np
import pytest

from dsolite.pixel_selector import grid_max_selection, make_pixel_status


def _grads(h, w, value=(0.0, 0.0, 0.0)):
    g = np.zeros((h, w, 3), dtype=np.float32)
    g[:, :] = value
    return g


def test_zero_gradients_select_nothing():
    status = grid_max_selection(_grads(10, 12), 2)
    assert status.num_good == 0
    assert not status.selected.any()
    assert status.selected.shape == (10, 12)


def test_threshold_separates_weak_and_strong_pixels():
    g = _grads(6, 6)
    g[2, 2] = (0.0, 7.0, 0.0)
    g[3, 3] = (0.0, 8.0, 0.0)
    status = grid_max_selection(g, 1)
    assert status.selected[3, 3]
    assert not status.selected[2, 2]
    assert status.num_good == 1


def test_lower_threshold_factor_admits_weaker_pixels():
    g = _grads(6, 6)
    g[2, 2] = (0.0, 7.0, 0.0)
    assert grid_max_selection(g, 1, 1.0).num_good == 0
    assert grid_max_selection(g, 1, 0.5).selected[2, 2]


def test_ties_go_to_first_pixel_in_column_major_scan():
    g = _grads(6, 6)
    g[1, 2] = (0.0, 20.0, 0.0)
    g[2, 1] = (0.0, 20.0, 0.0)
    status = grid_max_selection(g, 2)
    assert status.selected[2, 1]
    assert not status.selected[1, 2]
    assert status.num_good == 1


def test_border_is_never_selected():
    g = _grads(8, 8, (0.0, 30.0, 10.0))
    status = grid_max_selection(g, 1)
    assert not status.selected[0].any()
    assert not status.selected[:, 0].any()
    assert not status.selected[-1].any()
    assert not status.selected[:, -1].any()
    assert status.num_good == int(status.selected.sum())


def test_at_most_four_pixels_per_cell():
    rng = np.random.default_rng(3)
    g = rng.normal(scale=40.0, size=(21, 21, 3)).astype(np.float32)
    pot = 4
    status = grid_max_selection(g, pot)
    for y in range(1, 21 - pot, pot):
        for x in range(1, 21 - pot, pot):
            assert status.selected[y : y + pot, x : x + pot].sum() <= 4
    assert status.num_good == int(status.selected.sum())


def test_bad_grads_shape_raises():
    with pytest.raises(ValueError):
        grid_max_selection(np.zeros((5, 5)), 1)


def test_density_already_met_keeps_sparsity():
    g = _grads(10, 10, (0.0, 10.0, 5.0))
    count = grid_max_selection(g, 1).num_good
    status = make_pixel_status(g, count, 1)
    assert status.sparsity_factor == 1
    assert status.num_good == count


def test_low_desired_density_grows_grid():
    g = _grads(40, 40, (0.0, 10.0, 5.0))
    status = make_pixel_status(g, 20, 1)
    assert status.sparsity_factor > 1
    assert status.num_good == int(status.selected.sum())
    assert status.num_good < grid_max_selection(g, 1).num_good


def test_no_recursion_left_returns_first_selection():
    g = _grads(40, 40, (0.0, 10.0, 5.0))
    first = grid_max_selection(g, 1)
    status = make_pixel_status(g, 20, 1, recs_left=0)
    assert status.num_good == first.num_good
    np.testing.assert_array_equal(status.selected, first.selected)


def test_sparsity_below_one_is_clamped():
    g = _grads(10, 10, (0.0, 10.0, 5.0))
    count = grid_max_selection(g, 1).num_good
    status = make_pixel_status(g, count, 0)
    assert status.num_good == count


def test_non_positive_density_raises():
    with pytest.raises(ValueError):
        make_pixel_status(_grads(5, 5), 0)