from types import SimpleNamespace

import numpy as np
import pytest

from dsolite.sc_hessian import AccumulatedSCHessian


def _res(host, target, jp, active=True):
    return SimpleNamespace(
        is_active=active,
        host_idx=host,
        target_idx=target,
        jp_jd_f=np.asarray(jp, dtype=np.float32),
    )


def _point(residuals, hdd=2.0, bd=1.0, hcd=(1.0, 0.0, 0.0, 0.0), prior=0.0, delta=0.0):
    return SimpleNamespace(
        residuals_all=residuals,
        hdd_acc_af=hdd,
        hdd_acc_lf=0.0,
        prior_f=prior,
        delta_f=delta,
        bd_acc_af=bd,
        bd_acc_lf=0.0,
        hcd_acc_af=np.asarray(hcd, dtype=np.float32),
        hcd_acc_lf=np.zeros(4, dtype=np.float32),
        data=SimpleNamespace(),
        hdi_f=None,
        bd_sum_f=None,
    )


def _ef(n):
    return SimpleNamespace(
        ad_host=[np.eye(8) for _ in range(n * n)],
        ad_target=[np.eye(8) for _ in range(n * n)],
    )


JP = np.arange(1, 9, dtype=np.float32) / 8


def test_point_without_active_residuals_is_zeroed():
    acc = AccumulatedSCHessian()
    acc.set_zero(1)
    p = _point([_res(0, 0, JP, active=False)])
    acc.add_point(p, True)
    assert p.hdi_f == 0.0
    assert p.bd_sum_f == 0.0
    assert p.data.idepth_hessian == 0.0
    assert p.data.max_rel_baseline == 0.0


def test_depth_hessian_is_clamped():
    acc = AccumulatedSCHessian()
    acc.set_zero(1)
    p = _point([_res(0, 0, JP)], hdd=0.0)
    acc.add_point(p, False)
    assert p.data.idepth_hessian == pytest.approx(1e-10)
    assert p.hdi_f == pytest.approx(1e10, rel=1e-5)


def test_shift_prior_to_zero_adds_prior_term():
    acc = AccumulatedSCHessian()
    acc.set_zero(1)
    shifted = _point([_res(0, 0, JP)], bd=1.0, prior=3.0, delta=2.0)
    plain = _point([_res(0, 0, JP)], bd=1.0, prior=3.0, delta=2.0)
    acc.add_point(shifted, True)
    acc.add_point(plain, False)
    assert plain.bd_sum_f == pytest.approx(1.0)
    assert shifted.bd_sum_f == pytest.approx(7.0)


def test_single_frame_calibration_block():
    acc = AccumulatedSCHessian()
    acc.set_zero(1)
    acc.add_point(_point([_res(0, 0, JP)], hdd=2.0, bd=1.0), False)
    h, b = acc.stitch_double(_ef(1))
    assert h.shape == (12, 12)
    assert b.shape == (12,)
    assert h[0, 0] == pytest.approx(0.5)
    assert b[0] == pytest.approx(h[0, 0])
    np.testing.assert_allclose(h[1:4, 1:4], 0.0)


def test_calibration_rows_mirror_columns():
    acc = AccumulatedSCHessian()
    acc.set_zero(2)
    acc.add_point(_point([_res(0, 1, JP), _res(0, 0, JP * 2)], hcd=(1, 2, 3, 4)), True)
    h, _ = acc.stitch_double(_ef(2))
    np.testing.assert_allclose(h[:4, 4:], h[4:, :4].T)
    assert np.abs(h[4:, :4]).sum() > 0


def test_mt_and_single_stitch_agree():
    ef = _ef(2)
    a = AccumulatedSCHessian()
    b = AccumulatedSCHessian()
    points = [
        _point([_res(0, 1, JP), _res(0, 0, -JP)], hcd=(1, 0, 2, 0)),
        _point([_res(1, 0, JP * 3)], hdd=5.0, bd=-2.0),
    ]
    for acc in (a, b):
        acc.set_zero(2)
        acc.add_points(points, True)
    h1, b1 = a.stitch_double(ef)
    h2, b2 = b.stitch_double_mt(ef)
    np.testing.assert_allclose(h1, h2)
    np.testing.assert_allclose(b1, b2)


def test_add_points_matches_add_point():
    ef = _ef(2)
    points = [_point([_res(0, 1, JP)]), _point([_res(1, 1, JP * 2)], hdd=4.0)]
    one = AccumulatedSCHessian()
    one.set_zero(2)
    one.add_points(points, False)
    two = AccumulatedSCHessian()
    two.set_zero(2)
    for p in points:
        two.add_point(p, False)
    np.testing.assert_allclose(one.stitch_double(ef)[0], two.stitch_double(ef)[0])


def test_set_zero_clears_previous_sums():
    acc = AccumulatedSCHessian()
    acc.set_zero(1)
    acc.add_point(_point([_res(0, 0, JP)]), True)
    acc.set_zero(1)
    h, b = acc.stitch_double(_ef(1))
    assert not h.any()
    assert not b.any()


def test_set_zero_rejects_negative():
    with pytest.raises(ValueError):
        AccumulatedSCHessian().set_zero(-1)