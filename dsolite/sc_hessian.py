"""Schur-complement part of the system Hessian, from eliminating point depths.

Points are used by attribute: ``residuals_all``, ``hdd_acc_af``,
``hdd_acc_lf``, ``bd_acc_af``, ``bd_acc_lf``, ``hcd_acc_af``,
``hcd_acc_lf``, ``prior_f``, ``delta_f`` and ``data``. The point's
``hdi_f`` and ``bd_sum_f`` are set, together with ``idepth_hessian`` and
``max_rel_baseline`` on its data. Residuals need ``is_active``,
``host_idx``, ``target_idx`` and ``jp_jd_f`` (8).

The energy functional ``ef`` supplies ``ad_host`` and ``ad_target``, one
8x8 adjoint per host/target pair indexed ``host + n_frames * target``.
"""

from __future__ import annotations

import numpy as np

from dsolite.accumulators import AccumulatorX, AccumulatorXX
from dsolite.residual_jacobian import CPARS

_MIN_DEPTH_HESSIAN = 1e-10


class AccumulatedSCHessian:
    """Accumulates the terms that point marginalisation subtracts from H and b."""

    def __init__(self):
        self.n_frames = 0
        self.acc_e = []
        self.acc_eb = []
        self.acc_d = []
        self.acc_hcc = AccumulatorXX(CPARS, CPARS)
        self.acc_bc = AccumulatorX(CPARS)

    def set_zero(self, n_frames):
        """Reset all accumulators for ``n_frames`` frames."""
        if n_frames < 0:
            raise ValueError("n_frames must not be negative")
        n2 = n_frames * n_frames
        if n_frames != self.n_frames or len(self.acc_e) != n2:
            self.acc_e = [AccumulatorXX(8, CPARS) for _ in range(n2)]
            self.acc_eb = [AccumulatorX(8) for _ in range(n2)]
            self.acc_d = [AccumulatorXX(8, 8) for _ in range(n2 * n_frames)]
        self.acc_bc.initialize()
        self.acc_hcc.initialize()
        for acc in (*self.acc_e, *self.acc_eb, *self.acc_d):
            acc.initialize()
        self.n_frames = n_frames

    def add_point(self, point, shift_prior_to_zero):
        """Accumulate the Schur terms of one point over its active residuals."""
        active = [r for r in point.residuals_all if r.is_active]
        if not active:
            point.hdi_f = 0.0
            point.bd_sum_f = 0.0
            point.data.idepth_hessian = 0.0
            point.data.max_rel_baseline = 0.0
            return

        h = np.float32(point.hdd_acc_af + point.hdd_acc_lf + point.prior_f)
        if h < _MIN_DEPTH_HESSIAN:
            h = np.float32(_MIN_DEPTH_HESSIAN)
        point.data.idepth_hessian = float(h)

        hdi = np.float32(1.0 / float(h))
        if not np.isfinite(hdi):
            raise ArithmeticError("inverse depth Hessian is not finite")
        point.hdi_f = float(hdi)

        bd_sum = np.float32(point.bd_acc_af + point.bd_acc_lf)
        if shift_prior_to_zero:
            bd_sum += np.float32(point.prior_f * point.delta_f)
        point.bd_sum_f = float(bd_sum)

        hcd = np.asarray(point.hcd_acc_af, dtype=np.float32) + np.asarray(
            point.hcd_acc_lf, dtype=np.float32
        )
        self.acc_hcc.update(hcd, hcd, hdi)
        self.acc_bc.update(hcd, bd_sum * hdi)

        n = self.n_frames
        n2 = n * n
        for r1 in active:
            r1ht = r1.host_idx + r1.target_idx * n
            for r2 in active:
                self.acc_d[r1ht + r2.target_idx * n2].update(r1.jp_jd_f, r2.jp_jd_f, hdi)
            self.acc_e[r1ht].update(r1.jp_jd_f, hcd, hdi)
            self.acc_eb[r1ht].update(r1.jp_jd_f, hdi * bd_sum)

    def add_points(self, points, shift_prior_to_zero):
        """Accumulate every point in ``points``."""
        for point in points:
            self.add_point(point, shift_prior_to_zero)

    def _stitch(self, ef):
        nf = self.n_frames
        n2 = nf * nf
        dim = nf * 8 + CPARS
        h_mat = np.zeros((dim, dim))
        b_vec = np.zeros(dim)

        for j in range(nf):
            js = slice(CPARS + j * 8, CPARS + j * 8 + 8)
            for i in range(nf):
                is_ = slice(CPARS + i * 8, CPARS + i * 8 + 8)
                ij = i + nf * j

                acc_e = self.acc_e[ij]
                acc_eb = self.acc_eb[ij]
                acc_e.finish()
                acc_eb.finish()
                hpc = acc_e.a1m.astype(np.float64)
                bp = acc_eb.a1m.astype(np.float64)
                ad_h = np.asarray(ef.ad_host[ij], dtype=np.float64)
                ad_t = np.asarray(ef.ad_target[ij], dtype=np.float64)

                h_mat[is_, :CPARS] += ad_h @ hpc
                h_mat[js, :CPARS] += ad_t @ hpc
                b_vec[is_] += ad_h @ bp
                b_vec[js] += ad_t @ bp

                for k in range(nf):
                    ks = slice(CPARS + k * 8, CPARS + k * 8 + 8)
                    acc_d = self.acc_d[ij + k * n2]
                    acc_d.finish()
                    if acc_d.num == 0:
                        continue
                    dm = acc_d.a1m.astype(np.float64)
                    ik = i + nf * k
                    ad_h_ik = np.asarray(ef.ad_host[ik], dtype=np.float64)
                    ad_t_ik = np.asarray(ef.ad_target[ik], dtype=np.float64)

                    h_mat[is_, is_] += ad_h @ dm @ ad_h_ik.T
                    h_mat[js, ks] += ad_t @ dm @ ad_t_ik.T
                    h_mat[js, is_] += ad_t @ dm @ ad_h_ik.T
                    h_mat[is_, ks] += ad_h @ dm @ ad_t_ik.T

        self.acc_hcc.finish()
        self.acc_bc.finish()
        h_mat[:CPARS, :CPARS] += self.acc_hcc.a1m.astype(np.float64)
        b_vec[:CPARS] += self.acc_bc.a1m.astype(np.float64)

        for h in range(nf):
            hs = slice(CPARS + h * 8, CPARS + h * 8 + 8)
            h_mat[:CPARS, hs] = h_mat[hs, :CPARS].T

        return h_mat, b_vec

    def stitch_double(self, ef):
        """Return the stitched Schur complement ``(H_sc, b_sc)``."""
        return self._stitch(ef)

    def stitch_double_mt(self, ef):
        """Return the stitched ``(H_sc, b_sc)``, aggregating all blocks."""
        return self._stitch(ef)