# dsolite

Building blocks for the optimisation back end of a sparse, direct visual
odometry system, written with NumPy.

## Modules

- `dsolite.accumulators`: staged float32 accumulators. `AccumulatorXX`
  sums weighted outer products `w * L R^T`. `AccumulatorX` sums weighted
  or unweighted vectors. `Accumulator11` sums scalars, one at a time or four
  lanes at once. `AccumulatorApprox` builds a symmetric 13x13 block from
  `[x y] [[a, b], [b, c]] [x y]^T` plus top-right and bottom-right parts.
  Each level is folded into the next once it has taken more than 1000
  updates, which keeps long sums accurate. Call `finish()` before you read
  the result (`a1m`, `a` or `h`) and the update count `num`.
- `dsolite.accumulator9` and `dsolite.accumulator14`: four-lane
  accumulators (`Accumulator9`, `Accumulator14`) for `J J^T` with 9- and
  14-vectors. `finish()` fills the symmetric matrix `h`.
  `Accumulator9` also has weighted updates.
- `dsolite.residual_jacobian`: `RawResidualJacobian`, a dataclass holding the
  derivatives of one residual pattern. Its shapes are checked when it is
  built. `RawResidualJacobian.zeros(pattern_num)` gives an all-zero one.
  `CPARS` is the number of intrinsics, 4.
- `dsolite.projections`: `derive_idepth` gives the inverse-depth derivative.
  `project_point` projects with `K R K^-1` and `K t`, and returns `(ku, kv)`
  or `None`. `project_point_calibrated` takes a `PinholeCalib`, a rotation
  and a translation, and returns a `Projection` or `None`. A point is
  rejected when it lands behind the camera or outside the usable image area
  (`1.1 < ku < w_m3`, `1.1 < kv < h_m3`).
- `dsolite.pixel_selector`: `grid_max_selection` picks, in each grid cell,
  the strongest pixel along x, y and both diagonals. `make_pixel_status`
  adapts the grid size until the count of selected pixels is near a desired
  density. Both return a `PixelStatus` (`selected`, `num_good`,
  `sparsity_factor`).
- `dsolite.sc_hessian`: `AccumulatedSCHessian` accumulates the Schur
  complement that eliminating point inverse depths subtracts from the
  frame/calibration system. `stitch_double(ef)` returns `(H_sc, b_sc)` of
  size `8 * n_frames + 4`.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Examples

Pixel selection:

```python
import numpy as np
from dsolite.pixel_selector import make_pixel_status

h, w = 48, 64
grads = np.zeros((h, w, 3), dtype=np.float32)
grads[..., 1] = np.random.default_rng(0).normal(0, 40, (h, w))
grads[..., 2] = np.random.default_rng(1).normal(0, 40, (h, w))

status = make_pixel_status(grads, desired_density=300, sparsity_factor=5,
                           recs_left=5, th_fac=1.0)
print(status.num_good, status.sparsity_factor)
```

A staged accumulator:

```python
from dsolite.accumulators import AccumulatorX

acc = AccumulatorX(3)
acc.initialize()
for _ in range(5000):
    acc.update([1.0, 2.0, 3.0], 0.5)
acc.finish()
print(acc.a1m, acc.num)   # [2500. 5000. 7500.] 5000
```

The Schur complement. Points, residuals and the object that carries the
adjoints can be any objects with the attributes that `dsolite.sc_hessian`
documents:

```python
from types import SimpleNamespace
import numpy as np
from dsolite.sc_hessian import AccumulatedSCHessian

n = 2
ef = SimpleNamespace(ad_host=[np.eye(8)] * (n * n), ad_target=[np.eye(8)] * (n * n))
res = SimpleNamespace(is_active=True, host_idx=0, target_idx=1,
                      jp_jd_f=np.ones(8, dtype=np.float32))
point = SimpleNamespace(
    residuals_all=[res], hdd_acc_af=2.0, hdd_acc_lf=0.0, bd_acc_af=1.0,
    bd_acc_lf=0.0, hcd_acc_af=np.ones(4), hcd_acc_lf=np.zeros(4),
    prior_f=0.0, delta_f=0.0, data=SimpleNamespace(),
)

acc = AccumulatedSCHessian()
acc.set_zero(n)
acc.add_point(point, shift_prior_to_zero=True)
h_sc, b_sc = acc.stitch_double(ef)
print(h_sc.shape, point.hdi_f)   # (20, 20) 0.5
```

## What the package does not do

The package has no energy functional. It does not manage frames, points
or residuals, and it does not accumulate the active or linearised top
Hessian. It does not solve or back-substitute a Gauss-Newton step,
marginalise frames or points, or evaluate energies. `AccumulatedSCHessian`
expects the caller to supply the point data, the residual Jacobian
products and the adjoint matrices. The package has no command-line program,
and it does not read images or calibration files.