"""Four-lane accumulator for the upper triangle of a symmetric 9x9 Hessian."""

from __future__ import annotations

import numpy as np

from dsolite.accumulators import _Tiers

_SIZE = 9
_LANES = 4
_TRIU = np.triu_indices(_SIZE)
_ENTRIES = len(_TRIU[0])  # 45


def _jacobian(value):
    arr = np.asarray(value, dtype=np.float32)
    if arr.shape != (_SIZE,):
        raise ValueError(f"jacobian must have shape ({_SIZE},), got {arr.shape}")
    return arr


def _lane_jacobians(value):
    arr = np.asarray(value, dtype=np.float32)
    if arr.shape != (_SIZE, _LANES):
        raise ValueError(
            f"jacobians must have shape ({_SIZE}, {_LANES}), got {arr.shape}"
        )
    return arr


def _lanes(value):
    arr = np.asarray(value, dtype=np.float32)
    if arr.shape == ():
        return np.full(_LANES, arr, dtype=np.float32)
    if arr.shape != (_LANES,):
        raise ValueError(f"weights must be a scalar or have shape ({_LANES},)")
    return arr


def _check_lane(off):
    if not 0 <= off < _LANES:
        raise ValueError(f"lane offset must be in [0, {_LANES}), got {off}")


class Accumulator9:
    """Accumulates ``J J^T`` for 9-vectors ``J``, in four independent lanes.

    Lane sums are folded together in :meth:`finish`, which fills ``h``.
    """

    def __init__(self):
        self._tiers = _Tiers((_ENTRIES, _LANES))
        self.h = np.zeros((_SIZE, _SIZE), dtype=np.float32)
        self.b = np.zeros(_SIZE, dtype=np.float32)
        self.num = 0

    def initialize(self):
        self.h = np.zeros((_SIZE, _SIZE), dtype=np.float32)
        self.b = np.zeros(_SIZE, dtype=np.float32)
        self._tiers.reset()
        self.num = 0

    def finish(self):
        self.h = np.zeros((_SIZE, _SIZE), dtype=np.float32)
        self._tiers.shift_up(True)
        d = self._tiers.total[0].sum(axis=1, dtype=np.float32)
        self.h[_TRIU] = d
        self.h[_TRIU[1], _TRIU[0]] = d

    def _add(self, entries):
        self._tiers.current[0] += entries
        self._tiers.record()

    def update_sse(self, jacobians):
        """Add four Jacobians at once; ``jacobians[k]`` holds component k per lane."""
        j = _lane_jacobians(jacobians)
        self._add((j[:, None, :] * j[None, :, :])[_TRIU])
        self.num += _LANES

    def update_sse_weighted(self, jacobians, w):
        """Like :meth:`update_sse`, with a weight per lane."""
        j = _lane_jacobians(jacobians)
        jw = j * _lanes(w)
        self._add((jw[:, None, :] * j[None, :, :])[_TRIU])
        self.num += _LANES

    def update_single(self, jacobian, off=0):
        """Add one Jacobian into lane ``off``."""
        _check_lane(off)
        j = _jacobian(jacobian)
        entries = np.zeros((_ENTRIES, _LANES), dtype=np.float32)
        entries[:, off] = np.outer(j, j)[_TRIU]
        self._add(entries)
        self.num += 1

    def update_single_weighted(self, jacobian, w, off=0):
        """Add one weighted Jacobian ``w J J^T`` into lane ``off``."""
        _check_lane(off)
        j = _jacobian(jacobian)
        entries = np.zeros((_ENTRIES, _LANES), dtype=np.float32)
        entries[:, off] = np.outer(j * np.float32(w), j)[_TRIU]
        self._add(entries)
        self.num += 1