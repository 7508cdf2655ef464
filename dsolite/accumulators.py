"""Numerically robust accumulators for sums of outer products.

Each accumulator adds into a first-level buffer; once more than 1000
updates have gone into a level, it is folded into the next level. This
keeps float32 sums of many small terms accurate.
"""

from __future__ import annotations

import numpy as np

_THRESHOLD = 1000
_TRIU10 = np.triu_indices(10)
_TRIU3 = np.triu_indices(3)


class _Tiers:
    """Three levels of float32 buffers with shared update counters."""

    def __init__(self, *shapes):
        self._shapes = shapes
        self.reset()

    def reset(self):
        self.levels = [[np.zeros(s, dtype=np.float32) for s in self._shapes] for _ in range(3)]
        self.counts = [0, 0, 0]

    @property
    def current(self):
        return self.levels[0]

    @property
    def total(self):
        return self.levels[2]

    @property
    def count(self):
        return sum(self.counts)

    def record(self, shift=True):
        self.counts[0] += 1
        if shift:
            self.shift_up(False)

    def shift_up(self, force):
        for lvl in (0, 1):
            if self.counts[lvl] > _THRESHOLD or force:
                for low, high in zip(self.levels[lvl], self.levels[lvl + 1]):
                    high += low
                    low.fill(0)
                self.counts[lvl + 1] += self.counts[lvl]
                self.counts[lvl] = 0


def _vector(value, size, name):
    arr = np.asarray(value, dtype=np.float32)
    if arr.shape != (size,):
        raise ValueError(f"{name} must have shape ({size},), got {arr.shape}")
    return arr


class AccumulatorXX:
    """Accumulates weighted outer products ``w * L R^T`` of fixed size."""

    def __init__(self, rows, cols):
        self.shape = (rows, cols)
        self._tiers = _Tiers((rows, cols))
        self.num = 0

    @property
    def a(self):
        return self._tiers.levels[0][0]

    @property
    def a1k(self):
        return self._tiers.levels[1][0]

    @property
    def a1m(self):
        """The finished sum; valid after :meth:`finish`."""
        return self._tiers.total[0]

    def initialize(self):
        self._tiers.reset()
        self.num = 0

    def finish(self):
        self._tiers.shift_up(True)
        self.num = self._tiers.count

    def update(self, left, right, w):
        left = _vector(left, self.shape[0], "left")
        right = _vector(right, self.shape[1], "right")
        self._tiers.current[0] += np.float32(w) * np.outer(left, right)
        self._tiers.record()


class AccumulatorX:
    """Accumulates (optionally weighted) vectors of fixed size."""

    def __init__(self, size):
        self.size = size
        self._tiers = _Tiers((size,))
        self.num = 0

    @property
    def a(self):
        return self._tiers.levels[0][0]

    @property
    def a1k(self):
        return self._tiers.levels[1][0]

    @property
    def a1m(self):
        """The finished sum; valid after :meth:`finish`."""
        return self._tiers.total[0]

    def initialize(self):
        self._tiers.reset()
        self.num = 0

    def finish(self):
        self._tiers.shift_up(True)
        self.num = self._tiers.count

    def update(self, vec, w):
        self._tiers.current[0] += np.float32(w) * _vector(vec, self.size, "vec")
        self._tiers.record()

    def update_no_weight(self, vec):
        self._tiers.current[0] += _vector(vec, self.size, "vec")
        self._tiers.record()


class Accumulator11:
    """Accumulates scalars, either one at a time or four lanes at once."""

    def __init__(self):
        self._tiers = _Tiers((4,))
        self.a = 0.0
        self.num = 0

    def initialize(self):
        self._tiers.reset()
        self.a = 0.0
        self.num = 0

    def finish(self):
        self._tiers.shift_up(True)
        self.a = float(self._tiers.total[0].sum(dtype=np.float32))

    def _add_single(self, val, shift):
        self._tiers.current[0][0] += np.float32(val)
        self.num += 1
        self._tiers.record(shift)

    def _add_lanes(self, vals, shift):
        self._tiers.current[0] += _vector(vals, 4, "vals")
        self.num += 4
        self._tiers.record(shift)

    def update_single(self, val):
        self._add_single(val, True)

    def update_sse(self, vals):
        self._add_lanes(vals, True)

    def update_single_no_shift(self, val):
        self._add_single(val, False)

    def update_sse_no_shift(self, vals):
        self._add_lanes(vals, False)


class AccumulatorApprox:
    """Builds a symmetric 13x13 Hessian block.

    The top-left 10x10 part is ``[x y] [[a, b], [b, c]] [x y]^T`` summed
    over updates; the top-right 10x3 and bottom-right 3x3 parts are
    accumulated directly.
    """

    def __init__(self):
        self._tiers = _Tiers((55,), (30,), (6,))
        self.h = np.zeros((13, 13), dtype=np.float32)
        self.num = 0

    def initialize(self):
        self._tiers.reset()
        self.num = 0

    def finish(self):
        self.h = np.zeros((13, 13), dtype=np.float32)
        self._tiers.shift_up(True)
        data, top_right, bot_right = self._tiers.total

        self.h[_TRIU10] = data
        self.h[_TRIU10[1], _TRIU10[0]] = data

        tr = top_right.reshape(10, 3)
        self.h[:10, 10:] = tr
        self.h[10:, :10] = tr.T

        rows, cols = _TRIU3[0] + 10, _TRIU3[1] + 10
        self.h[rows, cols] = bot_right
        self.h[cols, rows] = bot_right

        self.num = self._tiers.count

    def update_sse(self, x, y, a, b, c):
        x = _vector(x, 10, "x")
        y = _vector(y, 10, "y")
        a, b, c = np.float32(a), np.float32(b), np.float32(c)
        xy = np.outer(x, y)
        m = a * np.outer(x, x) + c * np.outer(y, y) + b * (xy + xy.T)
        self._tiers.current[0] += m[_TRIU10]
        self.num += 1
        self._tiers.record()

    def update(self, x4, x6, y4, y6, a, b, c):
        x = np.concatenate([_vector(x4, 4, "x4"), _vector(x6, 6, "x6")])
        y = np.concatenate([_vector(y4, 4, "y4"), _vector(y6, 6, "y6")])
        self.update_sse(x, y, a, b, c)

    def update_top_right(self, x4, x6, y4, y6, tr00, tr10, tr01, tr11, tr02, tr12):
        x = np.concatenate([_vector(x4, 4, "x4"), _vector(x6, 6, "x6")])
        y = np.concatenate([_vector(y4, 4, "y4"), _vector(y6, 6, "y6")])
        row0 = np.array([tr00, tr01, tr02], dtype=np.float32)
        row1 = np.array([tr10, tr11, tr12], dtype=np.float32)
        self._tiers.current[1] += (np.outer(x, row0) + np.outer(y, row1)).ravel()

    def update_bot_right(self, a00, a01, a02, a11, a12, a22):
        self._tiers.current[2] += np.array([a00, a01, a02, a11, a12, a22], dtype=np.float32)