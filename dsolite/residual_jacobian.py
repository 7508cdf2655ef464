"""Raw Jacobian of one photometric residual with respect to the optimised states."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

#: Number of camera intrinsic parameters (fx, fy, cx, cy).
CPARS = 4


def _checked(value, shape, name):
    arr = np.array(value, dtype=np.float32)
    if arr.shape != shape:
        raise ValueError(f"{name} must have shape {shape}, got {arr.shape}")
    return arr


@dataclass
class RawResidualJacobian:
    """Per-residual derivatives, stored split by parameter block.

    ``res_f`` holds one residual per pattern pixel; the other fields are:

    * ``jpdxi``: the two rows of d[x, y]/d[xi] (2 x 6)
    * ``jpdc``: the two rows of d[x, y]/d[C] (2 x CPARS)
    * ``jpdd``: d[x, y]/d[idepth] (2)
    * ``jidx``: the two columns of d[r]/d[x, y] (2 x pattern)
    * ``jab_f``: the two columns of d[r]/d[a, b] (2 x pattern)
    * ``jidx2``: JIdx^T JIdx (2 x 2)
    * ``jab_jidx``: Jab^T JIdx (2 x 2)
    * ``jab2``: Jab^T Jab (2 x 2)
    """

    res_f: np.ndarray
    jpdxi: np.ndarray
    jpdc: np.ndarray
    jpdd: np.ndarray
    jidx: np.ndarray
    jab_f: np.ndarray
    jidx2: np.ndarray
    jab_jidx: np.ndarray
    jab2: np.ndarray

    def __post_init__(self):
        res = np.array(self.res_f, dtype=np.float32)
        if res.ndim != 1 or res.size == 0:
            raise ValueError("res_f must be a non-empty one-dimensional array")
        n = res.shape[0]
        self.res_f = res
        self.jpdxi = _checked(self.jpdxi, (2, 6), "jpdxi")
        self.jpdc = _checked(self.jpdc, (2, CPARS), "jpdc")
        self.jpdd = _checked(self.jpdd, (2,), "jpdd")
        self.jidx = _checked(self.jidx, (2, n), "jidx")
        self.jab_f = _checked(self.jab_f, (2, n), "jab_f")
        self.jidx2 = _checked(self.jidx2, (2, 2), "jidx2")
        self.jab_jidx = _checked(self.jab_jidx, (2, 2), "jab_jidx")
        self.jab2 = _checked(self.jab2, (2, 2), "jab2")

    @classmethod
    def zeros(cls, pattern_num):
        """Return an all-zero Jacobian for a pattern of ``pattern_num`` pixels."""
        if pattern_num < 1:
            raise ValueError("pattern_num must be at least 1")
        return cls(
            res_f=np.zeros(pattern_num),
            jpdxi=np.zeros((2, 6)),
            jpdc=np.zeros((2, CPARS)),
            jpdd=np.zeros(2),
            jidx=np.zeros((2, pattern_num)),
            jab_f=np.zeros((2, pattern_num)),
            jidx2=np.zeros((2, 2)),
            jab_jidx=np.zeros((2, 2)),
            jab2=np.zeros((2, 2)),
        )