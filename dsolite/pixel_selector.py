"""Selection of pixels with strong gradients, one per direction per grid cell."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

MIN_USE_GRAD_PIXSEL = 10.0


@dataclass
class PixelStatus:
    """Which pixels were selected, how many, and the grid size to use next."""

    selected: np.ndarray
    num_good: int
    sparsity_factor: int


def _checked_grads(grads):
    arr = np.asarray(grads, dtype=np.float32)
    if arr.ndim != 3 or arr.shape[2] != 3:
        raise ValueError(f"grads must have shape (h, w, 3), got {arr.shape}")
    return arr


def grid_max_selection(grads, pot, th_fac=1.0):
    """Pick, in each ``pot`` x ``pot`` cell, the strongest pixel in four directions.

    ``grads[y, x]`` holds ``(intensity, dx, dy)``. Only pixels whose squared
    gradient exceeds the threshold compete. Returns a :class:`PixelStatus`
    whose ``sparsity_factor`` is ``pot``.
    """
    g = _checked_grads(grads)
    if pot < 1:
        raise ValueError("pot must be at least 1")
    h, w = g.shape[:2]
    selected = np.zeros((h, w), dtype=bool)
    ny = len(range(1, h - pot, pot))
    nx = len(range(1, w - pot, pot))
    if ny == 0 or nx == 0:
        return PixelStatus(selected, 0, pot)

    region = g[1 : 1 + ny * pot, 1 : 1 + nx * pot]
    # cells ordered (ny, nx), pixels within a cell ordered x-major as scanned
    cells = region.reshape(ny, pot, nx, pot, 3).transpose(0, 2, 3, 1, 4)
    cells = cells.reshape(ny, nx, pot * pot, 3)
    gx = cells[..., 1]
    gy = cells[..., 2]

    th = np.float32(th_fac) * np.float32(MIN_USE_GRAD_PIXSEL) * np.float32(0.75)
    strong = (gx * gx + gy * gy) > th * th
    zero = np.float32(0)
    scores = [
        np.where(strong, np.abs(gx), zero),
        np.where(strong, np.abs(gy), zero),
        np.where(strong, np.abs(gx - gy), zero),
        np.where(strong, np.abs(gx + gy), zero),
    ]

    cy, cx = np.meshgrid(np.arange(ny), np.arange(nx), indexing="ij")
    for score in scores:
        best = score.argmax(axis=2)
        valid = np.take_along_axis(score, best[..., None], axis=2)[..., 0] > 0
        dx, dy = best // pot, best % pot
        ys = 1 + cy * pot + dy
        xs = 1 + cx * pot + dx
        selected[ys[valid], xs[valid]] = True

    return PixelStatus(selected, int(selected.sum()), pot)


def make_pixel_status(grads, desired_density, sparsity_factor=1, recs_left=5, th_fac=1.0):
    """Select pixels, adapting the grid size until the count nears ``desired_density``.

    The returned ``sparsity_factor`` is the grid size suggested for the next
    call, as updated from the final selection.
    """
    if not desired_density > 0:
        raise ValueError("desired_density must be positive")
    sparsity = max(int(sparsity_factor), 1)
    th_fac = float(np.float32(th_fac))

    while True:
        status = grid_max_selection(grads, sparsity, th_fac)
        quotia = float(np.float32(status.num_good) / np.float32(desired_density))
        new_sparsity = int(np.float32(sparsity) * np.sqrt(np.float32(quotia)) + np.float32(0.7))
        new_sparsity = max(new_sparsity, 1)

        old_th_fac = th_fac
        if new_sparsity == 1 and sparsity == 1:
            th_fac = 0.5

        done = (
            (abs(new_sparsity - sparsity) < 1 and th_fac == old_th_fac)
            or (quotia > 0.8 and 1.0 / quotia > 0.8)
            or recs_left == 0
        )
        sparsity = new_sparsity
        if done:
            return PixelStatus(status.selected, status.num_good, sparsity)
        recs_left -= 1