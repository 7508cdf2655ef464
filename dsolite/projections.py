"""Projection of pattern points from a host frame into a target frame."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class PinholeCalib:
    """Pinhole intrinsics at pyramid level 0."""

    fxl: float
    fyl: float
    cxl: float
    cyl: float


@dataclass(frozen=True)
class Projection:
    """Result of projecting a point with a known calibration."""

    ku: float
    kv: float
    u: float
    v: float
    drescale: float
    new_idepth: float
    klip: np.ndarray


def _in_image(ku, kv, w_m3, h_m3):
    return ku > 1.1 and kv > 1.1 and ku < w_m3 and kv < h_m3


def derive_idepth(t, u, v, dx_interp, dy_interp, drescale, scale_idepth):
    """Derivative of the projected intensity with respect to inverse depth."""
    return (
        dx_interp * drescale * (t[0] - t[2] * u)
        + dy_interp * drescale * (t[1] - t[2] * v)
    ) * scale_idepth


def project_point(u_pt, v_pt, idepth, krki, kt, w_m3, h_m3):
    """Project a pixel with ``K R K^-1`` and ``K t``.

    Returns the target pixel ``(ku, kv)``, or ``None`` when it falls
    outside the usable image area.
    """
    ptp = np.asarray(krki, dtype=np.float64) @ np.array([u_pt, v_pt, 1.0]) + (
        np.asarray(kt, dtype=np.float64) * idepth
    )
    with np.errstate(divide="ignore", invalid="ignore"):
        ku = float(np.divide(ptp[0], ptp[2]))
        kv = float(np.divide(ptp[1], ptp[2]))
    if not _in_image(ku, kv, w_m3, h_m3):
        return None
    return ku, kv


def project_point_calibrated(u_pt, v_pt, idepth, dx, dy, calib, rot, t, w_m3, h_m3):
    """Project pixel ``(u_pt + dx, v_pt + dy)`` through rotation and translation.

    Returns a :class:`Projection`, or ``None`` when the point lands behind
    the camera or outside the usable image area.
    """
    klip = np.array(
        [
            (u_pt + dx - calib.cxl) / calib.fxl,
            (v_pt + dy - calib.cyl) / calib.fyl,
            1.0,
        ]
    )
    ptp = np.asarray(rot, dtype=np.float64) @ klip + np.asarray(t, dtype=np.float64) * idepth
    with np.errstate(divide="ignore", invalid="ignore"):
        drescale = float(np.divide(1.0, ptp[2]))
    if not drescale > 0:
        return None
    new_idepth = idepth * drescale
    u = float(ptp[0] * drescale)
    v = float(ptp[1] * drescale)
    ku = u * calib.fxl + calib.cxl
    kv = v * calib.fyl + calib.cyl
    if not _in_image(ku, kv, w_m3, h_m3):
        return None
    return Projection(ku=ku, kv=kv, u=u, v=v, drescale=drescale, new_idepth=new_idepth, klip=klip)