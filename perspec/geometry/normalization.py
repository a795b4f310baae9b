"""
Optional conditioning pre-pass for homography estimation.

Coordinates are centred on their centroid and scaled isotropically so the
mean distance from the origin is sqrt(2).  Solving in this normalised frame
keeps the entries of the linear system at comparable magnitudes, which helps
when corners are given in large pixel coordinates.  The resulting matrix is
mapped back to the original frame.

Nothing calls this implicitly; use :func:`compute_normalized_homography`
in place of ``compute_homography`` to opt in.
"""

import math
from typing import Callable, Optional

import numpy as np

from perspec.errors import DegenerateSolution, HomographyError, InvalidCoordinate
from perspec.geometry.homography import (
    assemble_matrix,
    check_solution,
    estimate_homography,
    validated_corners,
)
from perspec.solver.gaussian import EPSILON
from perspec.types import IDENTITY, Corners, Matrix3x3, Point2D


def normalize_points(corners: Corners):
    """Centre *corners* on the origin and scale to mean distance sqrt(2).

    Parameters
    ----------
    corners : Corners

    Returns
    -------
    normalized : Corners
        ``((p + (tx, ty)) * scale)`` for every point ``p``.
    scale : float
        Isotropic scale factor; 1.0 if the points all coincide.
    tx, ty : float
        Translation applied before scaling (the negated centroid).
    """
    mean_x = sum(p.x for p in corners) / 4
    mean_y = sum(p.y for p in corners) / 4

    avg_dist = sum(math.hypot(p.x - mean_x, p.y - mean_y) for p in corners) / 4
    scale = math.sqrt(2.0) / avg_dist if avg_dist > 1e-10 else 1.0
    tx, ty = -mean_x, -mean_y

    normalized = Corners(*(Point2D((p.x + tx) * scale, (p.y + ty) * scale)
                           for p in corners))
    return normalized, scale, tx, ty


def similarity_matrix(scale: float, tx: float, ty: float) -> np.ndarray:
    """3 x 3 matrix of the map ``p -> (p + t) * scale``."""
    return np.array([
        [scale, 0.0,   scale * tx],
        [0.0,   scale, scale * ty],
        [0.0,   0.0,   1.0       ],
    ])


def compute_normalized_homography(src, dst,
                                  log: Optional[Callable[[str], None]] = None) -> Matrix3x3:
    """Like ``compute_homography`` but solved in normalised coordinates.

    Returns :data:`IDENTITY` on any failure, exactly as the plain path does.
    """
    try:
        src, dst = validated_corners(src, dst, log)
        if not all(math.isfinite(c) for c in src.coordinates() + dst.coordinates()):
            raise InvalidCoordinate("infinite coordinate detected")

        n_src, s_scale, s_tx, s_ty = normalize_points(src)
        n_dst, d_scale, d_tx, d_ty = normalize_points(dst)
        if log is not None:
            log(f"Normalised src: scale={s_scale:.6g} t=({s_tx:.6g}, {s_ty:.6g})")
            log(f"Normalised dst: scale={d_scale:.6g} t=({d_tx:.6g}, {d_ty:.6g})")

        Hn = estimate_homography(n_src, n_dst, log).as_array()

        T_src = similarity_matrix(s_scale, s_tx, s_ty)
        T_dst_inv = np.array([
            [1.0 / d_scale, 0.0,           -d_tx],
            [0.0,           1.0 / d_scale, -d_ty],
            [0.0,           0.0,            1.0 ],
        ])
        with np.errstate(over="ignore", invalid="ignore"):
            H = T_dst_inv @ Hn @ T_src

        if not abs(H[2, 2]) >= EPSILON:
            raise DegenerateSolution(f"denormalised m22 = {H[2, 2]!r}")
        with np.errstate(over="ignore", invalid="ignore"):
            x = (H / H[2, 2]).ravel()[:8]

        check_solution(x)
        return assemble_matrix(x, log)
    except HomographyError as exc:
        if log is not None:
            log(f"{type(exc).__name__}: {exc}; returning identity matrix")
        return IDENTITY
