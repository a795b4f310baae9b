"""
Homography estimation from four corner correspondences.

A planar homography (projective transformation) maps the corners of one
quadrilateral onto another.  Fixing the bottom-right entry of the 3x3 matrix
to 1 removes the scale ambiguity and leaves eight unknowns, and each
correspondence ``(sx, sy) -> (dx, dy)`` contributes two linear equations:

    dx * (m20*sx + m21*sy + 1) = m00*sx + m01*sy + m02
    dy * (m20*sx + m21*sy + 1) = m10*sx + m11*sy + m12

The resulting 8 x 8 system is handed to the Gaussian elimination solver.

``compute_homography`` never raises: any malformed input or numerically
degenerate configuration yields the identity matrix instead.
"""

import math
from typing import Callable, Optional

import numpy as np

from perspec.errors import (
    DegenerateSolution,
    HomographyError,
    InvalidCoordinate,
    InvalidResultMatrix,
    InvalidSolution,
)
from perspec.solver.gaussian import solve_linear_system
from perspec.types import IDENTITY, Corners, Matrix3x3, as_corners

# Solved entries beyond this magnitude come from near-degenerate quads
SOLUTION_BOUND = 1e6

CORNER_NAMES = ("tl", "tr", "br", "bl")


def compute_homography(src, dst,
                       log: Optional[Callable[[str], None]] = None) -> Matrix3x3:
    """Compute the homography mapping the *src* corners onto the *dst* corners.

    Parameters
    ----------
    src, dst : Corners or sequence of four (x, y) pairs
        Source and destination corners, both in {tl, tr, br, bl} order.
    log : callable, optional
        Diagnostic sink, e.g. ``print``.  Receives one message per stage.

    Returns
    -------
    Matrix3x3
        ``H`` with ``m22 == 1`` such that ``dst ≈ H @ src`` in homogeneous
        coordinates, or :data:`IDENTITY` if any stage fails.
    """
    try:
        return estimate_homography(src, dst, log)
    except HomographyError as exc:
        if log is not None:
            log(f"{type(exc).__name__}: {exc}; returning identity matrix")
        return IDENTITY


def estimate_homography(src, dst,
                        log: Optional[Callable[[str], None]] = None) -> Matrix3x3:
    """Raising counterpart of :func:`compute_homography`.

    Raises
    ------
    HomographyError
        The specific subclass names the stage that failed.
    """
    src, dst = validated_corners(src, dst, log)

    A, b = build_linear_system(src, dst)
    if log is not None:
        log("Solve the system of equations ...\n"
            f"A =\n{np.array2string(A, precision=4)}\n"
            f"b = {np.array2string(b, precision=4)}")

    x = solve_linear_system(A, b, log)
    check_solution(x)

    return assemble_matrix(x, log)


def validated_corners(src, dst, log=None):
    """Coerce both corner sets and reject NaN coordinates.

    Returns
    -------
    src, dst : Corners

    Raises
    ------
    NullInput, InvalidCoordinate
    """
    src = as_corners(src)
    dst = as_corners(dst)

    if log is not None:
        log(f"src corners: {_format_corners(src)}")
        log(f"dst corners: {_format_corners(dst)}")

    if any(math.isnan(c) for c in src.coordinates() + dst.coordinates()):
        raise InvalidCoordinate("NaN coordinate detected")

    return src, dst


def build_linear_system(src: Corners, dst: Corners):
    """Build the 8 x 8 system ``A @ x = b`` for the eight free entries.

    Row ``i`` holds the x-equation and row ``i + 4`` the y-equation of
    correspondence ``i``.  The unknowns are
    ``[m00, m01, m02, m10, m11, m12, m20, m21]``.

    Raises
    ------
    InvalidCoordinate
        If any coordinate is infinite.
    """
    A = np.zeros((8, 8))
    b = np.zeros(8)

    for i, name in enumerate(CORNER_NAMES):
        (sx, sy), (dx, dy) = src[i], dst[i]
        if not all(math.isfinite(c) for c in (sx, sy, dx, dy)):
            raise InvalidCoordinate(f"infinite coordinate at corner {name}")

        A[i] = [sx, sy, 1.0, 0.0, 0.0, 0.0, -sx * dx, -sy * dx]
        b[i] = dx
        A[i + 4] = [0.0, 0.0, 0.0, sx, sy, 1.0, -sx * dy, -sy * dy]
        b[i + 4] = dy

    return A, b


def check_solution(x: np.ndarray) -> None:
    """Reject non-finite or implausibly large solved entries."""
    for i, value in enumerate(x):
        if not math.isfinite(value):
            raise InvalidSolution(f"unknown {i} is {value}")
        if abs(value) > SOLUTION_BOUND:
            raise DegenerateSolution(
                f"unknown {i} = {value:.3e} exceeds {SOLUTION_BOUND:.0e}")


def assemble_matrix(x, log=None) -> Matrix3x3:
    """Place the eight solved entries into a matrix with ``m22 = 1``."""
    H = Matrix3x3(*(float(v) for v in x[:8]), 1.0)

    if log is not None:
        log(f"Result matrix:\n{np.array2string(H.as_array(), precision=6)}")

    if not all(math.isfinite(v) for v in H):
        raise InvalidResultMatrix("non-finite entry in result matrix")
    return H


def apply_homography(H, points) -> np.ndarray:
    """Project points through a homography.

    Parameters
    ----------
    H : Matrix3x3 or np.ndarray
        3 x 3 homography.
    points : array-like
        N x 2 array of (x, y) coordinates (a ``Corners`` works too).

    Returns
    -------
    np.ndarray
        N x 2 array of projected (x, y) coordinates.
    """
    if isinstance(H, Matrix3x3):
        H = H.as_array()
    pts = np.asarray(points, dtype=float).reshape(-1, 2)

    homog = np.hstack([pts, np.ones((pts.shape[0], 1))])
    projected = homog @ np.asarray(H, dtype=float).T
    return projected[:, :2] / projected[:, 2:3]


def reprojection_error(H, src, dst) -> np.ndarray:
    """Euclidean distance between ``H @ src[i]`` and ``dst[i]`` per corner."""
    predicted = apply_homography(H, as_corners(src))
    actual = np.asarray(as_corners(dst), dtype=float)
    return np.sqrt(np.sum((predicted - actual) ** 2, axis=1))


def _format_corners(corners: Corners) -> str:
    return "  ".join(f"{name}({p.x:f}, {p.y:f})"
                     for name, p in zip(CORNER_NAMES, corners))
