"""
Shared numeric types for planar projective transforms.

Points, corner quadrilaterals and 3x3 matrices are immutable named tuples so
they travel by value and can be shared freely between threads.  Corner order
is always top-left, top-right, bottom-right, bottom-left.
"""

import numbers
from typing import NamedTuple

import numpy as np

from perspec.errors import InvalidCoordinate, NullInput


class Point2D(NamedTuple):
    x: float
    y: float


class Corners(NamedTuple):
    """Four corners of a quadrilateral in {tl, tr, br, bl} order."""
    tl: Point2D
    tr: Point2D
    br: Point2D
    bl: Point2D

    def coordinates(self) -> list:
        """Flat list of the eight coordinates, ``[tl.x, tl.y, tr.x, ...]``."""
        return [c for point in self for c in point]


class Matrix3x3(NamedTuple):
    """Row-major 3x3 projective transform in homogeneous coordinates."""
    m00: float
    m01: float
    m02: float
    m10: float
    m11: float
    m12: float
    m20: float
    m21: float
    m22: float

    def as_array(self) -> np.ndarray:
        return np.array(self, dtype=float).reshape(3, 3)


IDENTITY = Matrix3x3(1.0, 0.0, 0.0,
                     0.0, 1.0, 0.0,
                     0.0, 0.0, 1.0)


def as_corners(value) -> Corners:
    """Coerce caller point data into a :class:`Corners` of floats.

    Parameters
    ----------
    value : Corners or sequence
        Anything shaped like four ``(x, y)`` pairs in {tl, tr, br, bl}
        order: a ``Corners``, a list of tuples, a 4 x 2 ``np.ndarray``.

    Returns
    -------
    Corners

    Raises
    ------
    NullInput
        If *value* is ``None``.
    InvalidCoordinate
        If *value* is not four pairs of real numbers.  Non-finite values
        are passed through; screening them is the caller's job.
    """
    if value is None:
        raise NullInput("corner set is missing")

    try:
        pairs = list(value)
        if len(pairs) != 4:
            raise InvalidCoordinate(f"expected 4 corners, got {len(pairs)}")
        points = []
        for pair in pairs:
            if isinstance(pair, (str, bytes)):
                raise InvalidCoordinate(f"expected an (x, y) pair, got {pair!r}")
            coords = list(pair)
            if len(coords) != 2:
                raise InvalidCoordinate(f"expected an (x, y) pair, got {coords!r}")
            if not all(isinstance(c, numbers.Real) for c in coords):
                raise InvalidCoordinate(f"non-numeric coordinate in {coords!r}")
            points.append(Point2D(float(coords[0]), float(coords[1])))
    except (TypeError, ValueError, OverflowError) as exc:
        raise InvalidCoordinate(f"malformed corner data: {exc}") from exc

    return Corners(*points)
