"""
Failure kinds raised while estimating a homography.

None of these reach the caller of ``compute_homography``: the builder turns
every one of them into the identity fallback.  They exist so each stage can
bail out early and the diagnostic log can say why.
"""


class HomographyError(Exception):
    """Base class for every recoverable estimation failure."""


class NullInput(HomographyError):
    """A source or destination corner set is absent."""


class InvalidCoordinate(HomographyError):
    """An input coordinate is NaN, infinite or not a number at all."""


class SingularMatrix(HomographyError):
    """No usable pivot was found during elimination."""


class ZeroPivot(HomographyError):
    """A pivot vanished during back-substitution."""


class InvalidSolution(HomographyError):
    """A solved unknown is NaN or infinite."""


class DegenerateSolution(HomographyError):
    """A solved unknown is implausibly large."""


class InvalidResultMatrix(HomographyError):
    """The assembled 3x3 matrix holds a non-finite entry."""
