"""
Dense linear solver: Gaussian elimination with partial pivoting.

The augmented matrix ``[A | b]`` is reduced to upper-triangular form by row
operations, choosing at each step the row with the largest magnitude in the
pivot column, and the unknowns are then recovered by back-substitution.
Partial pivoting (row swaps only) is enough for the small, well-scaled
systems produced by four point correspondences.

The solver knows nothing about geometry.
"""

from typing import Callable, Optional

import numpy as np

from perspec.errors import InvalidSolution, SingularMatrix, ZeroPivot

# Absolute pivot threshold.  Inputs of extreme magnitude should be
# pre-scaled (see perspec.geometry.normalization).
EPSILON = 1e-10


def solve_linear_system(A: np.ndarray, b: np.ndarray,
                        log: Optional[Callable[[str], None]] = None) -> np.ndarray:
    """Solve ``A @ x = b`` for a square system.

    Parameters
    ----------
    A : np.ndarray
        n x n coefficient matrix (8 x 8 for a homography).  Not modified.
    b : np.ndarray
        Length-n right-hand side.  Not modified.
    log : callable, optional
        Receives a human-readable message when the solve fails.

    Returns
    -------
    x : np.ndarray
        Length-n solution vector.

    Raises
    ------
    SingularMatrix
        If every candidate pivot in some column is below ``EPSILON``.
    ZeroPivot
        If a diagonal entry is below ``EPSILON`` at back-substitution.
    InvalidSolution
        If a recovered unknown is NaN or infinite.
    ValueError
        If *A* is not square or *b* does not match it.
    """
    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float).ravel()
    n = A.shape[0]
    if A.shape != (n, n) or b.shape != (n,):
        raise ValueError(f"incompatible system shapes {A.shape} and {b.shape}")

    aug = np.empty((n, n + 1))
    aug[:, :n] = A
    aug[:, n] = b

    with np.errstate(over="ignore", invalid="ignore"):
        _eliminate(aug, log)
        return _back_substitute(aug, log)


def _eliminate(aug: np.ndarray, log) -> None:
    n = aug.shape[0]
    for i in range(n):
        # argmax keeps the first of equal candidates, so ties never swap
        pivot_row = i + int(np.argmax(np.abs(aug[i:, i])))
        pivot_val = abs(aug[pivot_row, i])

        # NaN fails this comparison too
        if not pivot_val >= EPSILON:
            if log is not None:
                log(f"Matrix is nearly singular: column {i} pivot "
                    f"{pivot_val:.3e} < {EPSILON:.0e}")
            raise SingularMatrix(f"no usable pivot in column {i}")

        if pivot_row != i:
            aug[[i, pivot_row]] = aug[[pivot_row, i]]

        factors = aug[i + 1:, i] / aug[i, i]
        aug[i + 1:, i:] -= np.outer(factors, aug[i, i:])


def _back_substitute(aug: np.ndarray, log) -> np.ndarray:
    n = aug.shape[0]
    x = np.zeros(n)
    for i in range(n - 1, -1, -1):
        if not abs(aug[i, i]) >= EPSILON:
            if log is not None:
                log(f"Zero pivot encountered at row {i}")
            raise ZeroPivot(f"pivot {aug[i, i]!r} at row {i}")

        x[i] = (aug[i, n] - aug[i, i + 1:n] @ x[i + 1:]) / aug[i, i]

        if not np.isfinite(x[i]):
            if log is not None:
                log(f"Invalid result detected: x[{i}] = {x[i]}")
            raise InvalidSolution(f"x[{i}] is {x[i]}")
    return x
