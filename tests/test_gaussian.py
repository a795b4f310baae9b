import numpy as np
import pytest
from scipy import linalg

from perspec.errors import InvalidSolution, SingularMatrix, ZeroPivot
from perspec.solver.gaussian import EPSILON, _back_substitute, solve_linear_system


def test_matches_reference_solver():
    rng = np.random.default_rng(0)
    A = rng.normal(size=(8, 8)) + 8 * np.eye(8)
    b = rng.normal(size=8)

    x = solve_linear_system(A, b)

    np.testing.assert_allclose(x, linalg.solve(A, b), rtol=1e-10, atol=1e-12)
    np.testing.assert_allclose(A @ x, b, atol=1e-10)


def test_pivots_past_a_zero_diagonal():
    # Reversed identity: every leading entry is zero without row swaps
    A = np.fliplr(np.eye(8))
    b = np.arange(1.0, 9.0)

    np.testing.assert_allclose(solve_linear_system(A, b), b[::-1])


def test_inputs_are_not_modified():
    rng = np.random.default_rng(1)
    A = rng.normal(size=(8, 8)) + 8 * np.eye(8)
    b = rng.normal(size=8)
    A_copy, b_copy = A.copy(), b.copy()

    solve_linear_system(A, b)

    np.testing.assert_array_equal(A, A_copy)
    np.testing.assert_array_equal(b, b_copy)


def test_zero_column_is_singular():
    A = np.eye(8)
    A[:, 3] = 0.0
    with pytest.raises(SingularMatrix):
        solve_linear_system(A, np.ones(8))


def test_dependent_rows_are_singular():
    rng = np.random.default_rng(2)
    A = rng.normal(size=(8, 8))
    A[5] = 2.0 * A[1]
    with pytest.raises(SingularMatrix):
        solve_linear_system(A, np.ones(8))


def test_pivot_below_epsilon_is_singular():
    with pytest.raises(SingularMatrix):
        solve_linear_system(np.eye(8) * EPSILON / 10, np.ones(8))


def test_overflowing_solution_is_invalid():
    with pytest.raises(InvalidSolution):
        solve_linear_system(np.eye(8) * 1e-9, np.full(8, 1e300))


def test_nan_right_hand_side_is_invalid():
    b = np.ones(8)
    b[7] = np.nan
    with pytest.raises(InvalidSolution):
        solve_linear_system(np.eye(8), b)


def test_back_substitution_rechecks_pivots():
    aug = np.hstack([np.eye(8), np.ones((8, 1))])
    aug[4, 4] = 0.0
    with pytest.raises(ZeroPivot):
        _back_substitute(aug, None)


def test_mismatched_shapes_are_a_programming_error():
    with pytest.raises(ValueError):
        solve_linear_system(np.eye(8), np.ones(7))
    with pytest.raises(ValueError):
        solve_linear_system(np.ones((8, 7)), np.ones(8))


def test_failure_is_reported_to_log():
    messages = []
    with pytest.raises(SingularMatrix):
        solve_linear_system(np.zeros((8, 8)), np.ones(8), log=messages.append)
    assert len(messages) == 1
    assert "singular" in messages[0]
