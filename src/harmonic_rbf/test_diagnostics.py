"""
Test diagnostics: fit residual, constraint residuals and the autograd
moment matrix.
"""

import numpy as np
import pytest

from harmonic_rbf import DimensionMismatchError, RBFWithQuadratic
from harmonic_rbf._fixtures import (
    circle_centers,
    cube_surface,
    gauss_cube,
    gauss_square,
    grid_square,
    sphere_centers,
    square_boundary,
)
from harmonic_rbf.diagnostics import (
    autodiff_moment_matrix,
    check_moment_matrix,
    constraint_residuals,
    fit_residual,
)


@pytest.mark.parametrize("dim", [2, 3])
def test_constraints_hold_after_solve(dim):
    """Test the weak-form equalities hold to 1e-8 for every solved basis."""
    print("\n" + "=" * 60)
    print(f"Test 1: Constraint Exactness ({dim}D)")
    print("=" * 60)

    np.random.seed(7)
    if dim == 2:
        centers, samples, quadr = circle_centers(8), square_boundary(8), gauss_square(5)
    else:
        centers, samples, quadr = sphere_centers(), cube_surface(4), gauss_cube(4)
    n_bases = 4
    rhs = np.cos(samples @ np.random.rand(dim, n_bases))
    local_basis_integral = 0.1 * np.random.randn(n_bases, 5 if dim == 2 else 9)

    basis = RBFWithQuadratic(centers, samples, local_basis_integral, quadr, rhs, with_constraints=True)
    residuals = constraint_residuals(basis, quadr, local_basis_integral)

    print(f"  Max constraint residual: {np.abs(residuals).max():.2e}")
    assert residuals.shape == local_basis_integral.shape
    assert np.abs(residuals).max() < 1e-8


def test_unconstrained_fit_ignores_targets():
    np.random.seed(8)
    centers, samples, quadr = circle_centers(8), square_boundary(8), gauss_square(5)
    rhs = samples[:, :1] ** 3
    local_basis_integral = np.random.randn(1, 5)

    basis = RBFWithQuadratic(centers, samples, None, None, rhs, with_constraints=False)
    assert np.abs(constraint_residuals(basis, quadr, local_basis_integral)).max() > 1e-3

    with pytest.raises(DimensionMismatchError):
        constraint_residuals(basis, quadr, np.zeros((1, 9)))


def test_fit_residual():
    samples = grid_square(5)
    corners = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
    exact = 1 + samples[:, 0] - samples[:, 0] * samples[:, 1]
    basis = RBFWithQuadratic(corners, samples, None, None, exact, with_constraints=False)
    assert fit_residual(basis, samples, exact) < 1e-8

    wavy = np.sin(6 * samples[:, 0])
    basis = RBFWithQuadratic(corners, samples, None, None, wavy, with_constraints=False)
    assert fit_residual(basis, samples, wavy) > 1e-6


@pytest.mark.parametrize("dim", [2, 3])
def test_autodiff_moment_matrix(dim):
    """Test the closed-form moment matrix against autograd assembly."""
    quadr = gauss_square(4, lo=-0.5, hi=1.5) if dim == 2 else gauss_cube(3, lo=0.2, hi=1.1)

    M = autodiff_moment_matrix(quadr)
    assert M.shape == ((5, 5) if dim == 2 else (9, 9))

    diff = check_moment_matrix(quadr)
    print(f"  Max abs diff ({dim}D): {diff:.2e}")
    assert diff < 1e-12


if __name__ == '__main__':
    pytest.main([__file__, '-v', '-s'])
