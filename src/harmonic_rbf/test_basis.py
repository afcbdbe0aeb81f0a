"""
Test basis construction and evaluation.

Validates:
1. Linear fit on the unit square (exact coefficients, zero kernel weights)
2. Quadratic reproduction, with and without constraints
3. Gradient against central finite differences
4. Idempotence, immutability and input handling
5. Fallback on ill-conditioned fits
"""

import numpy as np
import pytest

from harmonic_rbf import (
    BasisConfig,
    DimensionMismatchError,
    IllConditionedFitWarning,
    KernelMatrixBuilder,
    RBFWithQuadratic,
)
from harmonic_rbf._fixtures import (
    circle_centers,
    cube_surface,
    gauss_cube,
    gauss_square,
    grid_cube,
    grid_square,
    sphere_centers,
    square_boundary,
    weak_form_integrals,
)
from harmonic_rbf.diagnostics import constraint_residuals


SQUARE_CORNERS = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
CUBE_CORNERS = np.array([[a, b, c] for a in (0.0, 1.0) for b in (0.0, 1.0) for c in (0.0, 1.0)])


def _monomials(X):
    """Columns x, y, (z,) mixed, squares in weight order."""
    dim = X.shape[1]
    cols = [X[:, i] for i in range(dim)]
    pairs = [(0, 1)] if dim == 2 else [(0, 1), (1, 2), (2, 0)]
    cols += [X[:, a] * X[:, b] for a, b in pairs]
    cols += [X[:, i] ** 2 for i in range(dim)]
    return np.column_stack(cols)


def test_linear_fit_unit_square():
    """Test f(x, y) = 2x + 3y is recovered by the polynomial block alone."""
    print("\n" + "=" * 60)
    print("Test 1: Linear Fit on the Unit Square")
    print("=" * 60)

    samples = grid_square(5)
    rhs = 2 * samples[:, 0] + 3 * samples[:, 1]
    basis = RBFWithQuadratic(SQUARE_CORNERS, samples, None, None, rhs, with_constraints=False)

    W = basis.weights[:, 0]
    print(f"  Kernel weights: {W[:4]}")
    print(f"  Polynomial coefficients: {W[4:]}")
    np.testing.assert_allclose(W[:4], 0.0, atol=1e-6)
    np.testing.assert_allclose(W[4:], [0.0, 2.0, 3.0, 0.0, 0.0, 0.0], atol=1e-6)


@pytest.mark.parametrize("term", range(5))
def test_quadratic_reproduction_2d(term):
    samples = grid_square(5)
    rhs = _monomials(samples)[:, term]
    basis = RBFWithQuadratic(SQUARE_CORNERS, samples, None, None, rhs, with_constraints=False)

    expected = np.zeros(4 + 6)
    expected[4 + 1 + term] = 1.0
    np.testing.assert_allclose(basis.weights[:, 0], expected, atol=1e-6)


@pytest.mark.parametrize("term", [0, 3, 5, 8])
def test_quadratic_reproduction_3d(term):
    samples = grid_cube(4)
    rhs = _monomials(samples)[:, term]
    basis = RBFWithQuadratic(CUBE_CORNERS, samples, None, None, rhs, with_constraints=False)

    expected = np.zeros(8 + 10)
    expected[8 + 1 + term] = 1.0
    np.testing.assert_allclose(basis.weights[:, 0], expected, atol=1e-6)


@pytest.mark.parametrize("dim", [2, 3])
def test_constrained_quadratic_reproduction(dim):
    """
    Test consistent targets reproduce every quadratic monomial exactly.

    The targets are the weak-form integrals of the monomials themselves, so
    the monomial is both a perfect fit and a feasible point of the constraints.
    """
    print("\n" + "=" * 60)
    print(f"Test 2: Constrained Quadratic Reproduction ({dim}D)")
    print("=" * 60)

    if dim == 2:
        centers, samples, quadr = circle_centers(8), square_boundary(8), gauss_square(5)
    else:
        centers, samples, quadr = sphere_centers(), cube_surface(4), gauss_cube(4)

    builder = KernelMatrixBuilder(centers)
    K = builder.num_kernels
    n_terms = 5 if dim == 2 else 9

    W_exact = np.zeros((builder.n_columns, n_terms))
    W_exact[K + 1:, :] = np.eye(n_terms)
    local_basis_integral = weak_form_integrals(builder, quadr, W_exact)
    rhs = _monomials(samples)

    basis = RBFWithQuadratic(centers, samples, local_basis_integral, quadr, rhs, with_constraints=True)
    print(f"  Max weight error: {np.abs(basis.weights - W_exact).max():.2e}")
    np.testing.assert_allclose(basis.weights, W_exact, atol=1e-6)

    pts = np.random.RandomState(3).rand(10, dim)
    np.testing.assert_allclose(basis.bases_values(pts), _monomials(pts), atol=1e-6)


def _central_difference(basis, local_index, pts, h=1e-6):
    fd = np.empty_like(pts)
    for d in range(pts.shape[1]):
        step = np.zeros(pts.shape[1])
        step[d] = h
        fd[:, d] = (basis.basis(local_index, pts + step) - basis.basis(local_index, pts - step))[:, 0] / (2 * h)
    return fd


def test_gradient_matches_finite_differences_2d():
    """Test grad() against central differences on a constrained 2D basis."""
    print("\n" + "=" * 60)
    print("Test 3: Gradient Consistency (2D)")
    print("=" * 60)

    np.random.seed(4)
    centers = circle_centers(8)
    samples = square_boundary(8)
    quadr = gauss_square(5)
    x, y = samples[:, 0], samples[:, 1]
    rhs = np.column_stack([(1 - x) * (1 - y), x * (1 - y), np.sin(x + 2 * y)])
    local_basis_integral = np.random.randn(3, 5)

    basis = RBFWithQuadratic(centers, samples, local_basis_integral, quadr, rhs, with_constraints=True)
    pts = 0.2 + 0.6 * np.random.rand(12, 2)

    for i in range(basis.num_bases):
        g = basis.grad(i, pts)
        assert g.shape == (12, 2)
        fd = _central_difference(basis, i, pts)
        print(f"  Basis {i}: max abs diff {np.abs(g - fd).max():.2e}")
        np.testing.assert_allclose(g, fd, rtol=1e-5, atol=1e-5)


def test_gradient_matches_finite_differences_3d():
    np.random.seed(5)
    samples = grid_cube(4)
    rhs = np.column_stack([np.exp(samples[:, 0]) * samples[:, 2], samples.sum(axis=1)])
    basis = RBFWithQuadratic(CUBE_CORNERS, samples, None, None, rhs, with_constraints=False)
    pts = 0.2 + 0.6 * np.random.rand(8, 3)

    for i in range(basis.num_bases):
        np.testing.assert_allclose(basis.grad(i, pts), _central_difference(basis, i, pts),
                                   rtol=1e-5, atol=1e-5)


def test_evaluation_is_idempotent():
    samples = grid_square(5)
    rhs = np.column_stack([np.cos(samples[:, 0]), samples[:, 1] ** 3])
    basis = RBFWithQuadratic(SQUARE_CORNERS, samples, None, None, rhs, with_constraints=False)
    pts = np.random.RandomState(6).rand(9, 2)

    np.testing.assert_array_equal(basis.basis(1, pts), basis.basis(1, pts))
    np.testing.assert_array_equal(basis.grad(0, pts), basis.grad(0, pts))
    assert basis.basis(1, pts).shape == (9, 1)


def test_weights_are_read_only_and_rhs_preserved():
    centers, samples, quadr = circle_centers(8), square_boundary(8), gauss_square(4)
    rhs = np.column_stack([samples[:, 0], 1 - samples[:, 0]])
    rhs_before = rhs.copy()

    basis = RBFWithQuadratic(centers, samples, np.zeros((2, 5)), quadr, rhs, with_constraints=True)

    np.testing.assert_array_equal(rhs, rhs_before)
    with pytest.raises(ValueError):
        basis.weights[0, 0] = 1.0


def test_invalid_inputs():
    centers, samples, quadr = circle_centers(8), square_boundary(8), gauss_square(4)
    rhs = np.ones((samples.shape[0], 2))

    with pytest.raises(ValueError, match="quadrature"):
        RBFWithQuadratic(centers, samples, None, None, rhs, with_constraints=True)
    with pytest.raises(DimensionMismatchError):
        RBFWithQuadratic(centers, samples, np.zeros((3, 5)), quadr, rhs, with_constraints=True)
    with pytest.raises(DimensionMismatchError):
        RBFWithQuadratic(centers, samples[:-1], None, None, rhs, with_constraints=False)
    with pytest.raises(DimensionMismatchError):
        RBFWithQuadratic(centers, np.ones((4, 3)), None, None, np.ones(4), with_constraints=False)

    basis = RBFWithQuadratic(centers, samples, None, None, rhs, with_constraints=False)
    with pytest.raises(IndexError):
        basis.basis(2, samples)
    with pytest.raises(IndexError):
        basis.grad(-1, samples)


def test_config_options():
    samples = grid_square(5)
    rhs = np.sin(samples[:, 0]) + samples[:, 1]

    cholesky = RBFWithQuadratic(SQUARE_CORNERS, samples, None, None, rhs, with_constraints=False)
    svd = RBFWithQuadratic(SQUARE_CORNERS, samples, None, None, rhs, with_constraints=False,
                           config=BasisConfig(lstsq='svd'))
    np.testing.assert_allclose(cholesky.bases_values(samples), svd.bases_values(samples), atol=1e-8)

    biharmonic = RBFWithQuadratic(SQUARE_CORNERS, samples, None, None, rhs, with_constraints=False,
                                  kernel='biharmonic')
    assert biharmonic.config.kernel == 'biharmonic'
    assert np.all(np.isfinite(biharmonic.weights))

    with pytest.raises(DimensionMismatchError):
        RBFWithQuadratic(CUBE_CORNERS, grid_cube(3), None, None, np.ones(27),
                         with_constraints=False, kernel='biharmonic')
    with pytest.raises(ValueError, match="Unknown config keys"):
        RBFWithQuadratic(SQUARE_CORNERS, samples, None, None, rhs, with_constraints=False, kernal='x')
    with pytest.raises(TypeError):
        RBFWithQuadratic(SQUARE_CORNERS, samples, None, None, rhs, with_constraints=False,
                         config=BasisConfig(), kernel='harmonic')


def test_ill_conditioned_fit_warns_and_falls_back():
    """Test a rank-deficient fit warns and still returns an interpolating basis."""
    print("\n" + "=" * 60)
    print("Test 5: Ill-Conditioned Fit")
    print("=" * 60)

    centers = np.array([[2.0, 0.0], [0.0, 3.0]])
    samples = np.array([[0.0, 0.0]])

    with pytest.warns(IllConditionedFitWarning):
        basis = RBFWithQuadratic(centers, samples, None, None, np.array([[1.0]]), with_constraints=False)

    np.testing.assert_allclose(basis.basis(0, samples), [[1.0]], atol=1e-10)


def test_ill_conditioned_constrained_fit_keeps_constraints():
    """Test the reduced solve warns on failure and still honors the constraints."""
    centers = np.array([[2.0, 0.0]])
    samples = np.array([[0.0, 0.0]])
    quadr = gauss_square(3)
    local_basis_integral = np.zeros((1, 5))

    with pytest.warns(IllConditionedFitWarning):
        basis = RBFWithQuadratic(centers, samples, local_basis_integral, quadr,
                                 np.array([[1.0]]), with_constraints=True)

    residuals = constraint_residuals(basis, quadr, local_basis_integral)
    print(f"  Max constraint residual: {np.abs(residuals).max():.2e}")
    assert np.abs(residuals).max() < 1e-8


@pytest.mark.parametrize("radius", [0.0, -1e-8])
def test_singular_radius_must_be_positive(radius):
    with pytest.raises(ValueError, match="singular_radius"):
        BasisConfig(singular_radius=radius)
    with pytest.raises(ValueError, match="singular_radius"):
        RBFWithQuadratic(SQUARE_CORNERS, square_boundary(4), None, None, np.ones(16),
                         with_constraints=False, singular_radius=radius)


if __name__ == '__main__':
    pytest.main([__file__, '-v', '-s'])
