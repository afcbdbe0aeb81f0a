"""
Quadratic Polynomial Block

Implements the full quadratic polynomial that augments the harmonic kernels,
and its gradient. Terms are ordered as

    2D: [1, x, y, xy, x^2, y^2]                                (6 terms)
    3D: [1, x, y, z, xy, yz, zx, x^2, y^2, z^2]                (10 terms)

The same ordering is used for the polynomial rows of the weight matrix and for
the columns of the weak-form constraint targets (without the constant).
"""

import numpy as np
from typing import List, Tuple


def n_mixed_terms(dim: int) -> int:
    """Number of bilinear terms: 1 in 2D, 3 in 3D."""
    return dim * (dim - 1) // 2


def n_poly_terms(dim: int) -> int:
    """Number of polynomial terms (constant included)."""
    return 1 + dim + dim * (dim + 1) // 2


def n_constraints(dim: int) -> int:
    """Number of weak-form reproduction constraints: 5 in 2D, 9 in 3D."""
    return n_poly_terms(dim) - 1


def mixed_pairs(dim: int) -> List[Tuple[int, int]]:
    """
    Axis pairs of the bilinear terms, in column order.

    2D: [(0, 1)]                   -> xy
    3D: [(0, 1), (1, 2), (2, 0)]   -> xy, yz, zx
    """
    return [(d, (d + 1) % dim) for d in range(n_mixed_terms(dim))]


def weak_form_monomials(dim: int) -> List[Tuple[int, ...]]:
    """
    Exponent tuples of the non-constant monomials, in column order.

    E.g. in 2D: [(1, 0), (0, 1), (1, 1), (2, 0), (0, 2)]
    """
    monomials = []
    for i in range(dim):
        e = [0] * dim
        e[i] = 1
        monomials.append(tuple(e))
    for a, b in mixed_pairs(dim):
        e = [0] * dim
        e[a] += 1
        e[b] += 1
        monomials.append(tuple(e))
    for i in range(dim):
        e = [0] * dim
        e[i] = 2
        monomials.append(tuple(e))
    return monomials


def quadratic_basis(X: np.ndarray) -> np.ndarray:
    """
    Evaluate the quadratic polynomial block at given points.

    Args:
        X: Point coordinates (n_points, dim)

    Returns:
        P: Polynomial basis matrix (n_points, n_poly_terms(dim))
    """
    n, dim = X.shape
    P = np.empty((n, n_poly_terms(dim)), dtype=float)

    P[:, 0] = 1.0
    P[:, 1:1 + dim] = X
    col = 1 + dim
    for a, b in mixed_pairs(dim):
        P[:, col] = X[:, a] * X[:, b]
        col += 1
    P[:, col:] = X ** 2

    return P


def quadratic_gradient(X: np.ndarray, axis: int) -> np.ndarray:
    """
    Evaluate the derivative of the quadratic block along one axis.

    d/dx_axis(x_axis)       = 1
    d/dx_axis(x_a * x_b)    = x_b if axis == a, x_a if axis == b
    d/dx_axis(x_axis^2)     = 2 * x_axis

    Args:
        X: Point coordinates (n_points, dim)
        axis: Differentiation axis

    Returns:
        dP: Derivative of the polynomial basis (n_points, n_poly_terms(dim))
    """
    n, dim = X.shape
    dP = np.zeros((n, n_poly_terms(dim)), dtype=float)

    dP[:, 1 + axis] = 1.0
    col = 1 + dim
    for a, b in mixed_pairs(dim):
        if axis == a:
            dP[:, col] = X[:, b]
        elif axis == b:
            dP[:, col] = X[:, a]
        col += 1
    dP[:, col + axis] = 2.0 * X[:, axis]

    return dP
