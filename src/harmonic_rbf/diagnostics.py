"""
Diagnostics for constructed bases.

- fit_residual: how well a basis matches its collocation targets
- constraint_residuals: how exactly the weak-form constraints hold
- autodiff_moment_matrix / check_moment_matrix: independent assembly of the
  moment matrix with torch autograd, to validate the closed-form one
"""

import numpy as np
import torch
from torch.autograd import grad

from .basis import RBFWithQuadratic
from .constraints import assemble_moment_matrix, compute_geometric_moments
from .exceptions import DimensionMismatchError
from .polynomial import n_constraints, weak_form_monomials
from .quadrature import Quadrature


def fit_residual(basis: RBFWithQuadratic, samples: np.ndarray, rhs: np.ndarray) -> float:
    """Mean over bases of the max-abs residual at the collocation samples."""
    rhs = np.asarray(rhs, dtype=float)
    if rhs.ndim == 1:
        rhs = rhs[:, np.newaxis]
    return float(np.abs(basis.bases_values(samples) - rhs).max(axis=0).mean())


def _monomial(X: np.ndarray, exponents) -> np.ndarray:
    return np.prod(X ** np.asarray(exponents), axis=1)


def _monomial_gradient(X: np.ndarray, exponents, axis: int) -> np.ndarray:
    coeff = exponents[axis]
    if coeff == 0:
        return np.zeros(X.shape[0])
    e = list(exponents)
    e[axis] -= 1
    return coeff * _monomial(X, e)


def constraint_residuals(
    basis: RBFWithQuadratic,
    quadr: Quadrature,
    local_basis_integral: np.ndarray,
) -> np.ndarray:
    """
    Weak-form integrals of each solved basis minus their targets.

    For every basis phi_j and monomial Q:
        ∫∇Q·∇phi_j + ∫ΔQ phi_j - local_basis_integral[j, Q]

    Args:
        basis: Constructed basis
        quadr: Quadrature rule used for the construction
        local_basis_integral: Targets (num_bases, 5|9)

    Returns:
        Residuals with the shape of local_basis_integral
    """
    dim = basis.dim
    local_basis_integral = np.atleast_2d(np.asarray(local_basis_integral, dtype=float))
    if local_basis_integral.shape != (basis.num_bases, n_constraints(dim)):
        raise DimensionMismatchError(
            f"Expected local_basis_integral of shape {(basis.num_bases, n_constraints(dim))}, "
            f"got {local_basis_integral.shape}"
        )

    pts = quadr.points
    w = quadr.weights
    vals = basis.bases_values(pts)
    grads = [basis.bases_grads(d, pts) for d in range(dim)]

    integrals = np.empty_like(local_basis_integral)
    for col, Q in enumerate(weak_form_monomials(dim)):
        laplacian_Q = sum(e * (e - 1) for e in Q)
        total = laplacian_Q * (w @ vals)
        for d in range(dim):
            total = total + w @ (_monomial_gradient(pts, Q, d)[:, np.newaxis] * grads[d])
        integrals[:, col] = total

    return integrals - local_basis_integral


def _gradient_and_laplacian(u: torch.Tensor, X: torch.Tensor):
    """
    Gradient and Laplacian of u w.r.t. X using autograd.

    For 2D: ∇²u = ∂²u/∂x² + ∂²u/∂y²
    """
    u_grad = grad(u, X, grad_outputs=torch.ones_like(u),
                  create_graph=True, retain_graph=True)[0]

    laplacian = torch.zeros_like(u)
    for i in range(X.shape[1]):
        u_i = u_grad[:, i:i+1]
        # Constant first derivatives are detached from the graph
        if not u_i.requires_grad:
            continue
        u_ii = grad(u_i, X, grad_outputs=torch.ones_like(u_i),
                    create_graph=True, retain_graph=True, allow_unused=True)[0]
        if u_ii is not None:
            laplacian = laplacian + u_ii[:, i:i+1]

    return u_grad, laplacian


def autodiff_moment_matrix(quadr: Quadrature) -> np.ndarray:
    """
    Assemble M[i, j] = Σ_q w_q (∇Q_i·∇Q_j + ΔQ_i Q_j) with autograd derivatives.

    Args:
        quadr: Element quadrature (2D or 3D)

    Returns:
        M: (5, 5) in 2D, (9, 9) in 3D
    """
    X = torch.tensor(quadr.points, dtype=torch.float64, requires_grad=True)
    w = torch.tensor(quadr.weights, dtype=torch.float64)

    values, grads, laplacians = [], [], []
    for exponents in weak_form_monomials(quadr.dim):
        q = torch.ones(X.shape[0], 1, dtype=X.dtype)
        for i, p in enumerate(exponents):
            for _ in range(p):
                q = q * X[:, i:i+1]
        q_grad, q_lap = _gradient_and_laplacian(q, X)
        values.append(q)
        grads.append(q_grad)
        laplacians.append(q_lap)

    n = len(values)
    M = torch.zeros(n, n, dtype=torch.float64)
    with torch.no_grad():
        for i in range(n):
            for j in range(n):
                integrand = torch.sum(grads[i] * grads[j], dim=1) + (laplacians[i] * values[j]).flatten()
                M[i, j] = torch.sum(integrand * w)

    return M.numpy()


def check_moment_matrix(quadr: Quadrature) -> float:
    """Max-abs difference between the closed-form and autograd moment matrices."""
    closed_form = assemble_moment_matrix(compute_geometric_moments(quadr))
    return float(np.abs(autodiff_moment_matrix(quadr) - closed_form).max())
