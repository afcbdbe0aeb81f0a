"""
Weak-Form Polynomial Reproduction Constraints

For each basis phi_j that is nonzero on a polygonal/polyhedral element E, and
for each non-constant monomial Q of degree <= 2 (5 in 2D, 9 in 3D), we require

    ∫_E ∇Q·∇phi_j + ∫_E ΔQ phi_j = c_Q,j                                (1)

where the right-hand sides c_Q,j come from the neighbouring elements and are
passed in as `local_basis_integral` (one row per basis, one column per Q).

Writing phi_j = Σ_k w_k psi_k + a_0 + Σ_P a_P P, (1) becomes

    Σ_k w_k C_Q(psi_k) + a_0 C_Q(1) + Σ_P a_P C_Q(P) = c_Q,j

with C_Q(f) = ∫∇Q·∇f + ΔQ f. The matrix M[Q, P] = C_Q(P) only depends on the
geometric moments of E (the "moment matrix"), and the kernel terms C_Q(psi_k)
on the kernel moments. Inverting M expresses the polynomial coefficients in
terms of the free unknowns v = (w_1 ... w_K, a_0):

    w = L v + t,    L = [ I ; -M^{-1} K~ ],    t = [ 0 ; M^{-1} c ]

so that any v gives a weight vector satisfying (1) exactly.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np
import scipy.linalg

from .exceptions import DegenerateElementError, DimensionMismatchError
from .kernel_matrix import KernelMatrixBuilder
from .polynomial import mixed_pairs, n_constraints, n_mixed_terms, weak_form_monomials
from .quadrature import Quadrature

logger = logging.getLogger(__name__)


@dataclass
class KernelMoments:
    """Kernel integrals over the element, one row per kernel center."""
    cst: np.ndarray     # ∫psi_k                                  (K,)
    lin: np.ndarray     # ∫∂_i psi_k                              (K, dim)
    mix: np.ndarray     # ∫(x_b ∂_a psi_k + x_a ∂_b psi_k)        (K, n_mixed)
    sqr: np.ndarray     # ∫x_i ∂_i psi_k                          (K, dim)


@dataclass
class GeometricMoments:
    """Moments of the element itself."""
    volume: float       # |E|
    lin: np.ndarray     # ∫x_i          (dim,)
    mix: np.ndarray     # ∫x_a x_b      (n_mixed,)
    sqr: np.ndarray     # ∫x_i^2        (dim,)

    @property
    def dim(self) -> int:
        return self.lin.shape[0]

    def by_exponent(self) -> Dict[Tuple[int, ...], float]:
        """Map monomial exponent tuples of degree <= 2 to their integral."""
        dim = self.dim
        table = {(0,) * dim: self.volume}
        for i in range(dim):
            e = [0] * dim
            e[i] = 1
            table[tuple(e)] = self.lin[i]
            e[i] = 2
            table[tuple(e)] = self.sqr[i]
        for col, (a, b) in enumerate(mixed_pairs(dim)):
            e = [0] * dim
            e[a] = e[b] = 1
            table[tuple(e)] = self.mix[col]
        return table


@dataclass
class NullSpaceMap:
    """Affine map w = L v + t onto the constraint-satisfying weights."""
    L: np.ndarray       # (n_columns, K + 1)
    t: np.ndarray       # (n_columns, num_bases)

    def apply(self, v: np.ndarray) -> np.ndarray:
        return self.L @ v + self.t


def compute_kernel_moments(builder: KernelMatrixBuilder, quadr: Quadrature) -> KernelMoments:
    """
    Integrate every kernel and its gradient over the element.

    ∫∂_i psi_k = Σ_q (x_q,i - c_k,i) / r * phi'(r) * w_q
    """
    K = builder.num_kernels
    dim = builder.dim
    pts = quadr.points
    w = quadr.weights

    phi = builder.build(pts)[:, :K]
    # Weighted kernel gradients, (dim, Q, K)
    grads = np.stack([
        builder.build_gradient(pts, axis)[:, :K] * w[:, np.newaxis]
        for axis in range(dim)
    ])

    cst = w @ phi
    lin = grads.sum(axis=1).T
    sqr = np.einsum('qi,iqk->ki', pts, grads)
    mix = np.empty((K, n_mixed_terms(dim)), dtype=float)
    for col, (a, b) in enumerate(mixed_pairs(dim)):
        mix[:, col] = pts[:, b] @ grads[a] + pts[:, a] @ grads[b]

    return KernelMoments(cst=cst, lin=lin, mix=mix, sqr=sqr)


def compute_geometric_moments(quadr: Quadrature) -> GeometricMoments:
    """Integrate 1, x_i, x_a*x_b and x_i^2 over the element."""
    pts = quadr.points
    w = quadr.weights
    mix = np.array([w @ (pts[:, a] * pts[:, b]) for a, b in mixed_pairs(quadr.dim)])
    return GeometricMoments(
        volume=quadr.volume,
        lin=w @ pts,
        mix=mix,
        sqr=w @ pts ** 2,
    )


def _derivative(exponents: Tuple[int, ...], axis: int):
    """d/dx_axis of a monomial as (coefficient, exponents)."""
    coeff = exponents[axis]
    if coeff == 0:
        return 0, None
    e = list(exponents)
    e[axis] -= 1
    return coeff, tuple(e)


def assemble_moment_matrix(moments: GeometricMoments) -> np.ndarray:
    """
    Assemble M[Q, P] = Σ_i ∫∂_i Q ∂_i P + ΔQ ∫P from the geometric moments.

    In 2D, with columns (x, y, xy, x^2, y^2), this gives

        |  |E|     0      ∫y        2∫x      0    |
        |   0     |E|     ∫x         0      2∫y   |
        |  ∫y     ∫x   ∫x^2+∫y^2   2∫xy    2∫xy   |
        | 4∫x    2∫y     4∫xy      6∫x^2   2∫y^2  |
        | 2∫x    4∫y     4∫xy      2∫x^2   6∫y^2  |

    The 3D matrix (9x9) follows from the same formula.
    """
    dim = moments.dim
    table = moments.by_exponent()
    monomials = weak_form_monomials(dim)
    n = len(monomials)

    M = np.zeros((n, n), dtype=float)
    for row, Q in enumerate(monomials):
        laplacian_Q = sum(e * (e - 1) for e in Q)
        for col, P in enumerate(monomials):
            value = laplacian_Q * table[P]
            for axis in range(dim):
                cq, dq = _derivative(Q, axis)
                cp, dp = _derivative(P, axis)
                if cq and cp:
                    product = tuple(i + j for i, j in zip(dq, dp))
                    value += cq * cp * table[product]
            M[row, col] = value
    return M


class ConstraintSystemBuilder:
    """
    Builds the null-space parametrization (L, t) of the weak-form constraints.

    Usage:
        constraints = ConstraintSystemBuilder(kernel_builder)
        nsm = constraints.build(quadr, local_basis_integral)
        weights = nsm.L @ v + nsm.t
    """

    def __init__(self, builder: KernelMatrixBuilder):
        self.builder = builder

    def build(self, quadr: Quadrature, local_basis_integral: np.ndarray) -> NullSpaceMap:
        """
        Args:
            quadr: Element-interior quadrature rule
            local_basis_integral: Constraint targets (num_bases, 5) in 2D or
                (num_bases, 9) in 3D

        Returns:
            NullSpaceMap with L (n_columns, K + 1) and t (n_columns, num_bases)

        Raises:
            DimensionMismatchError: inconsistent dimensions or constraint arity
            DegenerateElementError: zero measure or singular moment matrix
        """
        builder = self.builder
        dim = builder.dim
        K = builder.num_kernels
        nc = n_constraints(dim)

        quadr.validate(dim)
        local_basis_integral = np.atleast_2d(np.asarray(local_basis_integral, dtype=float))
        if local_basis_integral.shape[1] != nc:
            raise DimensionMismatchError(
                f"local_basis_integral must have {nc} columns for a {dim}D element, "
                f"got {local_basis_integral.shape[1]}"
            )
        num_bases = local_basis_integral.shape[0]

        kernel_moments = compute_kernel_moments(builder, quadr)
        geometric_moments = compute_geometric_moments(quadr)

        M = assemble_moment_matrix(geometric_moments)
        if np.linalg.matrix_rank(M) < nc:
            raise DegenerateElementError(
                "Moment matrix is singular: element has zero measure or "
                "collinear/coplanar support"
            )
        lu = scipy.linalg.lu_factor(M)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Moment matrix condition number: %.3e", np.linalg.cond(M))

        # Kernel terms C_Q(psi_k) and C_Q(1) of the constraint equations
        K_tilde = np.zeros((nc, K + 1), dtype=float)
        n_mix = n_mixed_terms(dim)
        K_tilde[:dim, :K] = kernel_moments.lin.T
        K_tilde[dim:dim + n_mix, :K] = kernel_moments.mix.T
        K_tilde[dim + n_mix:, :K] = 2.0 * (kernel_moments.sqr + kernel_moments.cst[:, np.newaxis]).T
        K_tilde[dim + n_mix:, K] = 2.0 * geometric_moments.volume

        L = np.zeros((builder.n_columns, K + 1), dtype=float)
        L[:K + 1, :] = np.eye(K + 1)
        L[K + 1:, :] = scipy.linalg.lu_solve(lu, -K_tilde)

        t = np.zeros((builder.n_columns, num_bases), dtype=float)
        t[K + 1:, :] = scipy.linalg.lu_solve(lu, local_basis_integral.T)

        return NullSpaceMap(L=L, t=t)
