"""
Weight Solver

For each basis that is nonzero on the element we solve the least-squares
system A w = rhs, where A is the kernel matrix at the collocation samples.

Without constraints this is a plain least-squares fit. With constraints the
weights are restricted to w = L v + t (see constraints.py) and we solve the
reduced problem

    min_v || A L v - (rhs - A t) ||^2,    w = t + L v

which reproduces the weak-form polynomial constraints exactly.
"""

import logging
import warnings
from typing import Optional

import numpy as np
import scipy.linalg

from .config import BasisConfig
from .constraints import ConstraintSystemBuilder
from .exceptions import DimensionMismatchError, IllConditionedFitWarning
from .kernel_matrix import KernelMatrixBuilder
from .quadrature import Quadrature

logger = logging.getLogger(__name__)


def solve_lstsq_cholesky(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Solve least squares via Cholesky decomposition of normal equations.

    Solves: min ||Ax - b||^2  via  (A'A)x = A'b

    Args:
        A: Design matrix (m, n)
        b: Right-hand side (m,) or (m, k)

    Returns:
        x: Solution (n,) or (n, k)

    Raises:
        np.linalg.LinAlgError: A'A is not numerically positive definite
    """
    AtA = A.T @ A
    Atb = A.T @ b
    c, low = scipy.linalg.cho_factor(AtA)
    return scipy.linalg.cho_solve((c, low), Atb)


def solve_lstsq_svd(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Solve least squares via SVD (standard np.linalg.lstsq).

    Returns the minimum-norm solution when A is rank deficient.
    """
    x, _, _, _ = np.linalg.lstsq(A, b, rcond=None)
    return x


class WeightSolver:
    """
    Fits the weight matrix of one element.

    Usage:
        solver = WeightSolver(KernelMatrixBuilder(centers))
        W = solver.solve(samples, rhs)                                   # unconstrained
        W = solver.solve(samples, rhs, True, quadr, local_basis_integral)  # constrained
    """

    def __init__(self, builder: KernelMatrixBuilder, config: Optional[BasisConfig] = None):
        self.builder = builder
        self.config = config or BasisConfig()

    def _lstsq(self, A: np.ndarray, b: np.ndarray) -> np.ndarray:
        """Dispatch to the configured backend, falling back to SVD on failure."""
        if self.config.lstsq == 'svd':
            return solve_lstsq_svd(A, b)
        try:
            return solve_lstsq_cholesky(A, b)
        except np.linalg.LinAlgError as e:
            msg = f"Numerical issues when solving the harmonic least squares ({e}); using SVD solution"
            logger.warning(msg)
            warnings.warn(msg, IllConditionedFitWarning, stacklevel=3)
            return solve_lstsq_svd(A, b)

    def solve(
        self,
        samples: np.ndarray,
        rhs: np.ndarray,
        with_constraints: bool = False,
        quadr: Optional[Quadrature] = None,
        local_basis_integral: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """
        Compute the weight matrix.

        Args:
            samples: Collocation points (N, dim)
            rhs: Target values (N, num_bases); a 1D array is one basis
            with_constraints: Enforce the weak-form reproduction constraints
            quadr: Element quadrature (required with constraints)
            local_basis_integral: Constraint targets (num_bases, 5|9)
                (required with constraints)

        Returns:
            W: Weight matrix (K + 1 + dim + dim*(dim+1)/2, num_bases), read-only
        """
        rhs = np.asarray(rhs, dtype=float)
        if rhs.ndim == 1:
            rhs = rhs[:, np.newaxis]

        A = self.builder.build(samples)
        if rhs.shape[0] != A.shape[0]:
            raise DimensionMismatchError(
                f"rhs has {rhs.shape[0]} rows but there are {A.shape[0]} samples"
            )

        logger.debug("#kernel centers: %d", self.builder.num_kernels)
        logger.debug("#collocation points: %d", A.shape[0])
        logger.debug("#non-vanishing bases: %d", rhs.shape[1])

        if not with_constraints:
            logger.debug("-- Solving system of size %dx%d", A.shape[1], A.shape[1])
            weights = self._lstsq(A, rhs)
        else:
            if quadr is None or local_basis_integral is None:
                raise ValueError("Constrained fit requires a quadrature rule and local_basis_integral")
            local_basis_integral = np.atleast_2d(np.asarray(local_basis_integral, dtype=float))
            if local_basis_integral.shape[0] != rhs.shape[1]:
                raise DimensionMismatchError(
                    f"local_basis_integral has {local_basis_integral.shape[0]} rows "
                    f"but rhs has {rhs.shape[1]} bases"
                )
            logger.debug("#quadrature points: %d", quadr.n_points)

            nsm = ConstraintSystemBuilder(self.builder).build(quadr, local_basis_integral)

            # b = rhs - A t
            b = rhs - A @ nsm.t
            logger.debug("-- Solving system of size %dx%d", nsm.L.shape[1], nsm.L.shape[1])
            v = self._lstsq(A @ nsm.L, b)
            weights = nsm.apply(v)

        if self.config.check_residual:
            residual = np.abs(A @ weights - rhs).max(axis=0).mean()
            logger.debug("-- Mean residual: %.3e", residual)

        weights.flags.writeable = False
        return weights
