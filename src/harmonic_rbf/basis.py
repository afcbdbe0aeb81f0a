"""
Harmonic RBF + Quadratic Basis

One instance per polygonal/polyhedral element. Construction fits the weights
of every basis that is nonzero on the element; afterwards the instance is
read-only and can be evaluated any number of times.

Each basis is represented as

    phi_j(p) = Σ_k w_k psi_k(p) + a_0 + Σ_i a_i x_i + Σ_(a,b) a_ab x_a x_b + Σ_i a_ii x_i^2

with psi_k the harmonic kernel anchored at the k-th center.
"""

from typing import Optional

import numpy as np

from .config import BasisConfig
from .kernel_matrix import KernelMatrixBuilder
from .quadrature import Quadrature
from .solver import WeightSolver


class RBFWithQuadratic:
    """
    Meshfree basis functions of a single element.

    Usage:
        basis = RBFWithQuadratic(centers, samples, local_basis_integral, quadr, rhs,
                                 with_constraints=True)
        val = basis.basis(0, pts)    # (n_pts, 1)
        grad = basis.grad(0, pts)    # (n_pts, dim)
    """

    def __init__(
        self,
        centers: np.ndarray,
        collocation_points: np.ndarray,
        local_basis_integral: Optional[np.ndarray],
        quadr: Optional[Quadrature],
        rhs: np.ndarray,
        with_constraints: bool = True,
        config: Optional[BasisConfig] = None,
        **kwargs,
    ):
        """
        Args:
            centers: Kernel centers (K, dim), dim in {2, 3}
            collocation_points: Least-squares samples (N, dim)
            local_basis_integral: Weak-form targets (num_bases, 5|9); only used
                with constraints
            quadr: Element quadrature; only used with constraints
            rhs: Expected basis values at the samples (N, num_bases)
            with_constraints: Enforce weak-form quadratic reproduction
            config: Construction settings; keyword arguments are accepted as a
                shortcut (e.g. kernel='biharmonic')
        """
        if config is None:
            config = BasisConfig.from_dict(kwargs)
        elif kwargs:
            raise TypeError("Pass either a BasisConfig or keyword settings, not both")
        self.config = config

        self._builder = KernelMatrixBuilder(
            centers, kernel=config.kernel, eps=config.singular_radius
        )
        self._weights = WeightSolver(self._builder, config).solve(
            collocation_points, rhs, with_constraints, quadr, local_basis_integral
        )

    @property
    def centers(self) -> np.ndarray:
        return self._builder.centers

    @property
    def weights(self) -> np.ndarray:
        """Weight matrix (K + 1 + dim + dim*(dim+1)/2, num_bases), read-only."""
        return self._weights

    @property
    def dim(self) -> int:
        return self._builder.dim

    @property
    def is_volume(self) -> bool:
        return self._builder.is_volume

    @property
    def num_bases(self) -> int:
        return self._weights.shape[1]

    def _check_index(self, local_index: int):
        if not 0 <= local_index < self.num_bases:
            raise IndexError(f"Local index {local_index} out of range [0, {self.num_bases})")

    def bases_values(self, samples: np.ndarray) -> np.ndarray:
        """Values of every basis at the given points, (n_pts, num_bases)."""
        return self._builder.build(samples) @ self._weights

    def bases_grads(self, axis: int, samples: np.ndarray) -> np.ndarray:
        """Derivative along `axis` of every basis, (n_pts, num_bases)."""
        return self._builder.build_gradient(samples, axis) @ self._weights

    def basis(self, local_index: int, samples: np.ndarray) -> np.ndarray:
        """Values of one basis at the given points, (n_pts, 1)."""
        self._check_index(local_index)
        return self.bases_values(samples)[:, local_index:local_index + 1]

    def grad(self, local_index: int, samples: np.ndarray) -> np.ndarray:
        """Gradient of one basis at the given points, (n_pts, dim)."""
        self._check_index(local_index)
        samples = np.atleast_2d(np.asarray(samples, dtype=float))
        val = np.empty((samples.shape[0], self.dim), dtype=float)
        for d in range(self.dim):
            val[:, d] = self.bases_grads(d, samples)[:, local_index]
        return val
