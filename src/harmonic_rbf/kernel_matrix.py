"""
Kernel Matrix Assembly

Builds the interpolation matrix of the harmonic RBF + quadratic basis, and its
analytic derivative along one axis:

    A = [ psi_k(p_i) ... | 1  x_i  y_i  x_i*y_i  x_i^2  y_i^2 ]
        shape (N, K + 1 + dim + dim*(dim+1)/2)

where psi_k(p) = phi(||p - c_k||) is the kernel anchored at center c_k.
"""

import numpy as np

from .exceptions import DimensionMismatchError
from .kernels import SINGULAR_RADIUS, get_kernel, gradient_factor
from .polynomial import n_poly_terms, quadratic_basis, quadratic_gradient


class KernelMatrixBuilder:
    """
    Kernel matrix generator for a fixed set of kernel centers.

    Usage:
        builder = KernelMatrixBuilder(centers)
        A = builder.build(samples)
        Ax = builder.build_gradient(samples, axis=0)
    """

    def __init__(
        self,
        centers: np.ndarray,
        kernel: str = 'harmonic',
        eps: float = SINGULAR_RADIUS,
    ):
        """
        Args:
            centers: Kernel centers (K, dim), dim in {2, 3}, K >= 1
            kernel: Kernel name (see kernels.KERNELS)
            eps: Distances below this are treated as coincident
        """
        centers = np.asarray(centers, dtype=float)
        if centers.ndim != 2 or centers.shape[1] not in (2, 3):
            raise DimensionMismatchError(
                f"Kernel centers must be a (K, 2) or (K, 3) array, got shape {centers.shape}"
            )
        if centers.shape[0] == 0:
            raise DimensionMismatchError("At least one kernel center is required")

        self.centers = centers
        self.kernel_name = kernel
        self.kernel, self.kernel_prime = get_kernel(kernel)
        self.eps = eps

        # Fail early on kernels that do not support this dimension
        self.kernel(np.ones(1), self.is_volume, self.eps)

    @property
    def dim(self) -> int:
        return self.centers.shape[1]

    @property
    def is_volume(self) -> bool:
        return self.dim == 3

    @property
    def num_kernels(self) -> int:
        return self.centers.shape[0]

    @property
    def n_columns(self) -> int:
        """Number of unknowns per basis function."""
        return self.num_kernels + n_poly_terms(self.dim)

    def _check_samples(self, samples: np.ndarray) -> np.ndarray:
        samples = np.atleast_2d(np.asarray(samples, dtype=float))
        if samples.shape[1] != self.dim:
            raise DimensionMismatchError(
                f"Samples are {samples.shape[1]}D but the kernel centers are {self.dim}D"
            )
        return samples

    def _offsets(self, samples: np.ndarray):
        """Per-pair offsets (N, K, dim) and distances (N, K)."""
        diff = samples[:, np.newaxis, :] - self.centers[np.newaxis, :, :]
        r = np.sqrt(np.sum(diff ** 2, axis=2))
        return diff, r

    def build(self, samples: np.ndarray) -> np.ndarray:
        """
        Build the kernel matrix A at the given points.

        Args:
            samples: Evaluation points (N, dim)

        Returns:
            A: (N, K + 1 + dim + dim*(dim+1)/2)
        """
        samples = self._check_samples(samples)
        _, r = self._offsets(samples)

        A = np.empty((samples.shape[0], self.n_columns), dtype=float)
        A[:, :self.num_kernels] = self.kernel(r, self.is_volume, self.eps)
        A[:, self.num_kernels:] = quadratic_basis(samples)
        return A

    def build_gradient(self, samples: np.ndarray, axis: int) -> np.ndarray:
        """
        Build dA/dx_axis at the given points.

        Kernel columns use the chain rule:
            d/dx_axis phi(r) = (x_axis - c_axis) / r * phi'(r)

        Args:
            samples: Evaluation points (N, dim)
            axis: Differentiation axis in [0, dim)

        Returns:
            A_prime: Same shape as A
        """
        samples = self._check_samples(samples)
        if not 0 <= axis < self.dim:
            raise ValueError(f"Axis {axis} out of range for a {self.dim}D element")
        diff, r = self._offsets(samples)

        A_prime = np.empty((samples.shape[0], self.n_columns), dtype=float)
        factor = gradient_factor(self.kernel_prime, r, self.is_volume, self.eps)
        A_prime[:, :self.num_kernels] = diff[:, :, axis] * factor
        A_prime[:, self.num_kernels:] = quadratic_gradient(samples, axis)
        return A_prime
