"""
Harmonic RBF + Quadratic Basis Module

Builds meshfree basis functions over a single polygonal (2D) or polyhedral (3D)
element: harmonic kernels at unstructured centers plus a full quadratic
polynomial, fitted by least squares to boundary samples and optionally
constrained to reproduce quadratic polynomials in the weak form.

Reference: Schneider et al., "Poly-Spline Finite Element Method" (2019)
"""

from .basis import RBFWithQuadratic
from .config import BasisConfig
from .constraints import (
    ConstraintSystemBuilder,
    GeometricMoments,
    KernelMoments,
    NullSpaceMap,
    assemble_moment_matrix,
    compute_geometric_moments,
    compute_kernel_moments,
)
from .exceptions import DegenerateElementError, DimensionMismatchError, IllConditionedFitWarning
from .kernel_matrix import KernelMatrixBuilder
from .kernels import harmonic, harmonic_prime, biharmonic, biharmonic_prime, get_kernel
from .polynomial import n_poly_terms, n_constraints, mixed_pairs, quadratic_basis, quadratic_gradient
from .quadrature import Quadrature
from .solver import WeightSolver, solve_lstsq_cholesky, solve_lstsq_svd

__all__ = [
    'RBFWithQuadratic',
    'BasisConfig',
    'ConstraintSystemBuilder',
    'GeometricMoments',
    'KernelMoments',
    'NullSpaceMap',
    'assemble_moment_matrix',
    'compute_geometric_moments',
    'compute_kernel_moments',
    'DegenerateElementError',
    'DimensionMismatchError',
    'IllConditionedFitWarning',
    'KernelMatrixBuilder',
    'harmonic', 'harmonic_prime',
    'biharmonic', 'biharmonic_prime',
    'get_kernel',
    'n_poly_terms', 'n_constraints', 'mixed_pairs',
    'quadratic_basis', 'quadratic_gradient',
    'Quadrature',
    'WeightSolver',
    'solve_lstsq_cholesky', 'solve_lstsq_svd',
]
