#!/usr/bin/env python3
"""
Validate basis construction on reference elements.

This script checks, for each element:
1. Bases construct without errors (with and without constraints)
2. Fit residual at the collocation samples
3. Weak-form constraint residual (should be ~machine precision)
4. Closed-form moment matrix agrees with autograd assembly
"""

import argparse
import logging
import sys

import numpy as np

from harmonic_rbf import RBFWithQuadratic
from harmonic_rbf._fixtures import (
    circle_centers,
    cube_surface,
    gauss_cube,
    gauss_square,
    sphere_centers,
    square_boundary,
)
from harmonic_rbf.diagnostics import check_moment_matrix, constraint_residuals, fit_residual


def _hat_targets(samples: np.ndarray) -> np.ndarray:
    """Multilinear nodal functions of the box corners, sampled at the boundary."""
    dim = samples.shape[1]
    corners = np.array(np.meshgrid(*[[0.0, 1.0]] * dim, indexing='ij')).reshape(dim, -1).T
    rhs = np.ones((samples.shape[0], corners.shape[0]))
    for j, corner in enumerate(corners):
        for d in range(dim):
            rhs[:, j] *= samples[:, d] if corner[d] else 1 - samples[:, d]
    return rhs


ELEMENTS = {
    'square': lambda: (circle_centers(8), square_boundary(8), gauss_square(5)),
    'square-dense': lambda: (circle_centers(16, radius=0.9), square_boundary(16), gauss_square(8)),
    'cube': lambda: (sphere_centers(), cube_surface(4), gauss_cube(4)),
}


def validate_element(name: str, kernel: str = 'harmonic', verbose: bool = True) -> bool:
    """Validate a single element."""
    try:
        centers, samples, quadr = ELEMENTS[name]()
        dim = centers.shape[1]
        rhs = _hat_targets(samples)
        local_basis_integral = np.zeros((rhs.shape[1], 5 if dim == 2 else 9))

        basis = RBFWithQuadratic(centers, samples, local_basis_integral, quadr, rhs,
                                 with_constraints=True, kernel=kernel)
        fit_err = fit_residual(basis, samples, rhs)
        constraint_err = np.abs(constraint_residuals(basis, quadr, local_basis_integral)).max()
        moment_err = check_moment_matrix(quadr)

        passed = constraint_err < 1e-8 and moment_err < 1e-10

        if verbose:
            status = "✓" if passed else "✗"
            print(f'{status} {name} ({kernel})')
            print(f'    Dim: {dim}D, Centers: {centers.shape[0]}, Samples: {samples.shape[0]}, '
                  f'Quadrature: {quadr.n_points}')
            print(f'    Fit residual: {fit_err:.2e}')
            print(f'    Constraint residual: {constraint_err:.2e}')
            print(f'    Moment matrix diff: {moment_err:.2e}')
            if not passed:
                print('    FAILED: Constraint or moment error too high!')
            print()

        return passed

    except Exception as e:
        if verbose:
            print(f'✗ {name}: {e}')
            import traceback
            traceback.print_exc()
        return False


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument('--elements', nargs='+', default=list(ELEMENTS), choices=list(ELEMENTS))
    parser.add_argument('--log-level', default='WARNING')
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format='%(levelname)s %(name)s: %(message)s')

    print('=' * 70)
    print('ELEMENT VALIDATION')
    print('=' * 70)

    results = {}
    for name in args.elements:
        results[name] = validate_element(name)
        if name.startswith('square'):
            results[f'{name}/biharmonic'] = validate_element(name, kernel='biharmonic')

    print('=' * 70)
    print('SUMMARY')
    print('=' * 70)

    n_passed = sum(results.values())
    print(f'Elements: {n_passed}/{len(results)} passed')

    if n_passed == len(results):
        print('\n✓ All validations passed!')
        return 0
    else:
        print('\n✗ Some validations failed!')
        return 1


if __name__ == '__main__':
    sys.exit(main())
