"""
Element geometry used by the test modules: tensor Gauss rules, boundary
samples and kernel centers around the unit square / unit cube.
"""

import numpy as np
from numpy.polynomial.legendre import leggauss

from .quadrature import Quadrature


def gauss_square(n: int = 4, lo: float = 0.0, hi: float = 1.0) -> Quadrature:
    """Tensor Gauss-Legendre rule with n x n points on [lo, hi]^2."""
    g, w = leggauss(n)
    x = (hi - lo) / 2 * g + (hi + lo) / 2
    w = w * (hi - lo) / 2
    X, Y = np.meshgrid(x, x, indexing='ij')
    W = np.outer(w, w)
    return Quadrature(np.column_stack([X.ravel(), Y.ravel()]), W.ravel())


def gauss_cube(n: int = 3, lo: float = 0.0, hi: float = 1.0) -> Quadrature:
    """Tensor Gauss-Legendre rule with n^3 points on [lo, hi]^3."""
    g, w = leggauss(n)
    x = (hi - lo) / 2 * g + (hi + lo) / 2
    w = w * (hi - lo) / 2
    X, Y, Z = np.meshgrid(x, x, x, indexing='ij')
    W = np.einsum('i,j,k->ijk', w, w, w)
    return Quadrature(np.column_stack([X.ravel(), Y.ravel(), Z.ravel()]), W.ravel())


def grid_square(n: int = 5) -> np.ndarray:
    """n x n uniform grid covering [0, 1]^2, boundary included."""
    x = np.linspace(0, 1, n)
    X, Y = np.meshgrid(x, x, indexing='ij')
    return np.column_stack([X.ravel(), Y.ravel()])


def grid_cube(n: int = 4) -> np.ndarray:
    """n^3 uniform grid covering [0, 1]^3, boundary included."""
    x = np.linspace(0, 1, n)
    X, Y, Z = np.meshgrid(x, x, x, indexing='ij')
    return np.column_stack([X.ravel(), Y.ravel(), Z.ravel()])


def square_boundary(n_per_edge: int = 8) -> np.ndarray:
    """Uniformly spaced samples on the boundary of [0, 1]^2, corners once."""
    s = np.arange(n_per_edge) / n_per_edge
    edges = [
        np.column_stack([s, np.zeros_like(s)]),
        np.column_stack([np.ones_like(s), s]),
        np.column_stack([1 - s, np.ones_like(s)]),
        np.column_stack([np.zeros_like(s), 1 - s]),
    ]
    return np.vstack(edges)


def cube_surface(n: int = 4) -> np.ndarray:
    """n x n grid on each face of [0, 1]^3 (edge points repeated)."""
    x = np.linspace(0, 1, n)
    U, V = np.meshgrid(x, x, indexing='ij')
    u, v = U.ravel(), V.ravel()
    faces = []
    for axis in range(3):
        for value in (0.0, 1.0):
            face = np.empty((u.shape[0], 3))
            others = [d for d in range(3) if d != axis]
            face[:, axis] = value
            face[:, others[0]] = u
            face[:, others[1]] = v
            faces.append(face)
    return np.vstack(faces)


def circle_centers(n: int = 8, radius: float = 1.0) -> np.ndarray:
    """Kernel centers on a circle around the unit square (outside the element)."""
    theta = np.linspace(0, 2 * np.pi, n, endpoint=False)
    return 0.5 + radius * np.column_stack([np.cos(theta), np.sin(theta)])


def sphere_centers(radius: float = 1.2) -> np.ndarray:
    """14 kernel centers (octahedron + cube directions) around the unit cube."""
    directions = [np.eye(3)[i] * s for i in range(3) for s in (-1, 1)]
    directions += [np.array([a, b, c]) / np.sqrt(3)
                   for a in (-1, 1) for b in (-1, 1) for c in (-1, 1)]
    return 0.5 + radius * np.array(directions)


def weak_form_integrals(builder, quadr: Quadrature, W: np.ndarray) -> np.ndarray:
    """
    ∫∇Q·∇phi + ∫ΔQ phi for every basis (columns of W) and monomial Q,
    evaluated term by term at the quadrature points.

    Returns:
        (num_bases, 5|9) in the column order of local_basis_integral
    """
    pts, w = quadr.points, quadr.weights
    dim = builder.dim
    vals = builder.build(pts) @ W
    grads = [builder.build_gradient(pts, d) @ W for d in range(dim)]
    x = [pts[:, d:d + 1] for d in range(dim)]
    pairs = [(0, 1)] if dim == 2 else [(0, 1), (1, 2), (2, 0)]

    rows = []
    for i in range(dim):
        rows.append(w @ grads[i])
    for a, b in pairs:
        rows.append(w @ (x[b] * grads[a] + x[a] * grads[b]))
    for i in range(dim):
        rows.append(w @ (2 * x[i] * grads[i] + 2 * vals))
    return np.array(rows).T
