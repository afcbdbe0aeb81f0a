"""
Radial Kernel Functions

Implements the harmonic kernel (fundamental solution of the Laplacian) and the
2D biharmonic kernel, together with their radial derivatives.

All kernels map distances below `eps` to zero, so a sample sitting on top of a
kernel center gets no contribution from that center.
"""

import numpy as np

from .exceptions import DimensionMismatchError


SINGULAR_RADIUS = 1e-8


def harmonic(r: np.ndarray, is_volume: bool, eps: float = SINGULAR_RADIUS) -> np.ndarray:
    """
    Harmonic kernel.

    phi(r) = 1/r      in 3D
    phi(r) = log(r)   in 2D

    Args:
        r: Distance array (non-negative)
        is_volume: True for a 3D element
        eps: Distances below this are mapped to 0

    Returns:
        Kernel values phi(r)
    """
    r = np.asarray(r, dtype=float)
    result = np.zeros_like(r)
    mask = r >= eps
    if is_volume:
        result[mask] = 1.0 / r[mask]
    else:
        result[mask] = np.log(r[mask])
    return result


def harmonic_prime(r: np.ndarray, is_volume: bool, eps: float = SINGULAR_RADIUS) -> np.ndarray:
    """
    Radial derivative of the harmonic kernel.

    phi'(r) = -1/r^2  in 3D
    phi'(r) = 1/r     in 2D
    """
    r = np.asarray(r, dtype=float)
    result = np.zeros_like(r)
    mask = r >= eps
    if is_volume:
        result[mask] = -1.0 / (r[mask] * r[mask])
    else:
        result[mask] = 1.0 / r[mask]
    return result


def biharmonic(r: np.ndarray, is_volume: bool, eps: float = SINGULAR_RADIUS) -> np.ndarray:
    """
    Biharmonic (thin-plate) kernel, 2D only: phi(r) = r^2 * (log(r) - 1)
    """
    if is_volume:
        raise DimensionMismatchError("The biharmonic kernel is only defined for 2D elements")
    r = np.asarray(r, dtype=float)
    result = np.zeros_like(r)
    mask = r >= eps
    result[mask] = r[mask] ** 2 * (np.log(r[mask]) - 1)
    return result


def biharmonic_prime(r: np.ndarray, is_volume: bool, eps: float = SINGULAR_RADIUS) -> np.ndarray:
    """Radial derivative of the biharmonic kernel: phi'(r) = r * (2*log(r) - 1)"""
    if is_volume:
        raise DimensionMismatchError("The biharmonic kernel is only defined for 2D elements")
    r = np.asarray(r, dtype=float)
    result = np.zeros_like(r)
    mask = r >= eps
    result[mask] = r[mask] * (2 * np.log(r[mask]) - 1)
    return result


def gradient_factor(prime, r: np.ndarray, is_volume: bool, eps: float = SINGULAR_RADIUS) -> np.ndarray:
    """
    phi'(r) / r, the factor turning (x - c) into the Cartesian gradient of phi.

    Zero below `eps` (including r == 0, where the quotient is undefined).
    """
    r = np.asarray(r, dtype=float)
    result = np.zeros_like(r)
    mask = r >= eps
    result[mask] = prime(r[mask], is_volume, eps) / r[mask]
    return result


# Convenience dictionary for kernel selection
KERNELS = {
    'harmonic': (harmonic, harmonic_prime),
    'biharmonic': (biharmonic, biharmonic_prime),
}


def get_kernel(name: str):
    """Get kernel function and its radial derivative by name."""
    if name not in KERNELS:
        raise ValueError(f"Unknown kernel: {name}. Available: {list(KERNELS.keys())}")
    return KERNELS[name]
