"""
Element-interior quadrature rule.
"""

from dataclasses import dataclass
import numpy as np

from .exceptions import DegenerateElementError, DimensionMismatchError


@dataclass
class Quadrature:
    """Container for a quadrature rule over one element."""
    points: np.ndarray      # Quadrature points (Q, dim)
    weights: np.ndarray     # Quadrature weights (Q,)

    def __post_init__(self):
        self.points = np.atleast_2d(np.asarray(self.points, dtype=float))
        self.weights = np.asarray(self.weights, dtype=float).reshape(-1)

    @property
    def n_points(self) -> int:
        return self.points.shape[0]

    @property
    def dim(self) -> int:
        return self.points.shape[1]

    @property
    def volume(self) -> float:
        """Measure of the element (area in 2D, volume in 3D)."""
        return float(self.weights.sum())

    def integrate(self, values: np.ndarray) -> np.ndarray:
        """Integrate per-point values (Q,) or (Q, m) over the element."""
        return self.weights @ np.asarray(values, dtype=float)

    def validate(self, dim: int) -> None:
        """
        Check the rule is usable for a `dim`-dimensional element.

        Raises:
            DimensionMismatchError: point dimension differs from `dim`, or the
                number of points and weights disagree
            DegenerateElementError: the weights sum to zero
        """
        if self.dim != dim:
            raise DimensionMismatchError(
                f"Quadrature points are {self.dim}D but the kernel centers are {dim}D"
            )
        if self.weights.shape[0] != self.n_points:
            raise DimensionMismatchError(
                f"Quadrature has {self.n_points} points but {self.weights.shape[0]} weights"
            )
        if self.volume == 0.0:
            raise DegenerateElementError("Quadrature weights sum to zero (element has no measure)")
