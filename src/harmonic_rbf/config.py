"""
Configuration for basis construction.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict

from .kernels import KERNELS, SINGULAR_RADIUS


LSTSQ_METHODS = ('cholesky', 'svd')


@dataclass(frozen=True)
class BasisConfig:
    """
    Tunables of one basis construction.

    Attributes:
        kernel: Kernel name ('harmonic', or 'biharmonic' for 2D elements)
        singular_radius: Distances below this are treated as coincident
        lstsq: Least-squares backend, 'cholesky' (normal equations) or 'svd'
        check_residual: Log the fit residual after each construction
    """
    kernel: str = 'harmonic'
    singular_radius: float = SINGULAR_RADIUS
    lstsq: str = 'cholesky'
    check_residual: bool = False

    def __post_init__(self):
        if self.kernel not in KERNELS:
            raise ValueError(f"Unknown kernel: {self.kernel}. Available: {list(KERNELS.keys())}")
        if self.lstsq not in LSTSQ_METHODS:
            raise ValueError(f"Unknown lstsq method: {self.lstsq}. Available: {list(LSTSQ_METHODS)}")
        if self.singular_radius <= 0:
            raise ValueError(f"singular_radius must be positive, got {self.singular_radius}")

    @classmethod
    def get_default_args(cls) -> Dict[str, Any]:
        """Return default arguments as a plain dict."""
        return asdict(cls())

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> 'BasisConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(params) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}. Available: {sorted(known)}")
        return cls(**params)
