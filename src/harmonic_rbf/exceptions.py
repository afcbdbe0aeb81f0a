"""
Error taxonomy for basis construction.

Fatal conditions are exceptions and abort construction of a single element's
basis; recoverable numerical trouble is reported as a warning.
"""


class DimensionMismatchError(ValueError):
    """Inputs disagree on the spatial dimension or on the constraint arity."""


class DegenerateElementError(ValueError):
    """The element has zero measure or collinear/coplanar support."""


class IllConditionedFitWarning(UserWarning):
    """The least-squares system could not be factored cleanly."""
