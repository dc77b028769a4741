"""
Error Taxonomy

Every failure raised by embedmap derives from EmbedmapError so hosts can
catch the whole family in one place.

    ValidationError         malformed input (shape, type, wire format)
      DimensionMismatch     operands whose shapes or lengths disagree
    NotFoundError           update/lookup on an unknown vector id
    PreconditionError       SVD called with rows < columns
    NumericalNonConvergence SVD iteration cap reached without a clean split
    ConfigError             invalid configuration values

Out-of-range element access raises the built-in IndexError.
"""

from typing import Any, List, Optional


class EmbedmapError(Exception):
    """Base exception for all embedmap errors."""
    pass


class ValidationError(EmbedmapError, ValueError):
    """Raised when input data is malformed."""
    pass


class DimensionMismatch(ValidationError):
    """
    Raised when two operands have incompatible shapes.

    Raised when:
    - Matrix product inner dimensions differ
    - Element-wise operands differ in shape
    - Embeddings compared or stacked have different lengths
    """

    def __init__(self, message: str, expected: Any = None, actual: Any = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class NotFoundError(EmbedmapError, KeyError):
    """Raised when a vector id is not present in the store."""

    def __init__(self, vector_id: str, message: Optional[str] = None):
        self.vector_id = vector_id
        self.message = message or f"Vector with id '{vector_id}' not found in store"
        super().__init__(self.message)

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return self.message


class PreconditionError(EmbedmapError):
    """Raised when the SVD input has fewer rows than columns."""

    def __init__(self, rows: int, cols: int, message: Optional[str] = None):
        self.rows = rows
        self.cols = cols
        if message is None:
            message = (
                f"Number of rows must be greater than or equal to number of columns. "
                f"Current values are rows: {rows}, columns: {cols}"
            )
        super().__init__(message)


class NumericalNonConvergence(EmbedmapError):
    """Raised when the SVD diagonalization hit its iteration cap."""

    def __init__(self, iterations: int, unconverged: List[int], message: Optional[str] = None):
        self.iterations = iterations
        self.unconverged = list(unconverged)
        if message is None:
            message = (
                f"SVD did not converge for singular value indices {self.unconverged} "
                f"after {iterations} QR sweeps"
            )
        super().__init__(message)


class ConfigError(EmbedmapError):
    """Raised when configuration values are missing or out of range."""
    pass
