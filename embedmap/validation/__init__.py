"""
embedmap Validation Module

Exception taxonomy shared by the numerical core and the vector store.

Exports:
    - EmbedmapError: Base class for all embedmap errors
    - ValidationError: Malformed input
    - DimensionMismatch: Incompatible shapes or embedding lengths
    - NotFoundError: Unknown vector id
    - PreconditionError: SVD input with rows < columns
    - NumericalNonConvergence: SVD iteration cap reached
    - ConfigError: Invalid configuration
"""

from .errors import (
    EmbedmapError,
    ValidationError,
    DimensionMismatch,
    NotFoundError,
    PreconditionError,
    NumericalNonConvergence,
    ConfigError,
)

__all__ = [
    'EmbedmapError',
    'ValidationError',
    'DimensionMismatch',
    'NotFoundError',
    'PreconditionError',
    'NumericalNonConvergence',
    'ConfigError',
]
