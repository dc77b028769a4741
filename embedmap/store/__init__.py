"""
Vector Store

Embedded-document records with CRUD, exact k-NN search, and JSON
persistence.

Key components:
- models.py: Vector, SearchResult, VectorUpdate records
- vector_store.py: VectorStore and the Euclidean distance it ranks by
"""

from .models import (
    Vector,
    SearchResult,
    VectorUpdate,
    UpdateKind,
)
from .vector_store import VectorStore, euclidean_distance

__all__ = [
    "Vector",
    "SearchResult",
    "VectorUpdate",
    "UpdateKind",
    "VectorStore",
    "euclidean_distance",
]
