"""
Vector Store Records

Data models for the vector store: stored records, search hits, and the
closed set of partial updates a record accepts.

Wire format (one JSON object per record):
    {"id": "...", "fullEmbedding": [...], "reducedEmbedding": [...]}
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Any, Dict, List, Optional, Sequence

from embedmap.validation.errors import ValidationError


def to_embedding(values: Any, name: str = 'embedding') -> List[float]:
    """
    Copy `values` into a list of floats.

    Raises:
        ValidationError: If values is not a sequence of finite real numbers
    """
    if isinstance(values, (str, bytes)) or not hasattr(values, '__iter__'):
        raise ValidationError(f"{name} must be a sequence of numbers, got {type(values).__name__}")

    embedding = []
    for i, value in enumerate(values):
        if isinstance(value, bool) or not isinstance(value, Real):
            raise ValidationError(f"{name}[{i}] is not a number: {value!r}")
        value = float(value)
        if not math.isfinite(value):
            raise ValidationError(f"{name}[{i}] is not finite: {value}")
        embedding.append(value)
    return embedding


@dataclass
class Vector:
    """An embedded document."""
    id: str
    full_embedding: List[float]
    reduced_embedding: List[float] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.id, str):
            raise ValidationError(f"Vector id must be a string, got {self.id!r}")
        self.full_embedding = to_embedding(self.full_embedding, 'fullEmbedding')
        self.reduced_embedding = to_embedding(self.reduced_embedding, 'reducedEmbedding')

    def copy(self) -> 'Vector':
        return Vector(
            id=self.id,
            full_embedding=list(self.full_embedding),
            reduced_embedding=list(self.reduced_embedding),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire form."""
        return {
            'id': self.id,
            'fullEmbedding': list(self.full_embedding),
            'reducedEmbedding': list(self.reduced_embedding),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Vector':
        """Create from the wire form."""
        if not isinstance(data, dict):
            raise ValidationError(f"Vector record must be an object, got {type(data).__name__}")
        if 'id' not in data:
            raise ValidationError("Vector record is missing 'id'")
        if 'fullEmbedding' not in data:
            raise ValidationError(f"Vector record '{data['id']}' is missing 'fullEmbedding'")

        return cls(
            id=data['id'],
            full_embedding=data['fullEmbedding'],
            reduced_embedding=data.get('reducedEmbedding') or [],
        )


@dataclass
class SearchResult:
    """A stored vector with its distance to a search query."""
    id: str
    full_embedding: List[float]
    reduced_embedding: List[float]
    distance: float
    rank: int

    @classmethod
    def from_vector(cls, vector: Vector, distance: float, rank: int) -> 'SearchResult':
        return cls(
            id=vector.id,
            full_embedding=list(vector.full_embedding),
            reduced_embedding=list(vector.reduced_embedding),
            distance=distance,
            rank=rank,
        )

    def to_vector(self) -> Vector:
        return Vector(self.id, self.full_embedding, self.reduced_embedding)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'fullEmbedding': list(self.full_embedding),
            'reducedEmbedding': list(self.reduced_embedding),
            'distance': self.distance,
            'rank': self.rank,
        }


class UpdateKind(str, Enum):
    """Which embedding fields an update replaces."""
    FULL = "full"
    REDUCED = "reduced"
    BOTH = "both"


@dataclass(frozen=True)
class VectorUpdate:
    """
    Partial update of a stored vector.

    Build with VectorUpdate.full(), .reduced() or .both(); the kind decides
    which fields are replaced and every other field is left untouched.
    """
    kind: UpdateKind
    full_embedding: Optional[List[float]] = None
    reduced_embedding: Optional[List[float]] = None

    def __post_init__(self):
        needs_full = self.kind in (UpdateKind.FULL, UpdateKind.BOTH)
        needs_reduced = self.kind in (UpdateKind.REDUCED, UpdateKind.BOTH)

        if needs_full != (self.full_embedding is not None):
            raise ValidationError(
                f"{self.kind.value} update {'requires' if needs_full else 'must not carry'} fullEmbedding"
            )
        if needs_reduced != (self.reduced_embedding is not None):
            raise ValidationError(
                f"{self.kind.value} update {'requires' if needs_reduced else 'must not carry'} reducedEmbedding"
            )

        # frozen: bypass __setattr__ to store validated copies
        if needs_full:
            object.__setattr__(self, 'full_embedding', to_embedding(self.full_embedding, 'fullEmbedding'))
        if needs_reduced:
            object.__setattr__(
                self, 'reduced_embedding', to_embedding(self.reduced_embedding, 'reducedEmbedding')
            )

    @classmethod
    def full(cls, full_embedding: Sequence[float]) -> 'VectorUpdate':
        return cls(UpdateKind.FULL, full_embedding=full_embedding)

    @classmethod
    def reduced(cls, reduced_embedding: Sequence[float]) -> 'VectorUpdate':
        return cls(UpdateKind.REDUCED, reduced_embedding=reduced_embedding)

    @classmethod
    def both(cls, full_embedding: Sequence[float], reduced_embedding: Sequence[float]) -> 'VectorUpdate':
        return cls(UpdateKind.BOTH, full_embedding=full_embedding, reduced_embedding=reduced_embedding)

    @classmethod
    def from_fields(
        cls,
        full_embedding: Optional[Sequence[float]] = None,
        reduced_embedding: Optional[Sequence[float]] = None,
    ) -> 'VectorUpdate':
        """Pick the kind from whichever fields are supplied."""
        if full_embedding is not None and reduced_embedding is not None:
            return cls.both(full_embedding, reduced_embedding)
        if full_embedding is not None:
            return cls.full(full_embedding)
        if reduced_embedding is not None:
            return cls.reduced(reduced_embedding)
        raise ValidationError("Update must carry fullEmbedding, reducedEmbedding, or both")

    def apply(self, vector: Vector) -> Vector:
        """Return a copy of `vector` with this update applied."""
        updated = vector.copy()
        if self.full_embedding is not None:
            updated.full_embedding = list(self.full_embedding)
        if self.reduced_embedding is not None:
            updated.reduced_embedding = list(self.reduced_embedding)
        return updated
