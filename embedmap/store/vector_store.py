"""
Vector Store - keyed collection of embedded documents.

Provides CRUD over Vector records, exact (brute-force) nearest-neighbour
search by Euclidean distance over full embeddings, and JSON persistence.

The store is an explicitly owned instance: construct it once and pass it
to every operation that needs it. It carries no locking and assumes a
single writer.
"""

import json
import logging
from numbers import Integral
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Union

import numpy as np

from embedmap.core.matrix import Matrix
from embedmap.io.reader import read_store
from embedmap.io.writer import write_store
from embedmap.validation.errors import DimensionMismatch, NotFoundError, ValidationError

from .models import SearchResult, Vector, VectorUpdate, to_embedding


logger = logging.getLogger(__name__)


def euclidean_distance(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Euclidean distance sqrt(sum((a_i - b_i)^2)).

    Args:
        vec_a: First vector
        vec_b: Second vector

    Returns:
        Non-negative distance; 0 for identical vectors

    Raises:
        DimensionMismatch: If the vectors have different lengths
    """
    if len(vec_a) != len(vec_b):
        raise DimensionMismatch(
            f"Vectors must be of the same dimension: {len(vec_a)} != {len(vec_b)}",
            expected=len(vec_a),
            actual=len(vec_b),
        )
    diff = np.asarray(vec_a, dtype=np.float64) - np.asarray(vec_b, dtype=np.float64)
    return float(np.sqrt(diff @ diff))


class VectorStore:
    """
    In-memory vector store with file persistence.

    Args:
        path: Default file for save_to_file() / load_from_file()
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._vectors: Dict[str, Vector] = {}
        self.path = Path(path) if path is not None else None

    def __len__(self) -> int:
        return len(self._vectors)

    def __contains__(self, vector_id: object) -> bool:
        return vector_id in self._vectors

    def __iter__(self) -> Iterator[Vector]:
        for vector in list(self._vectors.values()):
            yield vector.copy()

    def __repr__(self) -> str:
        return f"VectorStore(path={str(self.path) if self.path else None!r}, vectors={len(self)})"

    # =========================================================================
    # CRUD
    # =========================================================================

    def add(self, vector: Vector) -> None:
        """Insert `vector`, overwriting any record with the same id."""
        logger.debug(f"Adding vector to store: {vector.id}")
        self._vectors[vector.id] = vector.copy()

    def update(
        self,
        vector_id: str,
        request: Optional[VectorUpdate] = None,
        *,
        full_embedding: Optional[Sequence[float]] = None,
        reduced_embedding: Optional[Sequence[float]] = None,
    ) -> Vector:
        """
        Replace the embedding fields named by `request` on an existing record.

        Either pass a VectorUpdate, or the fields as keywords.

        Returns:
            The updated record

        Raises:
            NotFoundError: If no record has `vector_id` (store unchanged)
            ValidationError: If both or neither of request/keywords are given
        """
        if request is None:
            request = VectorUpdate.from_fields(full_embedding, reduced_embedding)
        elif full_embedding is not None or reduced_embedding is not None:
            raise ValidationError("Pass either a VectorUpdate or embedding keywords, not both")

        existing = self._vectors.get(vector_id)
        if existing is None:
            raise NotFoundError(vector_id)

        updated = request.apply(existing)
        self._vectors[vector_id] = updated
        logger.debug(f"Updated vector {vector_id} ({request.kind.value})")
        return updated.copy()

    def get(self, vector_id: str) -> Optional[Vector]:
        """Return a copy of the record, or None if absent."""
        vector = self._vectors.get(vector_id)
        return vector.copy() if vector is not None else None

    def has(self, vector_id: str) -> bool:
        return vector_id in self._vectors

    def delete(self, vector_id: str) -> bool:
        """Remove the record if present. Returns whether it was present."""
        if vector_id not in self._vectors:
            return False
        del self._vectors[vector_id]
        logger.debug(f"Deleted vector {vector_id}")
        return True

    def clear(self) -> None:
        self._vectors.clear()

    def ids(self) -> List[str]:
        """Record ids in insertion order."""
        return list(self._vectors)

    # =========================================================================
    # Search
    # =========================================================================

    def search(
        self,
        query_embedding: Sequence[float],
        limit: Optional[int] = None,
    ) -> List[SearchResult]:
        """
        Rank stored records by Euclidean distance to `query_embedding`.

        Args:
            query_embedding: Query vector, same length as the stored full embeddings
            limit: Maximum results to return (None = all)

        Returns:
            SearchResults in ascending distance; ties keep insertion order

        Raises:
            DimensionMismatch: If any stored embedding differs in length
                               (the whole search is aborted)
        """
        if limit is not None and (
            isinstance(limit, bool) or not isinstance(limit, Integral) or limit < 0
        ):
            raise ValidationError(f"limit must be a non-negative integer, got {limit!r}")
        query = to_embedding(query_embedding, 'query_embedding')

        scored = []
        for vector in self._vectors.values():
            try:
                distance = euclidean_distance(query, vector.full_embedding)
            except DimensionMismatch as e:
                raise DimensionMismatch(
                    f"Cannot search: vector '{vector.id}' has dimension "
                    f"{len(vector.full_embedding)}, query has {len(query)}",
                    expected=len(query),
                    actual=len(vector.full_embedding),
                ) from e
            scored.append((distance, vector))

        # sort is stable: equal distances keep insertion order
        scored.sort(key=lambda item: item[0])
        if limit is not None:
            scored = scored[:limit]

        return [
            SearchResult.from_vector(vector, distance, rank)
            for rank, (distance, vector) in enumerate(scored, start=1)
        ]

    def search_by_id(self, vector_id: str, limit: Optional[int] = None) -> List[SearchResult]:
        """
        Search using a stored record's full embedding as the query.

        The record itself is included at distance 0.

        Raises:
            NotFoundError: If no record has `vector_id`
        """
        query = self._vectors.get(vector_id)
        if query is None:
            raise NotFoundError(vector_id)
        return self.search(query.full_embedding, limit=limit)

    # =========================================================================
    # Batch access for projection
    # =========================================================================

    def embedding_matrix(self, ids: Optional[Sequence[str]] = None) -> Matrix:
        """
        Stack full embeddings into an items x features Matrix.

        Args:
            ids: Row order (default: insertion order)

        Raises:
            ValidationError: If there are no rows
            NotFoundError: If an id is unknown
            DimensionMismatch: If embeddings differ in length
        """
        ids = self.ids() if ids is None else list(ids)
        if not ids:
            raise ValidationError("Cannot build an embedding matrix from an empty store")

        rows = []
        for vector_id in ids:
            vector = self._vectors.get(vector_id)
            if vector is None:
                raise NotFoundError(vector_id)
            if rows and len(vector.full_embedding) != len(rows[0]):
                raise DimensionMismatch(
                    f"Vector '{vector_id}' has dimension {len(vector.full_embedding)}, "
                    f"expected {len(rows[0])}",
                    expected=len(rows[0]),
                    actual=len(vector.full_embedding),
                )
            rows.append(vector.full_embedding)

        return Matrix(rows)

    def apply_reduced(self, reduced: Mapping[str, Sequence[float]]) -> int:
        """
        Write reduced embeddings back, all or nothing.

        Every id and embedding is validated before any record changes.

        Returns:
            Number of records updated

        Raises:
            NotFoundError: If any id is unknown (store unchanged)
        """
        requests = {}
        for vector_id, embedding in reduced.items():
            if vector_id not in self._vectors:
                raise NotFoundError(vector_id)
            requests[vector_id] = VectorUpdate.reduced(embedding)

        for vector_id, request in requests.items():
            self._vectors[vector_id] = request.apply(self._vectors[vector_id])

        logger.info(f"Applied reduced embeddings to {len(requests)} vectors")
        return len(requests)

    # =========================================================================
    # Persistence
    # =========================================================================

    def serialize(self) -> str:
        """Render every record, in insertion order, as a JSON array."""
        return json.dumps([vector.to_dict() for vector in self._vectors.values()])

    def deserialize(self, json_string: str) -> int:
        """
        Parse a JSON array of records and add each one.

        Records with ids already in the store overwrite them. Nothing is
        added unless every record parses.

        Returns:
            Number of records loaded

        Raises:
            ValidationError: If the text is not a JSON array of valid records
        """
        try:
            data = json.loads(json_string)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Vector store data is not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise ValidationError(
                f"Vector store data must be a JSON array, got {type(data).__name__}"
            )

        vectors = [Vector.from_dict(record) for record in data]
        for vector in vectors:
            self.add(vector)
        return len(vectors)

    def save_to_file(self, path: Optional[Union[str, Path]] = None) -> Path:
        """Write serialize() output to `path` (default: self.path)."""
        target = self._resolve_path(path)
        logger.info(f"Saving vector store to {target} ({len(self)} vectors)")
        return write_store(self.serialize(), target)

    def load_from_file(self, path: Optional[Union[str, Path]] = None) -> int:
        """
        Load records from `path` (default: self.path).

        Returns:
            Number of records loaded; 0 if the file does not exist
        """
        target = self._resolve_path(path)
        text = read_store(target)
        if text is None:
            logger.debug(f"No vector store file at {target}, nothing to load")
            return 0

        count = self.deserialize(text)
        logger.info(f"Loaded {count} vectors from {target}")
        return count

    def _resolve_path(self, path: Optional[Union[str, Path]]) -> Path:
        if path is not None:
            return Path(path)
        if self.path is None:
            raise ValidationError("No file path given and the store has no default path")
        return self.path
