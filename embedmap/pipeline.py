"""
embedmap Pipeline
=================

Wires the pieces together for a host application:

    documents --(EmbeddingProvider)--> VectorStore.full_embedding
    VectorStore --(PCAEngine)--> VectorStore.reduced_embedding

Pure orchestration, no computation here. Every batch is fully computed
and validated before the store is touched, so a failed embedding call or
PCA run leaves the store as it was.
"""

import logging
from typing import Mapping, Optional, Protocol, Sequence

from embedmap.config import EmbedmapConfig
from embedmap.core.pca import PCAEngine, PCAResult
from embedmap.store.models import Vector, to_embedding
from embedmap.store.vector_store import VectorStore
from embedmap.validation.errors import DimensionMismatch, ValidationError


logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    """Turns document texts into embedding vectors, one per text, in order."""

    def embed(self, texts: Sequence[str]) -> Sequence[Sequence[float]]:
        ...


def index_documents(
    store: VectorStore,
    documents: Mapping[str, str],
    provider: EmbeddingProvider,
    batch_size: int = 16,
) -> int:
    """
    Embed documents and add them to the store.

    Existing records keep their reduced embedding; their full embedding is
    replaced.

    Args:
        store: Target store
        documents: document id -> text
        provider: Embedding source
        batch_size: Texts per provider call

    Returns:
        Number of documents indexed

    Raises:
        ValidationError: If the provider returns the wrong number of embeddings
        DimensionMismatch: If embeddings disagree in length with each other
                           or with the vectors already stored
    """
    if batch_size < 1:
        raise ValidationError(f"batch_size must be at least 1, got {batch_size}")

    items = list(documents.items())
    dimension = _store_dimension(store)
    indexed = 0

    for start in range(0, len(items), batch_size):
        batch = items[start:start + batch_size]
        embeddings = provider.embed([text for _, text in batch])

        if len(embeddings) != len(batch):
            raise ValidationError(
                f"Provider returned {len(embeddings)} embeddings for {len(batch)} texts"
            )

        vectors = []
        for (doc_id, _), embedding in zip(batch, embeddings):
            embedding = to_embedding(embedding, f"embedding for '{doc_id}'")
            if dimension is None:
                dimension = len(embedding)
            elif len(embedding) != dimension:
                raise DimensionMismatch(
                    f"Embedding for '{doc_id}' has dimension {len(embedding)}, expected {dimension}",
                    expected=dimension,
                    actual=len(embedding),
                )
            existing = store.get(doc_id)
            reduced = existing.reduced_embedding if existing is not None else []
            vectors.append(Vector(doc_id, embedding, reduced))

        for vector in vectors:
            store.add(vector)
        indexed += len(vectors)
        logger.info(f"Indexed batch of {len(vectors)} documents ({indexed}/{len(items)})")

    return indexed


def reduce_store(
    store: VectorStore,
    n_components: int = 2,
    engine: Optional[PCAEngine] = None,
) -> PCAResult:
    """
    Fit PCA on the store's full embeddings and write back reduced embeddings.

    Args:
        store: Store holding records of uniform dimension
        n_components: Reduced dimension (capped at the feature count)
        engine: PCA engine (default: PCAEngine())

    Returns:
        The fitted PCAResult

    Raises:
        ValidationError: If the store is empty
        NumericalNonConvergence: If the engine is strict and the SVD hit its cap
    """
    engine = engine or PCAEngine()
    ids = store.ids()
    matrix = store.embedding_matrix(ids)

    result = engine.fit(matrix)
    k = min(n_components, result.n_features)
    projected = result.transform(matrix, n_components=k)

    store.apply_reduced({
        vector_id: projected.row(i).tolist()
        for i, vector_id in enumerate(ids)
    })
    logger.info(
        f"Reduced {len(ids)} vectors from {result.n_features} to {k} dimensions "
        f"(explained variance {float(result.explained_variance_ratio[:k].sum()):.1%})"
    )
    return result


def build_store(config: EmbedmapConfig) -> VectorStore:
    """Construct a store at the configured path and load it if the file exists."""
    store = VectorStore(path=config.store.path)
    if store.path is not None:
        store.load_from_file()
    return store


def build_engine(config: EmbedmapConfig) -> PCAEngine:
    return PCAEngine(solver=config.solver, strict=config.projection.strict)


def _store_dimension(store: VectorStore) -> Optional[int]:
    for vector in store:
        return len(vector.full_embedding)
    return None
