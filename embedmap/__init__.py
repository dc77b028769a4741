"""
embedmap: low-dimensional maps of document embeddings.

Public API:
    from embedmap import VectorStore, Vector, PCAEngine, svd

    store = VectorStore('vectors.json')
    store.add(Vector('note-1', full_embedding))
    reduce_store(store, n_components=2)
    store.search(query_embedding, limit=5)

Layers:
    embedmap.core        Numerics: Matrix, SVD (Golub-Kahan-Reinsch), PCA
    embedmap.store       Vector store: records, CRUD, k-NN search, JSON persistence
    embedmap.io          File reads/writes (store JSON, projection parquet)
    embedmap.validation  Error taxonomy
    embedmap.config      YAML configuration
    embedmap.pipeline    Embed -> store -> PCA -> write back reduced embeddings

Embeddings themselves come from the host through an EmbeddingProvider.
"""

from embedmap.core import Matrix, svd, SVDResult, SVDStatus, PCAEngine, PCAResult
from embedmap.store import Vector, SearchResult, VectorUpdate, UpdateKind, VectorStore, euclidean_distance
from embedmap.pipeline import EmbeddingProvider, index_documents, reduce_store
from embedmap.config import load_config

__version__ = "0.1.0"

__all__ = [
    "Matrix",
    "svd",
    "SVDResult",
    "SVDStatus",
    "PCAEngine",
    "PCAResult",
    "Vector",
    "SearchResult",
    "VectorUpdate",
    "UpdateKind",
    "VectorStore",
    "euclidean_distance",
    "EmbeddingProvider",
    "index_documents",
    "reduce_store",
    "load_config",
]
