"""
Tests for the embed -> store -> reduce pipeline.
"""

import numpy as np
import pytest

from embedmap.config import (
    EmbedmapConfig,
    ProjectionConfig,
    SolverConfig,
    StoreConfig,
    config_from_dict,
)
from embedmap.core import PCAEngine
from embedmap.pipeline import build_engine, build_store, index_documents, reduce_store
from embedmap.store import Vector, VectorStore
from embedmap.validation import DimensionMismatch, NumericalNonConvergence, ValidationError


DOCUMENTS = {
    'n1': "the quick brown fox",
    'n2': "jumps over",
    'n3': "a lazy dog sleeping in the afternoon sun",
    'n4': "notes",
    'n5': "another short note about foxes",
}


class TestIndexDocuments:
    """Embedding documents into the store."""

    def test_indexes_all(self, provider):
        s = VectorStore()
        count = index_documents(s, DOCUMENTS, provider)

        assert count == 5
        assert s.ids() == list(DOCUMENTS)
        assert s.get('n2').full_embedding == [10.0, 3.0, 2.0]

    def test_batches(self, provider):
        index_documents(VectorStore(), DOCUMENTS, provider, batch_size=2)
        assert [len(call) for call in provider.calls] == [2, 2, 1]

    def test_invalid_batch_size(self, provider):
        with pytest.raises(ValidationError):
            index_documents(VectorStore(), DOCUMENTS, provider, batch_size=0)

    def test_keeps_reduced_embedding(self, provider):
        s = VectorStore()
        s.add(Vector('n1', [0.0, 0.0, 0.0], [1.0, 2.0]))
        index_documents(s, {'n1': "changed text"}, provider)

        record = s.get('n1')
        assert record.full_embedding == [12.0, 3.0, 2.0]
        assert record.reduced_embedding == [1.0, 2.0]

    def test_wrong_count_leaves_store_unchanged(self):
        class ShortProvider:
            def embed(self, texts):
                return [[1.0, 2.0]] * (len(texts) - 1)

        s = VectorStore()
        with pytest.raises(ValidationError):
            index_documents(s, DOCUMENTS, ShortProvider())
        assert len(s) == 0

    def test_dimension_mismatch_with_store(self, provider):
        s = VectorStore()
        s.add(Vector('existing', [1.0, 2.0]))

        with pytest.raises(DimensionMismatch):
            index_documents(s, DOCUMENTS, provider)
        assert s.ids() == ['existing']

    def test_ragged_batch(self):
        class RaggedProvider:
            def embed(self, texts):
                return [[1.0] * (i + 1) for i in range(len(texts))]

        s = VectorStore()
        with pytest.raises(DimensionMismatch):
            index_documents(s, DOCUMENTS, RaggedProvider())
        assert len(s) == 0


class TestReduceStore:
    """PCA write-back."""

    def test_writes_reduced_embeddings(self, provider):
        s = VectorStore()
        index_documents(s, DOCUMENTS, provider)
        result = reduce_store(s, n_components=2)

        assert result.n_features == 3
        for record in s:
            assert len(record.reduced_embedding) == 2

    def test_reduced_matches_transform(self, provider):
        s = VectorStore()
        index_documents(s, DOCUMENTS, provider)
        result = reduce_store(s, n_components=2)

        expected = result.transform(s.embedding_matrix(), n_components=2).values
        actual = np.array([v.reduced_embedding for v in s])
        np.testing.assert_allclose(actual, expected)

    def test_components_capped_at_features(self, store):
        reduce_store(store, n_components=10)
        assert all(len(v.reduced_embedding) == 3 for v in store)

    def test_empty_store(self):
        with pytest.raises(ValidationError):
            reduce_store(VectorStore())

    def test_strict_failure_leaves_store_unchanged(self, rng):
        s = VectorStore()
        for i in range(40):
            s.add(Vector(f'v{i}', rng.standard_normal(8).tolist()))
        engine = PCAEngine(solver=SolverConfig(qr_iters=1), strict=True)

        with pytest.raises(NumericalNonConvergence):
            reduce_store(s, engine=engine)
        assert all(v.reduced_embedding == [] for v in s)


class TestBuilders:
    """Construction from configuration."""

    def test_build_store_loads_existing(self, store, tmp_path):
        path = tmp_path / 'vectors.json'
        store.save_to_file(path)

        built = build_store(EmbedmapConfig(store=StoreConfig(path=str(path))))
        assert built.ids() == ['a', 'b', 'c']
        assert built.path == path

    def test_build_store_without_path(self):
        assert len(build_store(EmbedmapConfig())) == 0

    @pytest.mark.parametrize("eps", [1e-17, 2.0 ** -53, 1e-3])
    def test_engine_accepts_any_configured_eps(self, reference_matrix, eps):
        config = config_from_dict({'solver': {'eps': eps}})
        result = build_engine(config).fit(reference_matrix)

        assert result.components.size() == (3, 3)

    def test_build_engine(self):
        config = EmbedmapConfig(
            solver=SolverConfig(qr_iters=20),
            projection=ProjectionConfig(strict=True),
        )
        engine = build_engine(config)

        assert engine.strict is True
        assert engine.solver.qr_iters == 20
