"""
Shared test fixtures.
"""

import numpy as np
import pytest

from embedmap.core import Matrix
from embedmap.store import Vector, VectorStore


# 4 x 3 reference matrix with known singular values
REFERENCE_ROWS = [
    [4, 11, 14],
    [5, 6, 7],
    [8, 9, 10],
    [11, 12, 13],
]


@pytest.fixture
def reference_matrix() -> Matrix:
    return Matrix(REFERENCE_ROWS)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def store() -> VectorStore:
    """Store with three 3-d vectors at increasing distance from the origin."""
    s = VectorStore()
    s.add(Vector('a', [0.0, 0.0, 1.0]))
    s.add(Vector('b', [0.0, 2.0, 0.0]))
    s.add(Vector('c', [3.0, 0.0, 0.0]))
    return s


class FakeProvider:
    """Deterministic embedding provider: text length, vowel count, word count."""

    def __init__(self):
        self.calls = []

    def embed(self, texts):
        self.calls.append(list(texts))
        return [
            [float(len(t)), float(sum(ch in 'aeiou' for ch in t)), float(len(t.split()))]
            for t in texts
        ]


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()
