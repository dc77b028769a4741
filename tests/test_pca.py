"""
Tests for the PCA engine.
"""

import numpy as np
import pytest

from embedmap.config import SolverConfig
from embedmap.core import Matrix, PCAEngine, SVDStatus
from embedmap.validation import DimensionMismatch, NumericalNonConvergence, ValidationError


def _population_covariance(data: np.ndarray) -> np.ndarray:
    centered = data - data.mean(axis=0)
    return centered.T @ centered / data.shape[0]


class TestEigenvectors:
    """Principal directions of the reference matrix."""

    def test_shape(self, reference_matrix):
        components = PCAEngine().get_eigenvectors(reference_matrix)
        assert components.size() == (3, 3)

    def test_rows_orthonormal(self, reference_matrix):
        components = PCAEngine().get_eigenvectors(reference_matrix).values
        np.testing.assert_allclose(components @ components.T, np.eye(3), atol=1e-8)

    def test_dominant_direction_matches_numpy(self, reference_matrix):
        components = PCAEngine().get_eigenvectors(reference_matrix).values

        cov = _population_covariance(reference_matrix.values)
        eigenvalues, eigenvectors = np.linalg.eigh(cov)
        top = eigenvectors[:, np.argmax(eigenvalues)]

        # equal up to sign
        assert abs(float(components[0] @ top)) == pytest.approx(1.0, abs=1e-8)

    def test_accepts_nested_lists(self):
        components = PCAEngine().get_eigenvectors([[1, 2], [3, 5], [4, 4], [0, 1]])
        assert components.size() == (2, 2)

    def test_input_not_modified(self, reference_matrix):
        before = reference_matrix.to_list()
        PCAEngine().fit(reference_matrix)
        assert reference_matrix.to_list() == before


class TestFit:
    """Variance statistics."""

    def test_explained_variance_matches_numpy(self, rng):
        data = rng.standard_normal((50, 4)) * np.array([5.0, 2.0, 1.0, 0.5])
        result = PCAEngine().fit(data)

        expected = np.sort(np.linalg.eigvalsh(_population_covariance(data)))[::-1]
        np.testing.assert_allclose(result.explained_variance, expected, atol=1e-8)

    def test_explained_variance_descending(self, rng):
        result = PCAEngine().fit(rng.standard_normal((30, 6)))
        assert np.all(np.diff(result.explained_variance) <= 1e-12)

    def test_ratio_sums_to_one(self, rng):
        result = PCAEngine().fit(rng.standard_normal((30, 5)))
        assert float(result.explained_variance_ratio.sum()) == pytest.approx(1.0)

    def test_effective_dim_single_direction(self):
        # all points on the line y = 2x
        data = [[t, 2 * t] for t in range(-3, 4)]
        result = PCAEngine().fit(data)

        assert result.effective_dim == pytest.approx(1.0, abs=1e-8)
        assert result.explained_variance_ratio[0] == pytest.approx(1.0, abs=1e-8)

    def test_mean(self, reference_matrix):
        result = PCAEngine().fit(reference_matrix)
        np.testing.assert_allclose(result.mean, reference_matrix.values.mean(axis=0))

    def test_constant_data(self):
        result = PCAEngine().fit([[1.0, 2.0, 3.0]] * 4)

        np.testing.assert_allclose(result.explained_variance, 0.0, atol=1e-12)
        np.testing.assert_allclose(result.explained_variance_ratio, 0.0)
        assert result.effective_dim == 0.0
        assert result.components.size() == (3, 3)

    def test_single_row(self):
        result = PCAEngine().fit([[1.0, 2.0]])
        assert result.components.size() == (2, 2)

    def test_empty_matrix(self):
        with pytest.raises(ValidationError):
            PCAEngine().fit(np.zeros((0, 3)))

    def test_sample_and_feature_counts(self, reference_matrix, rng):
        result = PCAEngine().fit(reference_matrix)
        assert result.n_samples == 4
        assert result.n_features == 3

        wide = PCAEngine().fit(rng.standard_normal((2, 5)))
        assert wide.n_samples == 2
        assert wide.n_features == 5

    def test_converged(self, reference_matrix):
        result = PCAEngine().fit(reference_matrix)
        assert result.converged
        assert result.status == SVDStatus.CONVERGED


class TestTransform:
    """Projection onto the leading directions."""

    def test_fit_transform_shape(self, rng):
        data = rng.standard_normal((20, 5))
        projected = PCAEngine().fit_transform(data, n_components=2)
        assert projected.size() == (20, 2)

    def test_projection_centered(self, rng):
        data = rng.standard_normal((20, 5)) + 10.0
        projected = PCAEngine().fit_transform(data, n_components=3)
        np.testing.assert_allclose(projected.values.mean(axis=0), 0.0, atol=1e-10)

    def test_projection_variance_equals_eigenvalues(self, rng):
        data = rng.standard_normal((40, 4)) * np.array([4.0, 2.0, 1.0, 0.5])
        result = PCAEngine().fit(data)
        projected = result.transform(data, n_components=4).values

        np.testing.assert_allclose(projected.var(axis=0), result.explained_variance, atol=1e-8)

    def test_full_projection_preserves_distances(self, rng):
        data = rng.standard_normal((10, 3))
        projected = PCAEngine().fit_transform(data, n_components=3).values

        original = np.linalg.norm(data[0] - data[1])
        assert np.linalg.norm(projected[0] - projected[1]) == pytest.approx(original)

    def test_feature_mismatch(self, reference_matrix):
        result = PCAEngine().fit(reference_matrix)
        with pytest.raises(DimensionMismatch):
            result.transform(Matrix.ones(2, 4))

    @pytest.mark.parametrize("n_components", [0, 4])
    def test_component_count_out_of_range(self, reference_matrix, n_components):
        result = PCAEngine().fit(reference_matrix)
        with pytest.raises(ValidationError):
            result.transform(reference_matrix, n_components=n_components)


class TestStrictMode:
    """Non-convergence handling."""

    def test_lenient_returns_status(self, rng):
        data = rng.standard_normal((40, 8))
        engine = PCAEngine(solver=SolverConfig(qr_iters=1))
        result = engine.fit(data)

        assert result.status == SVDStatus.MAX_ITERATIONS_REACHED
        assert not result.converged
        assert result.unconverged
        assert result.components.size() == (8, 8)

    def test_strict_raises(self, rng):
        data = rng.standard_normal((40, 8))
        engine = PCAEngine(solver=SolverConfig(qr_iters=1), strict=True)

        with pytest.raises(NumericalNonConvergence):
            engine.fit(data)
