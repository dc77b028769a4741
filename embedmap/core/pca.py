"""
PCA Engine (Principal Directions).

Computes the principal directions of a batch of embeddings by running the
SVD engine on the covariance matrix.

    deviation  = A - (1/m) J A        (column means removed)
    covariance = (1/m) deviation^T deviation
    U, q       = svd(covariance)       (U only)
    basis      = -U^T                  (rows = directions)

Rows of the basis are ranked by descending variance. The solver itself
does not guarantee that order, so its result is sorted before the basis
is formed.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from embedmap.config import SolverConfig
from embedmap.core.matrix import Matrix
from embedmap.core.svd import SVDStatus, svd
from embedmap.validation.errors import DimensionMismatch, ValidationError


logger = logging.getLogger(__name__)


@dataclass
class PCAResult:
    """
    Fitted principal directions.

    Attributes:
        components: n_features x n_features, row i = i-th principal direction
        explained_variance: Covariance eigenvalues, descending
        explained_variance_ratio: explained_variance / total variance
        effective_dim: Participation ratio (sum l)^2 / sum l^2
        mean: Column means removed before projection
        n_samples: Rows (items) the fit was computed on
        status: Solver status
        iterations: Solver QR sweeps
        unconverged: Indices that hit the solver iteration cap
    """
    components: Matrix
    explained_variance: np.ndarray
    explained_variance_ratio: np.ndarray
    effective_dim: float
    mean: np.ndarray
    n_samples: int
    status: SVDStatus = SVDStatus.CONVERGED
    iterations: int = 0
    unconverged: List[int] = field(default_factory=list)

    @property
    def n_features(self) -> int:
        return self.components.rows

    @property
    def converged(self) -> bool:
        return self.status == SVDStatus.CONVERGED

    def transform(self, matrix, n_components: int = 2) -> Matrix:
        """
        Project items onto the leading principal directions.

        Args:
            matrix: items x features
            n_components: Number of directions to keep

        Returns:
            items x n_components Matrix
        """
        data = matrix if isinstance(matrix, Matrix) else Matrix(matrix)
        if data.cols != self.n_features:
            raise DimensionMismatch(
                f"Expected {self.n_features} features, got {data.cols}",
                expected=self.n_features,
                actual=data.cols,
            )
        if not 1 <= n_components <= self.n_features:
            raise ValidationError(
                f"n_components must be between 1 and {self.n_features}, got {n_components}"
            )

        centered = data.values - self.mean
        basis = self.components.values[:n_components]
        return Matrix(centered @ basis.T)


class PCAEngine:
    """
    Full-batch PCA over an items x features embedding matrix.

    Args:
        solver: SVD parameters (defaults to SolverConfig())
        strict: Raise NumericalNonConvergence instead of returning a
                basis built from a partially converged SVD
    """

    def __init__(self, solver: Optional[SolverConfig] = None, strict: bool = False):
        self.solver = solver or SolverConfig()
        self.strict = strict

    def get_eigenvectors(self, matrix) -> Matrix:
        """
        Principal directions of `matrix`, one per row, ranked by variance.

        Args:
            matrix: items x features

        Returns:
            features x features Matrix
        """
        return self.fit(matrix).components

    def fit(self, matrix) -> PCAResult:
        """Compute principal directions and variance statistics."""
        data = matrix if isinstance(matrix, Matrix) else Matrix(matrix)
        m, n = data.size()
        if m == 0 or n == 0:
            raise ValidationError(f"PCA requires a non-empty matrix, got shape {(m, n)}")

        covariance, mean = _covariance(data)

        result = svd(covariance, with_v=False, **self.solver.as_kwargs()).sorted()
        if self.strict:
            result.raise_for_status()
        elif not result.converged:
            logger.warning(
                f"PCA basis built from partially converged SVD "
                f"(unconverged components: {result.unconverged})"
            )

        eigenvalues = result.q
        total_var = float(eigenvalues.sum())
        if total_var > 1e-12:
            explained_ratio = eigenvalues / total_var
            effective_dim = total_var ** 2 / float((eigenvalues ** 2).sum())
        else:
            explained_ratio = np.zeros_like(eigenvalues)
            effective_dim = 0.0

        logger.debug(
            f"PCA fit on {m} items x {n} features: "
            f"{result.iterations} QR sweeps, effective_dim={effective_dim:.3f}"
        )

        return PCAResult(
            components=-result.u.transpose(),
            explained_variance=eigenvalues,
            explained_variance_ratio=explained_ratio,
            effective_dim=float(effective_dim),
            mean=mean,
            n_samples=m,
            status=result.status,
            iterations=result.iterations,
            unconverged=result.unconverged,
        )

    def fit_transform(self, matrix, n_components: int = 2) -> Matrix:
        data = matrix if isinstance(matrix, Matrix) else Matrix(matrix)
        return self.fit(data).transform(data, n_components=n_components)


def _covariance(data: Matrix):
    """
    Population covariance of the columns of `data`.

    (1/m) J A is formed as (1/m) 1 (1^T A), so the m x m all-ones
    matrix is never materialised.
    """
    m, n = data.size()
    column_sums = Matrix.ones(1, m).multiply(data)
    mean_rows = Matrix.ones(m, 1).multiply(column_sums).scale(1.0 / m)

    deviation = data.subtract(mean_rows)
    covariance = deviation.transpose().multiply(deviation).scale(1.0 / m)
    return covariance, column_sums.row(0) / m
