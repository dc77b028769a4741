"""
Matrix Primitive.

Dense 2-D float64 matrix used for batches of embeddings (rows = items)
and as SVD working storage. Backed by a numpy array.

Every operation except set() returns a new Matrix.
"""

from numbers import Real
from typing import Any, List, Sequence, Tuple, Union

import numpy as np

from embedmap.validation.errors import DimensionMismatch, ValidationError


class Matrix:
    """
    Dense m x n real-valued matrix.

    Args:
        values: Nested sequences or a 2-D ndarray. Copied on construction.
    """

    __slots__ = ('_data',)

    def __init__(self, values: Union['Matrix', np.ndarray, Sequence[Sequence[float]]]):
        if isinstance(values, Matrix):
            data = values._data.copy()
        else:
            try:
                data = np.array(values, dtype=np.float64)
            except (TypeError, ValueError) as e:
                raise ValidationError(f"Cannot build matrix from input: {e}") from e

        if data.ndim != 2:
            raise ValidationError(
                f"Matrix must have exactly 2 dimensions, got shape {data.shape}"
            )
        self._data = data

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def zeros(cls, rows: int, cols: int) -> 'Matrix':
        return cls(np.zeros((rows, cols)))

    @classmethod
    def ones(cls, rows: int, cols: int) -> 'Matrix':
        return cls(np.ones((rows, cols)))

    @classmethod
    def identity(cls, n: int) -> 'Matrix':
        return cls(np.eye(n))

    # ------------------------------------------------------------------
    # Shape and element access
    # ------------------------------------------------------------------

    def size(self) -> Tuple[int, int]:
        """Return (rows, cols)."""
        return self._data.shape

    @property
    def shape(self) -> Tuple[int, int]:
        return self._data.shape

    @property
    def rows(self) -> int:
        return self._data.shape[0]

    @property
    def cols(self) -> int:
        return self._data.shape[1]

    @property
    def values(self) -> np.ndarray:
        """Backing array. Writes through to this matrix."""
        return self._data

    def _check_index(self, row: int, col: int) -> None:
        m, n = self._data.shape
        if not (0 <= row < m and 0 <= col < n):
            raise IndexError(
                f"Index ({row}, {col}) out of bounds for matrix of size ({m}, {n})"
            )

    def get(self, row: int, col: int) -> float:
        self._check_index(row, col)
        return float(self._data[row, col])

    def set(self, row: int, col: int, value: float) -> None:
        self._check_index(row, col)
        self._data[row, col] = value

    def row(self, i: int) -> np.ndarray:
        if not 0 <= i < self.rows:
            raise IndexError(f"Row {i} out of bounds for matrix with {self.rows} rows")
        return self._data[i, :].copy()

    def column(self, j: int) -> np.ndarray:
        if not 0 <= j < self.cols:
            raise IndexError(f"Column {j} out of bounds for matrix with {self.cols} columns")
        return self._data[:, j].copy()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def clone(self) -> 'Matrix':
        return Matrix(self._data.copy())

    def transpose(self) -> 'Matrix':
        return Matrix(self._data.T.copy())

    @property
    def T(self) -> 'Matrix':
        return self.transpose()

    def multiply(self, other: Union['Matrix', Real]) -> 'Matrix':
        """
        Matrix product with another Matrix, or scalar multiply with a number.

        Raises:
            DimensionMismatch: If inner dimensions differ
        """
        if isinstance(other, Real):
            return self.scale(other)

        other = _as_matrix(other)
        if self.cols != other.rows:
            raise DimensionMismatch(
                f"Cannot multiply {self.shape} by {other.shape}: "
                f"inner dimensions {self.cols} != {other.rows}",
                expected=self.cols,
                actual=other.rows,
            )
        return Matrix(self._data @ other._data)

    def subtract(self, other: 'Matrix') -> 'Matrix':
        """
        Element-wise difference.

        Raises:
            DimensionMismatch: If shapes differ
        """
        other = _as_matrix(other)
        if self.shape != other.shape:
            raise DimensionMismatch(
                f"Cannot subtract {other.shape} from {self.shape}",
                expected=self.shape,
                actual=other.shape,
            )
        return Matrix(self._data - other._data)

    def scale(self, k: float) -> 'Matrix':
        return Matrix(self._data * float(k))

    def submatrix(self, row_start: int, row_end: int, col_start: int, col_end: int) -> 'Matrix':
        """
        Copy of rows [row_start, row_end) and columns [col_start, col_end).

        Raises:
            IndexError: If either range falls outside the matrix
        """
        m, n = self.shape
        if not (0 <= row_start <= row_end <= m):
            raise IndexError(f"Row range [{row_start}, {row_end}) out of bounds for {m} rows")
        if not (0 <= col_start <= col_end <= n):
            raise IndexError(f"Column range [{col_start}, {col_end}) out of bounds for {n} columns")
        return Matrix(self._data[row_start:row_end, col_start:col_end].copy())

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def to_list(self) -> List[List[float]]:
        return self._data.tolist()

    def to_numpy(self) -> np.ndarray:
        return self._data.copy()

    def allclose(self, other: Any, atol: float = 1e-8) -> bool:
        other = _as_matrix(other)
        return self.shape == other.shape and bool(np.allclose(self._data, other._data, atol=atol))

    # ------------------------------------------------------------------
    # Operators
    # ------------------------------------------------------------------

    def __matmul__(self, other):
        return self.multiply(_as_matrix(other))

    def __mul__(self, other):
        if isinstance(other, Real):
            return self.scale(other)
        return NotImplemented

    __rmul__ = __mul__

    def __sub__(self, other):
        return self.subtract(other)

    def __neg__(self):
        return self.scale(-1.0)

    def __eq__(self, other):
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self._data, other._data))

    __hash__ = None

    def __array__(self, dtype=None, copy=None):
        return self._data if dtype is None else self._data.astype(dtype)

    def __repr__(self) -> str:
        return f"Matrix({self.to_list()!r})"


def _as_matrix(value: Any) -> Matrix:
    return value if isinstance(value, Matrix) else Matrix(value)
