"""
Singular Value Decomposition Engine.

Golub-Kahan-Reinsch SVD, after "Singular Value Decomposition and Least
Squares Solutions" (G.H. Golub, C. Reinsch, Handbook for Automatic
Computation, Vol. II).

Two phases:
    1. Householder reduction of A (m x n, m >= n) to bidiagonal form,
       diagonal in q, superdiagonal in e.
    2. Implicit-shift QR iteration on the bidiagonal form until every
       superdiagonal entry is negligible against eps * ||B||.

A = U diag(q) V^T

Singular values come out in the order diagonalization converges them,
which is NOT guaranteed to be descending. Use SVDResult.sorted() (or
svd(..., sort=True)) when ranked order matters.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np

from embedmap.core.matrix import Matrix
from embedmap.validation.errors import (
    NumericalNonConvergence,
    PreconditionError,
    ValidationError,
)


logger = logging.getLogger(__name__)


MACHINE_EPS = 2.0 ** -52
DEFAULT_QR_ITERS = 10


class SVDStatus(str, Enum):
    """Outcome of the diagonalization phase."""
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"


@dataclass
class SVDResult:
    """
    Output of svd().

    Attributes:
        q: Singular values (length n), in convergence order
        u: m x n matrix with orthonormal columns, or None if not requested
        v: n x n orthogonal matrix, or None if not requested
        status: CONVERGED, or MAX_ITERATIONS_REACHED if any value hit the cap
        iterations: Total QR sweeps performed
        unconverged: Indices of singular values that hit the iteration cap
    """
    q: np.ndarray
    u: Optional[Matrix] = None
    v: Optional[Matrix] = None
    status: SVDStatus = SVDStatus.CONVERGED
    iterations: int = 0
    unconverged: List[int] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.status == SVDStatus.CONVERGED

    def raise_for_status(self) -> 'SVDResult':
        """Raise NumericalNonConvergence if the iteration cap was hit."""
        if not self.converged:
            raise NumericalNonConvergence(self.iterations, self.unconverged)
        return self

    def sorted(self) -> 'SVDResult':
        """
        Copy with q descending and U/V columns permuted to match.

        Ties keep their convergence order.
        """
        order = np.argsort(-self.q, kind='stable')
        position = {int(old): new for new, old in enumerate(order)}
        return SVDResult(
            q=self.q[order].copy(),
            u=Matrix(self.u.values[:, order]) if self.u is not None else None,
            v=Matrix(self.v.values[:, order]) if self.v is not None else None,
            status=self.status,
            iterations=self.iterations,
            unconverged=sorted(position[k] for k in self.unconverged),
        )

    def reconstruct(self) -> Matrix:
        """Return U diag(q) V^T."""
        if self.u is None or self.v is None:
            raise ValidationError("Reconstruction requires both U and V")
        return Matrix((self.u.values * self.q) @ self.v.values.T)


def svd(
    a,
    with_u: bool = True,
    with_v: bool = True,
    eps: float = MACHINE_EPS,
    tol: Optional[float] = None,
    qr_iters: int = DEFAULT_QR_ITERS,
    sort: bool = False,
) -> SVDResult:
    """
    Compute the singular values and complete orthogonal decomposition of A.

    Args:
        a: Matrix (or nested sequences / ndarray) with m rows and n columns, m >= n
        with_u: Accumulate the left transformations into U
        with_v: Accumulate the right transformations into V
        eps: Convergence threshold, relative to the largest bidiagonal row norm
        tol: Smallest column norm treated as non-zero during reduction.
             Defaults to 1e-64 / eps.
        qr_iters: QR sweeps allowed per singular value before giving up on it
        sort: Return singular values in descending order

    Returns:
        SVDResult with q, u, v and convergence status

    Raises:
        PreconditionError: If m < n
        ValidationError: If eps or qr_iters are out of range
    """
    a = a if isinstance(a, Matrix) else Matrix(a)
    m, n = a.size()
    if m < n:
        raise PreconditionError(m, n)
    if eps <= 0:
        raise ValidationError(f"eps must be positive, got {eps}")
    if qr_iters < 1:
        raise ValidationError(f"qr_iters must be at least 1, got {qr_iters}")
    if tol is None:
        tol = 1e-64 / eps

    # u doubles as working storage for the Householder vectors
    u = a.to_numpy()
    q = np.zeros(n)
    e = np.zeros(n)
    v = np.zeros((n, n)) if with_v else None

    x = _bidiagonalize(u, q, e, tol)
    if with_v:
        _accumulate_right(u, e, v)
    if with_u:
        _accumulate_left(u, q)

    iterations, unconverged = _diagonalize(
        q, e,
        u if with_u else None,
        v,
        eps * x,
        qr_iters,
    )

    status = SVDStatus.CONVERGED if not unconverged else SVDStatus.MAX_ITERATIONS_REACHED
    logger.debug(
        f"SVD of {m}x{n} matrix: {iterations} QR sweeps, status={status.value}"
    )

    result = SVDResult(
        q=q,
        u=Matrix(u) if with_u else None,
        v=Matrix(v) if with_v else None,
        status=status,
        iterations=iterations,
        unconverged=sorted(unconverged),
    )
    return result.sorted() if sort else result


# =============================================================================
# Phase 1: Householder reduction
# =============================================================================

def _bidiagonalize(u: np.ndarray, q: np.ndarray, e: np.ndarray, tol: float) -> float:
    """
    Reduce u in place to bidiagonal form.

    Returns the largest |q[i]| + |e[i]|, used to scale eps.

    Each Householder vector is divided by the sum of its absolute values
    before its squared norm is taken, so entries near the float range
    limits do not overflow. A vector whose unscaled squared norm is at
    most `tol` is treated as zero.
    """
    m, n = u.shape
    g = 0.0
    x = 0.0

    for i in range(n):
        e[i] = g
        l = i + 1

        # Left reflection: zero column i below the diagonal
        g = 0.0
        scale = float(np.abs(u[i:, i]).sum())
        if scale > 0.0:
            u[i:, i] /= scale
            s = float(u[i:, i] @ u[i:, i])
            if s > tol / scale / scale:
                f = u[i, i]
                g = math.sqrt(s) if f < 0.0 else -math.sqrt(s)
                h = f * g - s
                u[i, i] = f - g
                if l < n:
                    dots = u[i:, i] @ u[i:, l:]
                    u[i:, l:] += np.outer(u[i:, i], dots / h)
            u[i:, i] *= scale
        q[i] = scale * g

        # Right reflection: zero row i right of the superdiagonal
        g = 0.0
        scale = float(np.abs(u[i, l:]).sum()) if l < n else 0.0
        if scale > 0.0:
            u[i, l:] /= scale
            s = float(u[i, l:] @ u[i, l:])
            if s > tol / scale / scale:
                f = u[i, l]
                g = math.sqrt(s) if f < 0.0 else -math.sqrt(s)
                h = f * g - s
                u[i, l] = f - g
                e[l:] = u[i, l:] / h
                if l < m:
                    dots = u[l:, l:] @ u[i, l:]
                    u[l:, l:] += np.outer(dots, e[l:])
            u[i, l:] *= scale
            g *= scale

        x = max(x, abs(q[i]) + abs(e[i]))

    return x


def _accumulate_right(u: np.ndarray, e: np.ndarray, v: np.ndarray) -> None:
    """Build V from the right Householder vectors stored in the rows of u."""
    n = v.shape[0]
    g = 0.0
    l = n
    for i in range(n - 1, -1, -1):
        if g != 0.0:
            # divide twice; the product g * u[i, l] can overflow
            v[l:, i] = (u[i, l:] / u[i, l]) / g
            dots = u[i, l:] @ v[l:, l:]
            v[l:, l:] += np.outer(v[l:, i], dots)
        v[i, l:] = 0.0
        v[l:, i] = 0.0
        v[i, i] = 1.0
        g = e[i]
        l = i


def _accumulate_left(u: np.ndarray, q: np.ndarray) -> None:
    """Overwrite u with U from the left Householder vectors stored in its columns."""
    m, n = u.shape
    for i in range(n - 1, -1, -1):
        l = i + 1
        g = q[i]
        u[i, l:] = 0.0
        if g != 0.0:
            if l < n:
                dots = (u[l:, i] @ u[l:, l:]) / u[i, i] / g
                u[i:, l:] += np.outer(u[i:, i], dots)
            u[i:, i] /= g
        else:
            u[i:, i] = 0.0
        u[i, i] += 1.0


# =============================================================================
# Phase 2: QR diagonalization
# =============================================================================

def _diagonalize(
    q: np.ndarray,
    e: np.ndarray,
    u: Optional[np.ndarray],
    v: Optional[np.ndarray],
    eps: float,
    qr_iters: int,
) -> Tuple[int, List[int]]:
    """
    Diagonalize the bidiagonal form (q, e) in place.

    Returns (total QR sweeps, indices that hit the iteration cap).
    """
    n = len(q)
    iterations = 0
    unconverged = []

    for k in range(n - 1, -1, -1):
        sweeps = 0
        while True:
            l, clean_split = _find_split(q, e, k, eps)
            if not clean_split:
                _cancel(q, e, u, l, k, eps)

            z = q[k]
            if l == k:
                # q[k] is made non-negative
                if z < 0.0:
                    q[k] = -z
                    if v is not None:
                        v[:, k] = -v[:, k]
                break

            if sweeps >= qr_iters:
                unconverged.append(k)
                logger.warning(
                    f"SVD iteration cap reached for singular value {k} "
                    f"after {sweeps} QR sweeps (|e[k]| = {abs(e[k]):.3e})"
                )
                break

            _qr_sweep(q, e, u, v, l, k, z)
            sweeps += 1

        iterations += sweeps

    return iterations, unconverged


def _find_split(q: np.ndarray, e: np.ndarray, k: int, eps: float) -> Tuple[int, bool]:
    """
    Scan e[k], e[k-1], ... for a negligible superdiagonal entry.

    Returns (l, True) when e[l] is negligible, or (l, False) when q[l-1]
    is negligible first and e[l] must be cancelled.
    """
    for l in range(k, -1, -1):
        # e[0] is always zero
        if l == 0 or abs(e[l]) <= eps:
            return l, True
        if abs(q[l - 1]) <= eps:
            return l, False
    return 0, True


def _cancel(
    q: np.ndarray,
    e: np.ndarray,
    u: Optional[np.ndarray],
    l: int,
    k: int,
    eps: float,
) -> None:
    """Chase e[l] out of the matrix with Givens rotations against row l-1."""
    c = 0.0
    s = 1.0
    l1 = l - 1
    for i in range(l, k + 1):
        f = s * e[i]
        e[i] = c * e[i]
        if abs(f) <= eps:
            break
        g = q[i]
        h = math.hypot(f, g)
        q[i] = h
        c = g / h
        s = -f / h
        if u is not None:
            _rotate(u, l1, i, c, s)


def _qr_sweep(
    q: np.ndarray,
    e: np.ndarray,
    u: Optional[np.ndarray],
    v: Optional[np.ndarray],
    l: int,
    k: int,
    z: float,
) -> None:
    """One implicit-shift QR transformation on rows/columns l..k."""
    # Shift from the bottom 2x2 minor
    x = q[l]
    y = q[k - 1]
    g = e[k - 1]
    h = e[k]
    f = ((y - z) * (y + z) + (g - h) * (g + h)) / (2.0 * h * y)
    g = math.hypot(f, 1.0)
    f = ((x - z) * (x + z) + h * (y / (f - g if f < 0.0 else f + g) - h)) / x

    c = 1.0
    s = 1.0
    for i in range(l + 1, k + 1):
        g = e[i]
        y = q[i]
        h = s * g
        g = c * g
        z = math.hypot(f, h)
        e[i - 1] = z
        c = f / z
        s = h / z
        f = x * c + g * s
        g = -x * s + g * c
        h = y * s
        y = y * c
        if v is not None:
            _rotate(v, i - 1, i, c, s)

        z = math.hypot(f, h)
        q[i - 1] = z
        # Rotation is arbitrary when z is zero
        if z != 0.0:
            c = f / z
            s = h / z
        f = c * g + s * y
        x = -s * g + c * y
        if u is not None:
            _rotate(u, i - 1, i, c, s)

    e[l] = 0.0
    e[k] = f
    q[k] = x


def _rotate(mat: np.ndarray, a: int, b: int, c: float, s: float) -> None:
    """Apply a Givens rotation to columns a and b of mat in place."""
    y = mat[:, a].copy()
    z = mat[:, b].copy()
    mat[:, a] = y * c + z * s
    mat[:, b] = -y * s + z * c
