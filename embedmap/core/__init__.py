"""
embedmap Core
=============

Numerical engines. Matrices in, matrices out, no file I/O.

Structure:
    matrix.py   - Matrix primitive (dense float64, numpy-backed)
    svd.py      - Golub-Kahan-Reinsch SVD with explicit convergence status
    pca.py      - Full-batch PCA over the covariance matrix
"""

from .matrix import Matrix
from .svd import svd, SVDResult, SVDStatus, MACHINE_EPS, DEFAULT_QR_ITERS
from .pca import PCAEngine, PCAResult

__all__ = [
    'Matrix',
    'svd',
    'SVDResult',
    'SVDStatus',
    'MACHINE_EPS',
    'DEFAULT_QR_ITERS',
    'PCAEngine',
    'PCAResult',
]
