"""
qr.py - QR Factorization via Householder Reflections
====================================================

Factorizes an (m, n) matrix as A = Q @ R with k = min(m, n):

    Q : (m, k) with orthonormal columns
    R : (k, n) upper triangular

Column j (j < k) is processed by a Householder reflection

    H_j = I - beta_j * v_j @ v_j.T

chosen so that H_j zeroes everything below the diagonal of the working R.
Q is obtained by applying the stored reflections, last to first, to the
(m, k) truncated identity, i.e. Q = H_0 @ H_1 @ ... @ H_{k-1} @ I[:, :k].

References:
- Golub & Van Loan: "Matrix Computations" (4th ed.), §5.1-5.2
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np
from loguru import logger

from .exceptions import (
    InvalidShapeError,
    NotFittedError,
    NotSquareError,
    ShapeMismatchError,
    SingularMatrixError,
)
from .matrix import Matrix
from .types import DEFAULT_RANK_THRESHOLD, QRFactors


class QR:
    """
    Householder QR factorizer.

    Examples
    --------
    >>> A = Matrix([[2, 1], [1, 2]])
    >>> b = Matrix([[3], [3]])
    >>> qr = QR()
    >>> qr.decompose(A)
    >>> qr.solve(b).equals(Matrix([[1], [1]]), epsilon=1e-12)
    True
    >>> x = QR.solve_system(A, b)  # one-shot convenience wrapper
    """

    def __init__(self):
        self._Q: Optional[np.ndarray] = None
        self._R: Optional[np.ndarray] = None
        self._input_shape: Optional[Tuple[int, int]] = None
        self._reflections = 0

    # =========================================================================
    # FACTORIZATION
    # =========================================================================

    def decompose(self, A: Matrix) -> None:
        """
        Compute the thin QR factorization of `A`.

        Parameters
        ----------
        A : Matrix
            Input matrix (m x n), any shape.
        """
        m, n = A.shape
        k = min(m, n)
        logger.info(f"Starting QR Decomposition: {m}x{n}, k={k}")

        R = A.to_numpy()
        reflectors: List[Tuple[int, np.ndarray, float]] = []

        for j in range(k):
            column = R[j:, j]
            if column.size <= 1:
                continue

            v, beta = _householder_vector(column)
            if beta == 0.0:
                logger.debug(f"Column {j} already reduced, no reflection needed")
                continue

            _apply_householder(R, v, beta, j, j)
            # Entries below the diagonal are zero up to rounding.
            R[j + 1:, j] = 0.0
            reflectors.append((j, v, beta))

        Q = np.eye(m, k)
        for j, v, beta in reversed(reflectors):
            _apply_householder(Q, v, beta, j, 0)

        self._Q = Q
        self._R = R[:k, :].copy()
        self._input_shape = (m, n)
        self._reflections = len(reflectors)

        logger.success(
            f"QR Complete. {len(reflectors)} reflections, rank={self.rank()}"
        )

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_Q(self) -> Matrix:
        """Orthonormal factor Q (m x k)."""
        self._require_fitted()
        return Matrix(self._Q)

    def get_R(self) -> Matrix:
        """Upper-triangular factor R (k x n)."""
        self._require_fitted()
        return Matrix(self._R)

    # =========================================================================
    # DERIVED QUANTITIES
    # =========================================================================

    def solve(self, b: Matrix) -> Matrix:
        """
        Solve A @ x = b via R @ x = Q.T @ b and back substitution.

        For tall A (m > n) this is the least-squares solution. Near-zero
        diagonal entries of R are not detected here; check `rank()` first
        when the system may be rank deficient.

        Parameters
        ----------
        b : Matrix
            Right-hand side with m rows (any number of columns).

        Returns
        -------
        Matrix
            Solution x with shape (n, b.cols).

        Raises
        ------
        ShapeMismatchError
            If b.rows != m.
        InvalidShapeError
            If the system is underdetermined (n > m).
        SingularMatrixError
            If R has an exactly-zero diagonal entry.
        """
        self._require_fitted()
        m, n = self._input_shape
        if b.rows != m:
            raise ShapeMismatchError(
                f"Right-hand side has {b.rows} rows, expected {m}",
                expected=(m, b.cols),
                actual=b.shape,
            )
        if n > m:
            raise InvalidShapeError(
                f"Cannot solve an underdetermined system ({m} equations, {n} unknowns)"
            )

        qtb = self._Q.T @ b.to_numpy()
        return Matrix(_back_substitution(self._R, qtb))

    def determinant(self) -> float:
        """
        Determinant of the factorized (square) matrix.

        Product of R's diagonal, multiplied by (-1) per Householder reflection
        applied, since each reflection has determinant -1.
        """
        self._require_fitted()
        m, n = self._input_shape
        if m != n:
            raise NotSquareError("Determinant", self._input_shape)
        sign = -1.0 if self._reflections % 2 else 1.0
        return float(sign * np.prod(np.diag(self._R)))

    def rank(self, threshold: float = DEFAULT_RANK_THRESHOLD) -> int:
        """Number of diagonal entries of R with magnitude above `threshold`."""
        self._require_fitted()
        return int(np.count_nonzero(np.abs(np.diag(self._R)) > threshold))

    def _require_fitted(self) -> None:
        if self._R is None:
            raise NotFittedError("QR decomposition not performed yet")

    # =========================================================================
    # CONVENIENCE WRAPPERS
    # =========================================================================

    @staticmethod
    def factorize(A: Matrix) -> QRFactors:
        """One-shot factorization returning (Q, R)."""
        qr = QR()
        qr.decompose(A)
        return QRFactors(Q=qr.get_Q(), R=qr.get_R())

    @staticmethod
    def solve_system(A: Matrix, b: Matrix) -> Matrix:
        """One-shot solve of A @ x = b."""
        qr = QR()
        qr.decompose(A)
        return qr.solve(b)


# =============================================================================
# HELPER: HOUSEHOLDER KERNELS
# =============================================================================

def _householder_vector(x: np.ndarray) -> Tuple[np.ndarray, float]:
    """
    Householder vector v and beta with (I - beta v v^T) x = -sign(x0) ||x|| e1.

    beta is 0 when x is already a multiple of e1.
    """
    sigma = float(x[1:] @ x[1:])
    if sigma == 0.0:
        return np.zeros_like(x), 0.0

    x0 = float(x[0])
    norm_x = np.sqrt(x0 * x0 + sigma)
    v = x.astype(np.float64, copy=True)
    # Adding the sign of x0 avoids cancellation.
    v[0] = x0 + norm_x if x0 >= 0 else x0 - norm_x
    beta = 2.0 / float(v @ v)
    return v, beta


def _apply_householder(
    M: np.ndarray,
    v: np.ndarray,
    beta: float,
    start_row: int,
    start_col: int,
) -> None:
    """In place: M[start_row:, start_col:] = H @ M[start_row:, start_col:]."""
    block = M[start_row:, start_col:]
    w = beta * (v @ block)
    block -= np.outer(v, w)


def _back_substitution(R: np.ndarray, b: np.ndarray) -> np.ndarray:
    n = R.shape[1]
    x = np.zeros((n, b.shape[1]))
    for i in range(n - 1, -1, -1):
        pivot = R[i, i]
        if pivot == 0.0:
            raise SingularMatrixError(
                f"R has a zero diagonal entry at index {i}; the system is singular",
                pivot_index=i,
            )
        x[i, :] = (b[i, :] - R[i, i + 1:] @ x[i + 1:, :]) / pivot
    return x


__all__ = ["QR"]
