"""
svd.py - Singular Value Decomposition by Power Iteration and Deflation
======================================================================

A = U @ Sigma @ VT with k = min(m, n) components.

Each component is found by power iteration on A.T @ A, which yields the
dominant right singular vector v and sigma^2. The left vector follows as
u = A v / sigma, and the component is removed before the next pass:

    A <- A - sigma * u @ v.T

Because deflation always strips the currently-largest component, singular
values come out in descending order.

Known limitation: when sigma falls at or below the tolerance (rank-deficient
input) the corresponding column of U is the unit vector e_i, not an
orthonormal completion of the previous columns. A warning is logged.
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np
from loguru import logger

from .exceptions import InvalidValueError, NotFittedError
from .matrix import Matrix
from .types import (
    DEFAULT_RANK_THRESHOLD,
    DEFAULT_SVD_MAX_ITERATIONS,
    DEFAULT_SVD_TOLERANCE,
)

# Singular values at or below this floor are ignored by condition_number().
NEGLIGIBLE_SINGULAR_VALUE = 1e-12


class SVD:
    """
    Iterative SVD engine.

    Parameters
    ----------
    rng : np.random.Generator, optional
        Source of the power-iteration seed vectors. Pass a seeded generator
        for reproducible factors.

    Examples
    --------
    >>> svd = SVD(rng=np.random.default_rng(0))
    >>> svd.decompose(Matrix([[3, 0], [0, 2], [0, 0]]))
    >>> [round(s, 6) for s in svd.get_singular_values()]
    [3.0, 2.0]
    >>> svd.reconstruct(k=1).equals(Matrix([[3, 0], [0, 0], [0, 0]]), epsilon=1e-6)
    True
    """

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self._rng = rng if rng is not None else np.random.default_rng()
        self._U: Optional[Matrix] = None
        self._Sigma: Optional[Matrix] = None
        self._VT: Optional[Matrix] = None

    def decompose(
        self,
        A: Matrix,
        max_iterations: int = DEFAULT_SVD_MAX_ITERATIONS,
        tolerance: float = DEFAULT_SVD_TOLERANCE,
    ) -> None:
        """
        Compute the SVD of `A`.

        Parameters
        ----------
        A : Matrix
            Input matrix (m x n). Not modified.
        max_iterations : int, default=100
            Power-iteration cap per component.
        tolerance : float, default=1e-10
            Power-iteration convergence threshold, also the floor below which
            a singular value is treated as zero.
        """
        m, n = A.shape
        k = min(m, n)
        logger.info(f"Starting SVD Decomposition: {m}x{n}, k={k}")

        U = np.zeros((m, k))
        sigma_diag = np.zeros(k)
        VT = np.zeros((k, n))

        residual = A
        for i in range(k):
            gram = residual.transpose().multiply(residual)
            pair = gram.power_iteration(max_iterations, tolerance, rng=self._rng)

            sigma = float(np.sqrt(max(0.0, pair.eigenvalue)))
            v = pair.eigenvector
            sigma_diag[i] = sigma
            VT[i, :] = v.to_numpy()[:, 0]

            if sigma > tolerance:
                u = residual.multiply(v).divide_scalar(sigma)
                U[:, i] = u.to_numpy()[:, 0]
                deflation = u.multiply(v.transpose()).multiply_scalar(sigma)
                residual = residual.subtract(deflation)
            else:
                logger.warning(
                    f"Singular value {i} is {sigma:.3g} <= tolerance {tolerance:g}; "
                    f"using unit vector e_{i} as the left singular vector"
                )
                U[i, i] = 1.0

        self._U = Matrix(U)
        self._Sigma = Matrix(np.diag(sigma_diag))
        self._VT = Matrix(VT)

        logger.success(
            f"SVD Complete. Singular values: "
            f"{', '.join(f'{s:.4g}' for s in sigma_diag)}"
        )

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_U(self) -> Matrix:
        """Left singular vectors (m x k)."""
        self._require_fitted()
        return self._U.clone()

    def get_Sigma(self) -> Matrix:
        """Singular values as a diagonal matrix (k x k)."""
        self._require_fitted()
        return self._Sigma.clone()

    def get_VT(self) -> Matrix:
        """Right singular vectors as rows (k x n)."""
        self._require_fitted()
        return self._VT.clone()

    def get_V(self) -> Matrix:
        """Right singular vectors as columns (n x k)."""
        self._require_fitted()
        return self._VT.transpose()

    def get_singular_values(self) -> List[float]:
        self._require_fitted()
        return np.diag(self._Sigma.to_numpy()).tolist()

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    def condition_number(self) -> float:
        """
        Ratio of the largest to the smallest non-negligible singular value.

        Returns ``inf`` if every singular value is negligible (<= 1e-12).
        """
        values = [s for s in self.get_singular_values() if s > NEGLIGIBLE_SINGULAR_VALUE]
        if not values:
            return float("inf")
        return max(values) / min(values)

    def numerical_rank(self, threshold: float = DEFAULT_RANK_THRESHOLD) -> int:
        """Number of singular values strictly above `threshold`."""
        return sum(1 for s in self.get_singular_values() if s > threshold)

    def reconstruct(self, k: Optional[int] = None) -> Matrix:
        """
        Low-rank approximation U_k @ Sigma_k @ VT_k.

        Parameters
        ----------
        k : int, optional
            Number of leading components to keep. Defaults to all.

        Raises
        ------
        InvalidValueError
            If k is outside [1, min(m, n)].
        """
        self._require_fitted()
        full = self._Sigma.rows
        if k is None:
            k = full
        if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or not 1 <= k <= full:
            raise InvalidValueError(f"k must be in range [1, {full}], got k={k}")

        U_k = Matrix(self._U.to_numpy()[:, :k])
        Sigma_k = Matrix(self._Sigma.to_numpy()[:k, :k])
        VT_k = Matrix(self._VT.to_numpy()[:k, :])
        return U_k.multiply(Sigma_k).multiply(VT_k)

    def _require_fitted(self) -> None:
        if self._Sigma is None:
            raise NotFittedError("SVD decomposition not performed yet")


__all__ = ["SVD", "NEGLIGIBLE_SINGULAR_VALUE"]
