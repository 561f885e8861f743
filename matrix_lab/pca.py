"""
pca.py - Principal Component Analysis by Deflated Power Iteration
=================================================================

Fitting pipeline:

    1. mean      = column means of X                      (1, f)
    2. X_c       = X - mean
    3. C         = X_c.T @ X_c / (n - 1)                  (f, f)
    4. repeat f times: (lambda, v) = power_iteration(C); C <- C - lambda v v.T
    5. sort eigenpairs by descending eigenvalue, keep the first k

explained_variance_ratio divides by the sum of the *full* spectrum, so the
ratios of a truncated fit sum to less than one.

Later eigenpairs come from an increasingly deflated matrix and pick up
rounding error. This is fine for small, well-conditioned covariance
matrices; a dedicated symmetric eigensolver is the better tool for many
features.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np
from loguru import logger

from .exceptions import (
    FeatureMismatchError,
    InsufficientSamplesError,
    InvalidValueError,
    NotFittedError,
)
from .matrix import Matrix


class PCA:
    """
    Principal Component Analysis.

    Parameters
    ----------
    rng : np.random.Generator, optional
        Source of the power-iteration seed vectors.

    Attributes are exposed through getters that return copies.

    Examples
    --------
    >>> X = Matrix([[1, 2], [2, 4], [3, 6], [4, 8], [5, 10]])
    >>> pca = PCA(rng=np.random.default_rng(42))
    >>> scores = pca.fit_transform(X, n_components=1)
    >>> round(pca.get_explained_variance_ratio()[0], 6)
    1.0
    """

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self._rng = rng if rng is not None else np.random.default_rng()
        self._mean: Optional[Matrix] = None
        self._components: Optional[Matrix] = None
        self._explained_variance: List[float] = []
        self._explained_variance_ratio: List[float] = []

    def fit(self, X: Matrix, n_components: Optional[int] = None) -> "PCA":
        """
        Fit the principal axes of `X`.

        Parameters
        ----------
        X : Matrix
            Data matrix (n_samples x n_features).
        n_components : int, optional
            Number of components to keep. Defaults to n_features.

        Returns
        -------
        PCA
            Self, for chaining.

        Raises
        ------
        InsufficientSamplesError
            If n_samples < n_features.
        InvalidValueError
            If n_components is outside [1, n_features].
        """
        n, f = X.shape
        if n < f:
            raise InsufficientSamplesError(
                f"Number of samples ({n}) should be at least the number of features ({f}) for PCA"
            )
        if n_components is None:
            n_components = f
        if isinstance(n_components, bool) or not isinstance(n_components, (int, np.integer)) \
                or not 1 <= n_components <= f:
            raise InvalidValueError(
                f"n_components must be in range [1, {f}], got {n_components}"
            )

        logger.info(f"Starting PCA: {n} samples, {f} features, k={n_components}")

        mean = _column_mean(X)
        centered = _center(X, mean)
        covariance = _covariance(centered)

        eigenvalues, eigenvectors = self._eigen_decomposition(covariance)

        order = sorted(range(len(eigenvalues)), key=lambda i: eigenvalues[i], reverse=True)
        sorted_values = [eigenvalues[i] for i in order]
        # rows of `components` are eigenvectors
        sorted_vectors = np.array([eigenvectors[i] for i in order])

        total_variance = sum(sorted_values)
        self._explained_variance = sorted_values[:n_components]
        if total_variance == 0:
            logger.warning("Total variance is zero; explained variance ratios set to 0")
            self._explained_variance_ratio = [0.0] * n_components
        else:
            self._explained_variance_ratio = [
                value / total_variance for value in self._explained_variance
            ]

        self._mean = mean
        self._components = Matrix(sorted_vectors[:n_components, :])

        logger.success(
            f"PCA Complete. Explained Variance: {sum(self._explained_variance_ratio):.2%}"
        )
        return self

    def transform(self, X: Matrix) -> Matrix:
        """
        Project `X` onto the fitted components.

        Raises
        ------
        NotFittedError
            If called before `fit`.
        FeatureMismatchError
            If X has a different number of columns than the fitted data.
        """
        if self._components is None or self._mean is None:
            raise NotFittedError("PCA must be fitted before transform")
        if X.cols != self._mean.cols:
            raise FeatureMismatchError(
                f"Input data has {X.cols} features, expected {self._mean.cols}",
                expected=(X.rows, self._mean.cols),
                actual=X.shape,
            )
        return _center(X, self._mean).multiply(self._components.transpose())

    def fit_transform(self, X: Matrix, n_components: Optional[int] = None) -> Matrix:
        self.fit(X, n_components)
        return self.transform(X)

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_components(self) -> Matrix:
        """Principal axes as rows (k x f), by descending eigenvalue."""
        if self._components is None:
            raise NotFittedError("PCA must be fitted first")
        return self._components.clone()

    def get_mean(self) -> Matrix:
        """Column means of the training data (1 x f)."""
        if self._mean is None:
            raise NotFittedError("PCA must be fitted first")
        return self._mean.clone()

    def get_explained_variance(self) -> List[float]:
        return list(self._explained_variance)

    def get_explained_variance_ratio(self) -> List[float]:
        return list(self._explained_variance_ratio)

    # =========================================================================
    # HELPER: EIGEN-DECOMPOSITION
    # =========================================================================

    def _eigen_decomposition(self, covariance: Matrix) -> Tuple[List[float], List[np.ndarray]]:
        """All eigenpairs of a symmetric matrix by power iteration + deflation."""
        size = covariance.rows
        eigenvalues: List[float] = []
        eigenvectors: List[np.ndarray] = []

        deflated = covariance
        for i in range(size):
            pair = deflated.power_iteration(rng=self._rng)
            eigenvalues.append(pair.eigenvalue)
            eigenvectors.append(pair.eigenvector.to_numpy()[:, 0])

            if i < size - 1:
                v = pair.eigenvector
                deflated = deflated.subtract(
                    v.multiply(v.transpose()).multiply_scalar(pair.eigenvalue)
                )

        logger.debug(f"Eigenvalues (unsorted): {', '.join(f'{x:.4g}' for x in eigenvalues)}")
        return eigenvalues, eigenvectors


# =============================================================================
# HELPERS
# =============================================================================

def _column_mean(X: Matrix) -> Matrix:
    return Matrix(X.to_numpy().mean(axis=0, keepdims=True))


def _center(X: Matrix, mean: Matrix) -> Matrix:
    return Matrix(X.to_numpy() - mean.to_numpy())


def _covariance(centered: Matrix) -> Matrix:
    n = centered.rows
    # A single sample has no spread; avoid dividing by zero.
    scale = n - 1 if n > 1 else 1
    return centered.transpose().multiply(centered).divide_scalar(scale)


__all__ = ["PCA"]
