"""
models.py - Models Trainable by Gradient Descent
================================================

Any object implementing the OptimizableModel protocol can be driven by
GradientDescent:

    predict(X)                           -> Matrix
    get_parameters()                     -> List[Matrix]   (copies, fixed order)
    update_parameters(updates)           -> None           (param -= update, in place)
    compute_gradients(X, y_true, loss)   -> List[Matrix]   (same order as parameters)

LinearRegression is the reference implementation.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, runtime_checkable

import numpy as np
from loguru import logger

from .exceptions import InvalidShapeError, ShapeMismatchError
from .losses import LossFunction
from .matrix import Matrix

# Initial weights and bias are drawn from U[-INIT_SCALE / 2, INIT_SCALE / 2).
INIT_SCALE = 0.1


@runtime_checkable
class OptimizableModel(Protocol):
    """Protocol for models with differentiable parameters."""

    def predict(self, X: Matrix) -> Matrix:
        ...

    def get_parameters(self) -> List[Matrix]:
        ...

    def update_parameters(self, updates: Sequence[Matrix]) -> None:
        ...

    def compute_gradients(self, X: Matrix, y_true: Matrix, loss_fn: LossFunction) -> List[Matrix]:
        ...


class LinearRegression:
    """
    Multi-output linear model y = X @ W + b.

    Parameters
    ----------
    input_dim : int
        Number of input features.
    output_dim : int, default=1
        Number of targets.
    rng : np.random.Generator, optional
        Source for the random initial weights.

    Examples
    --------
    >>> model = LinearRegression(input_dim=1, rng=np.random.default_rng(42))
    >>> weights, bias = model.get_parameters()
    >>> weights.shape, bias.shape
    ((1, 1), (1, 1))
    """

    def __init__(
        self,
        input_dim: int,
        output_dim: int = 1,
        rng: Optional[np.random.Generator] = None,
    ):
        for name, value in (("input_dim", input_dim), ("output_dim", output_dim)):
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
                raise InvalidShapeError(f"{name} must be a positive integer, got {value!r}")

        if rng is None:
            rng = np.random.default_rng()

        self._weights = Matrix((rng.random((input_dim, output_dim)) - 0.5) * INIT_SCALE)
        self._bias = Matrix((rng.random((1, output_dim)) - 0.5) * INIT_SCALE)
        logger.debug(f"Initialized LinearRegression ({input_dim} -> {output_dim})")

    @classmethod
    def from_parameters(cls, weights: Matrix, bias: Matrix) -> "LinearRegression":
        """
        Rebuild a model from previously extracted parameters.

        Parameters
        ----------
        weights : Matrix
            (input_dim x output_dim)
        bias : Matrix
            (1 x output_dim)
        """
        if bias.rows != 1 or bias.cols != weights.cols:
            raise ShapeMismatchError(
                f"Bias must have shape [1, {weights.cols}], got {list(bias.shape)}",
                expected=(1, weights.cols),
                actual=bias.shape,
            )
        model = cls.__new__(cls)
        model._weights = weights.clone()
        model._bias = bias.clone()
        return model

    @property
    def input_dim(self) -> int:
        return self._weights.rows

    @property
    def output_dim(self) -> int:
        return self._weights.cols

    def predict(self, X: Matrix) -> Matrix:
        """X @ W with the bias row added to every sample."""
        if X.cols != self.input_dim:
            raise ShapeMismatchError(
                f"Input has {X.cols} features, model expects {self.input_dim}",
                expected=(X.rows, self.input_dim),
                actual=X.shape,
            )
        broadcast_bias = Matrix(np.repeat(self._bias.to_numpy(), X.rows, axis=0))
        return X.multiply(self._weights).add(broadcast_bias)

    def get_parameters(self) -> List[Matrix]:
        """[weights, bias] as copies."""
        return [self._weights.clone(), self._bias.clone()]

    def update_parameters(self, updates: Sequence[Matrix]) -> None:
        """Subtract `updates` (same order and shapes as get_parameters)."""
        if len(updates) != 2:
            raise ShapeMismatchError(f"Expected 2 parameter updates, got {len(updates)}")
        # both computed before either is stored, so a failed update changes nothing
        weights = self._weights.subtract(updates[0])
        bias = self._bias.subtract(updates[1])
        self._weights, self._bias = weights, bias

    def compute_gradients(self, X: Matrix, y_true: Matrix, loss_fn: LossFunction) -> List[Matrix]:
        """[X.T @ dL/dy, column sums of dL/dy]."""
        y_pred = self.predict(X)
        loss_grad = loss_fn.gradient(y_true, y_pred)

        weight_grad = X.transpose().multiply(loss_grad)
        bias_grad = Matrix(loss_grad.to_numpy().sum(axis=0, keepdims=True))
        return [weight_grad, bias_grad]

    def __repr__(self) -> str:
        return f"LinearRegression(input_dim={self.input_dim}, output_dim={self.output_dim})"


__all__ = ["OptimizableModel", "LinearRegression", "INIT_SCALE"]
