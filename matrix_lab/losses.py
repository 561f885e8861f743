"""
losses.py - Differentiable Loss Functions
=========================================

A loss is any object with two methods (structural typing via Protocol):

    loss(y_true, y_pred)     -> float
    gradient(y_true, y_pred) -> Matrix   # d loss / d y_pred, same shape as y_pred

Both raise ShapeMismatchError when the shapes differ. New losses can be
plugged into GradientDescent without subclassing anything.
"""

from __future__ import annotations

from typing import Dict, Protocol, Type, Union, runtime_checkable

import numpy as np

from .exceptions import InvalidValueError, ShapeMismatchError
from .matrix import Matrix
from .types import LossType

# Predictions are clipped to [EPS, 1 - EPS] before taking logs.
BCE_CLIP_EPSILON = 1e-15


@runtime_checkable
class LossFunction(Protocol):
    """
    Protocol for losses usable by GradientDescent.

    Examples
    --------
    >>> class MeanAbsoluteError:
    ...     def loss(self, y_true, y_pred):
    ...         ...
    ...     def gradient(self, y_true, y_pred):
    ...         ...
    >>> isinstance(MeanAbsoluteError(), LossFunction)
    True
    """

    def loss(self, y_true: Matrix, y_pred: Matrix) -> float:
        ...

    def gradient(self, y_true: Matrix, y_pred: Matrix) -> Matrix:
        ...


class MeanSquaredError:
    """mean((y_pred - y_true)^2), gradient 2 (y_pred - y_true) / n."""

    def loss(self, y_true: Matrix, y_pred: Matrix) -> float:
        _check_shapes(y_true, y_pred)
        diff = y_pred.to_numpy() - y_true.to_numpy()
        return float(np.mean(diff * diff))

    def gradient(self, y_true: Matrix, y_pred: Matrix) -> Matrix:
        _check_shapes(y_true, y_pred)
        n = y_true.rows * y_true.cols
        return y_pred.subtract(y_true).multiply_scalar(2.0 / n)

    def __repr__(self) -> str:
        return "MeanSquaredError()"


class BinaryCrossEntropy:
    """
    -mean(y log p + (1 - y) log(1 - p)) for probabilities p.

    p is clipped to [1e-15, 1 - 1e-15] in both the loss and the gradient, so
    predictions of exactly 0 or 1 give a large but finite value.
    """

    def loss(self, y_true: Matrix, y_pred: Matrix) -> float:
        _check_shapes(y_true, y_pred)
        y = y_true.to_numpy()
        p = _clip_probabilities(y_pred)
        return float(-np.mean(y * np.log(p) + (1.0 - y) * np.log(1.0 - p)))

    def gradient(self, y_true: Matrix, y_pred: Matrix) -> Matrix:
        _check_shapes(y_true, y_pred)
        y = y_true.to_numpy()
        p = _clip_probabilities(y_pred)
        return Matrix((p - y) / (p * (1.0 - p)) / y.size)

    def __repr__(self) -> str:
        return "BinaryCrossEntropy()"


_LOSSES: Dict[LossType, Type] = {
    LossType.MSE: MeanSquaredError,
    LossType.BINARY_CROSS_ENTROPY: BinaryCrossEntropy,
}


def get_loss_function(name: Union[LossType, str]) -> LossFunction:
    """
    Instantiate a built-in loss by name.

    Parameters
    ----------
    name : LossType or str
        "mse" or "binary_cross_entropy".

    Raises
    ------
    InvalidValueError
        If the name is unknown.
    """
    try:
        loss_type = LossType(name)
    except ValueError:
        raise InvalidValueError(
            f"Unknown loss function: '{name}'. Valid losses are: {[t.value for t in LossType]}"
        ) from None
    return _LOSSES[loss_type]()


def _check_shapes(y_true: Matrix, y_pred: Matrix) -> None:
    if y_true.shape != y_pred.shape:
        raise ShapeMismatchError(
            f"Shape mismatch between true {list(y_true.shape)} and "
            f"predicted {list(y_pred.shape)} values",
            expected=y_true.shape,
            actual=y_pred.shape,
        )


def _clip_probabilities(y_pred: Matrix) -> np.ndarray:
    return np.clip(y_pred.to_numpy(), BCE_CLIP_EPSILON, 1.0 - BCE_CLIP_EPSILON)


__all__ = [
    "LossFunction",
    "MeanSquaredError",
    "BinaryCrossEntropy",
    "get_loss_function",
    "BCE_CLIP_EPSILON",
]
