"""
types.py - Result Containers, Enumerations and Configuration for Matrix Lab

This module defines the small value objects passed across module seams:
- EigenPair: Output of Matrix.power_iteration
- QRFactors: Output of the QR convenience wrapper
- TrainingHistory: Output of GradientDescent.optimize
- GradientDescentConfig: Validated optimizer configuration

and the string enumerations used to select algorithm variants.

Design Principles:
-----------------
1. Immutability for results (frozen dataclasses)
2. Validation at construction time (fail-fast)
3. ``str, Enum`` so plain strings from CLIs and payloads are accepted

Example Usage:
-------------
    >>> from matrix_lab import Matrix
    >>> pair = Matrix([[4.0, 1.0], [1.0, 2.0]]).power_iteration()
    >>> print(f"lambda={pair.eigenvalue:.4f}, converged={pair.converged}")
    lambda=4.4142, converged=True
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, TYPE_CHECKING

from .exceptions import InvalidValueError, UnknownOptimizationMethodError

if TYPE_CHECKING:
    from .matrix import Matrix


# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_EQUALITY_EPSILON = 1e-10

DEFAULT_POWER_MAX_ITERATIONS = 1000
DEFAULT_POWER_TOLERANCE = 1e-10

DEFAULT_SVD_MAX_ITERATIONS = 100
DEFAULT_SVD_TOLERANCE = 1e-10

DEFAULT_RANK_THRESHOLD = 1e-12

DEFAULT_LEARNING_RATE = 0.01
DEFAULT_GD_MAX_ITERATIONS = 1000
DEFAULT_GD_TOLERANCE = 1e-6
DEFAULT_MOMENTUM_BETA = 0.9
DEFAULT_ADAM_BETA1 = 0.9
DEFAULT_ADAM_BETA2 = 0.999
DEFAULT_ADAM_EPSILON = 1e-8


# =============================================================================
# ENUMS
# =============================================================================

class OptimizationMethod(str, Enum):
    """Gradient-descent update rules."""
    SGD = "sgd"
    MOMENTUM = "momentum"
    ADAM = "adam"

    @classmethod
    def parse(cls, method: "OptimizationMethod | str") -> "OptimizationMethod":
        """Resolve a method name, raising UnknownOptimizationMethodError."""
        if isinstance(method, cls):
            return method
        try:
            return cls(str(method).lower())
        except ValueError:
            raise UnknownOptimizationMethodError(
                method, tuple(m.value for m in cls)
            ) from None


class DeterminantMethod(str, Enum):
    """Determinant algorithms available on Matrix."""
    COFACTOR = "cofactor"  # exact recursion, O(n!)
    LU = "lu"              # scipy LU factorization, O(n^3)


class LossType(str, Enum):
    """Built-in loss functions."""
    MSE = "mse"
    BINARY_CROSS_ENTROPY = "binary_cross_entropy"


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class EigenPair:
    """
    Dominant eigenpair estimate produced by power iteration.

    Parameters
    ----------
    eigenvalue : float
        Estimate of the largest-magnitude eigenvalue.
    eigenvector : Matrix
        Unit-norm column vector (n x 1).
    iterations : int
        Number of iterations actually performed.
    converged : bool
        True if the eigenvalue change dropped below the tolerance before
        the iteration cap was reached.
    """
    eigenvalue: float
    eigenvector: "Matrix"
    iterations: int
    converged: bool


@dataclass(frozen=True)
class QRFactors:
    """Thin QR factors: Q (m x k) with orthonormal columns, R (k x n)."""
    Q: "Matrix"
    R: "Matrix"


@dataclass(frozen=True)
class TrainingHistory:
    """
    Result container for GradientDescent.optimize.

    Parameters
    ----------
    losses : List[float]
        Loss value at the start of every iteration, in order.
    converged : bool
        True if two consecutive losses differed by less than the tolerance.

    Examples
    --------
    >>> history = optimizer.optimize(model, X, y, MeanSquaredError())
    >>> if history.converged:
    ...     print(f"Converged after {history.iterations} iterations")
    """
    losses: List[float] = field(default_factory=list)
    converged: bool = False

    @property
    def iterations(self) -> int:
        """Number of recorded iterations (len(losses))."""
        return len(self.losses)

    @property
    def final_loss(self) -> float:
        """Last recorded loss, NaN if nothing was recorded."""
        return self.losses[-1] if self.losses else float("nan")


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class GradientDescentConfig:
    """
    Validated hyperparameters for GradientDescent.

    Parameters
    ----------
    learning_rate : float
        Step size, must be positive and finite.
    max_iterations : int
        Iteration cap, must be a positive integer.
    tolerance : float
        Convergence threshold on the absolute loss change. Zero disables
        early stopping.
    method : OptimizationMethod or str
        "sgd", "momentum" or "adam".
    momentum_beta, adam_beta1, adam_beta2 : float
        Decay rates in [0, 1).
    adam_epsilon : float
        Denominator guard for Adam, must be positive.

    Raises
    ------
    UnknownOptimizationMethodError
        If `method` is not a known variant.
    InvalidValueError
        If any numeric hyperparameter is out of range.
    """
    learning_rate: float = DEFAULT_LEARNING_RATE
    max_iterations: int = DEFAULT_GD_MAX_ITERATIONS
    tolerance: float = DEFAULT_GD_TOLERANCE
    method: OptimizationMethod = OptimizationMethod.SGD
    momentum_beta: float = DEFAULT_MOMENTUM_BETA
    adam_beta1: float = DEFAULT_ADAM_BETA1
    adam_beta2: float = DEFAULT_ADAM_BETA2
    adam_epsilon: float = DEFAULT_ADAM_EPSILON

    def __post_init__(self):
        # frozen: normalise the method through object.__setattr__
        object.__setattr__(self, "method", OptimizationMethod.parse(self.method))
        self.validate()

    def validate(self) -> None:
        """Check hyperparameter ranges."""
        if not _is_finite_number(self.learning_rate) or self.learning_rate <= 0:
            raise InvalidValueError(
                f"learning_rate must be a positive finite number, got {self.learning_rate}"
            )
        if isinstance(self.max_iterations, bool) or not isinstance(self.max_iterations, int) \
                or self.max_iterations < 1:
            raise InvalidValueError(
                f"max_iterations must be a positive integer, got {self.max_iterations}"
            )
        if not _is_finite_number(self.tolerance) or self.tolerance < 0:
            raise InvalidValueError(
                f"tolerance must be a non-negative finite number, got {self.tolerance}"
            )
        for name in ("momentum_beta", "adam_beta1", "adam_beta2"):
            value = getattr(self, name)
            if not _is_finite_number(value) or not 0.0 <= value < 1.0:
                raise InvalidValueError(f"{name} must be in [0, 1), got {value}")
        if not _is_finite_number(self.adam_epsilon) or self.adam_epsilon <= 0:
            raise InvalidValueError(
                f"adam_epsilon must be positive, got {self.adam_epsilon}"
            )


def _is_finite_number(value) -> bool:
    if isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False


__all__ = [
    "DEFAULT_EQUALITY_EPSILON",
    "DEFAULT_POWER_MAX_ITERATIONS",
    "DEFAULT_POWER_TOLERANCE",
    "DEFAULT_SVD_MAX_ITERATIONS",
    "DEFAULT_SVD_TOLERANCE",
    "DEFAULT_RANK_THRESHOLD",
    "DEFAULT_LEARNING_RATE",
    "DEFAULT_GD_MAX_ITERATIONS",
    "DEFAULT_GD_TOLERANCE",
    "DEFAULT_MOMENTUM_BETA",
    "DEFAULT_ADAM_BETA1",
    "DEFAULT_ADAM_BETA2",
    "DEFAULT_ADAM_EPSILON",
    "OptimizationMethod",
    "DeterminantMethod",
    "LossType",
    "EigenPair",
    "QRFactors",
    "TrainingHistory",
    "GradientDescentConfig",
]
