"""
exceptions.py - Error Taxonomy for Matrix Lab

Every error raised by matrix_lab derives from MatrixLabError so callers can
catch the whole family at once. Each class also inherits the closest builtin
exception, so code written against plain ``ValueError`` / ``IndexError``
keeps working.

Hierarchy:
---------
    MatrixLabError
    ├── InvalidShapeError            (ValueError)
    │   └── NotSquareError
    ├── ShapeMismatchError           (ValueError)
    │   └── FeatureMismatchError
    ├── IndexOutOfBoundsError        (IndexError)
    ├── InvalidValueError            (ValueError)
    │   ├── InvalidScalarError
    │   └── NumericalOverflowError
    ├── DivisionByZeroError          (ZeroDivisionError)
    ├── SingularMatrixError          (ArithmeticError)
    ├── NotFittedError               (RuntimeError)
    ├── InsufficientSamplesError     (ValueError)
    └── UnknownOptimizationMethodError (ValueError)
"""

from __future__ import annotations

from typing import Optional, Tuple


class MatrixLabError(Exception):
    """Base exception for all matrix_lab errors."""
    pass


# =============================================================================
# SHAPE ERRORS
# =============================================================================

class InvalidShapeError(MatrixLabError, ValueError):
    """
    Input data cannot form a valid matrix.

    Raised for empty input, ragged rows, non-2D arrays, non-numeric entries
    and non-finite entries.
    """
    pass


class NotSquareError(InvalidShapeError):
    """Operation is only defined for square matrices."""

    def __init__(self, operation: str, shape: Tuple[int, int]):
        super().__init__(
            f"{operation} is only defined for square matrices. "
            f"Matrix shape: {list(shape)}"
        )
        self.operation = operation
        self.shape = shape


class ShapeMismatchError(MatrixLabError, ValueError):
    """
    Two operands have incompatible shapes.

    Attributes:
        expected: Shape the operation required, if known
        actual: Shape that was supplied, if known
    """

    def __init__(
        self,
        message: str,
        expected: Optional[Tuple[int, ...]] = None,
        actual: Optional[Tuple[int, ...]] = None,
    ):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class FeatureMismatchError(ShapeMismatchError):
    """Data passed to a fitted transformer has the wrong number of features."""
    pass


class IndexOutOfBoundsError(MatrixLabError, IndexError):
    """Element index lies outside [0, rows) x [0, cols)."""
    pass


# =============================================================================
# VALUE ERRORS
# =============================================================================

class InvalidValueError(MatrixLabError, ValueError):
    """An element or argument value is not acceptable (e.g. NaN, inf)."""
    pass


class InvalidScalarError(InvalidValueError):
    """A scalar operand is not a finite number."""
    pass


class NumericalOverflowError(InvalidValueError):
    """An operation on finite entries produced inf or NaN."""
    pass


class DivisionByZeroError(MatrixLabError, ZeroDivisionError):
    """Division by an exact zero."""
    pass


class SingularMatrixError(MatrixLabError, ArithmeticError):
    """
    A triangular solve hit an exactly-zero pivot.

    Attributes:
        pivot_index: Row of the zero diagonal entry
    """

    def __init__(self, message: str, pivot_index: Optional[int] = None):
        super().__init__(message)
        self.pivot_index = pivot_index


# =============================================================================
# ESTIMATOR / OPTIMIZER ERRORS
# =============================================================================

class NotFittedError(MatrixLabError, RuntimeError):
    """A result accessor or transform was called before fitting."""
    pass


class InsufficientSamplesError(MatrixLabError, ValueError):
    """Fewer samples (rows) than the algorithm needs."""
    pass


class UnknownOptimizationMethodError(MatrixLabError, ValueError):
    """The requested gradient-descent variant does not exist."""

    def __init__(self, method: object, available: Tuple[str, ...] = ()):
        message = f"Unknown optimization method: '{method}'"
        if available:
            message += f". Valid methods are: {list(available)}"
        super().__init__(message)
        self.method = method


__all__ = [
    "MatrixLabError",
    "InvalidShapeError",
    "NotSquareError",
    "ShapeMismatchError",
    "FeatureMismatchError",
    "IndexOutOfBoundsError",
    "InvalidValueError",
    "InvalidScalarError",
    "NumericalOverflowError",
    "DivisionByZeroError",
    "SingularMatrixError",
    "NotFittedError",
    "InsufficientSamplesError",
    "UnknownOptimizationMethodError",
]
