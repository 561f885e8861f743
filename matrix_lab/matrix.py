"""
matrix.py - Validated Dense Matrix
==================================

The Matrix class is the value type every other module consumes. It wraps a
float64 numpy array and enforces three invariants at construction:

1. at least one row and one column,
2. rectangular (every row has the same length),
3. every entry finite.

Matrices are value-like: arithmetic, transpose and clone return new
instances. The only in-place mutation is element-wise `set`.

Example Usage:
-------------
    >>> from matrix_lab import Matrix
    >>> A = Matrix([[1, 2], [3, 4]])
    >>> A.determinant(), A.trace()
    (-2.0, 5.0)
    >>> A.multiply(Matrix.identity(2)).equals(A)
    True
"""

from __future__ import annotations

import math
from numbers import Real
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import scipy.linalg
from loguru import logger

from .exceptions import (
    DivisionByZeroError,
    IndexOutOfBoundsError,
    InvalidScalarError,
    InvalidShapeError,
    InvalidValueError,
    NotSquareError,
    NumericalOverflowError,
    ShapeMismatchError,
)
from .types import (
    DEFAULT_EQUALITY_EPSILON,
    DEFAULT_POWER_MAX_ITERATIONS,
    DEFAULT_POWER_TOLERANCE,
    DeterminantMethod,
    EigenPair,
)

ArrayLike = Union[Sequence[Sequence[float]], np.ndarray]

# Cofactor expansion beyond this size is very slow; logged, not refused.
COFACTOR_WARN_SIZE = 10


class Matrix:
    """
    Rectangular container of finite double-precision numbers.

    Parameters
    ----------
    data : nested sequence or np.ndarray
        Row-major 2D data. Deep-copied on construction.

    Raises
    ------
    InvalidShapeError
        If `data` is empty, ragged, not two-dimensional, non-numeric or
        contains NaN / infinity.

    Examples
    --------
    >>> m = Matrix([[1.0, 2.0, 3.0]])
    >>> m.shape
    (1, 3)
    >>> Matrix([[1, 2], [3]])
    Traceback (most recent call last):
    ...
    InvalidShapeError: Row 1 has 1 columns, expected 2
    """

    __slots__ = ("_data",)

    def __init__(self, data: ArrayLike):
        self._data = _validate_data(data)

    @classmethod
    def _wrap(cls, array: np.ndarray) -> "Matrix":
        # Internal constructor for arrays already known to be valid.
        matrix = cls.__new__(cls)
        matrix._data = array
        return matrix

    # =========================================================================
    # FACTORIES
    # =========================================================================

    @classmethod
    def identity(cls, size: int) -> "Matrix":
        """Square identity matrix of the given size."""
        _check_dimension(size, "Size")
        return cls._wrap(np.eye(size))

    @classmethod
    def zeros(cls, rows: int, cols: int) -> "Matrix":
        """Matrix of zeros with the given dimensions."""
        _check_dimension(rows, "Rows")
        _check_dimension(cols, "Columns")
        return cls._wrap(np.zeros((rows, cols)))

    @classmethod
    def ones(cls, rows: int, cols: int) -> "Matrix":
        """Matrix of ones with the given dimensions."""
        _check_dimension(rows, "Rows")
        _check_dimension(cols, "Columns")
        return cls._wrap(np.ones((rows, cols)))

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def rows(self) -> int:
        return self._data.shape[0]

    @property
    def cols(self) -> int:
        return self._data.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.rows, self.cols)

    @property
    def is_square(self) -> bool:
        return self.rows == self.cols

    @property
    def data(self) -> List[List[float]]:
        """Deep copy of the entries as nested lists."""
        return self._data.tolist()

    def to_numpy(self) -> np.ndarray:
        """Copy of the entries as a float64 array."""
        return self._data.copy()

    # =========================================================================
    # ELEMENT ACCESS
    # =========================================================================

    def get(self, i: int, j: int) -> float:
        """Entry at row `i`, column `j`."""
        self._check_index(i, j)
        return float(self._data[i, j])

    def set(self, i: int, j: int, value: float) -> None:
        """Overwrite entry (i, j) in place. `value` must be finite."""
        self._check_index(i, j)
        if not _is_finite_scalar(value):
            raise InvalidValueError(f"Value must be a finite number, got {value!r}")
        self._data[i, j] = float(value)

    def get_row(self, i: int) -> List[float]:
        """Copy of row `i`."""
        if not _is_index(i) or not 0 <= i < self.rows:
            raise IndexOutOfBoundsError(f"Row index out of bounds: {i}")
        return self._data[i, :].tolist()

    def get_column(self, j: int) -> List[float]:
        """Copy of column `j`."""
        if not _is_index(j) or not 0 <= j < self.cols:
            raise IndexOutOfBoundsError(f"Column index out of bounds: {j}")
        return self._data[:, j].tolist()

    def _check_index(self, i, j) -> None:
        if not (_is_index(i) and _is_index(j)
                and 0 <= i < self.rows and 0 <= j < self.cols):
            raise IndexOutOfBoundsError(
                f"Index out of bounds: [{i}][{j}] for shape {list(self.shape)}"
            )

    # =========================================================================
    # COPY / COMPARISON
    # =========================================================================

    def clone(self) -> "Matrix":
        return Matrix._wrap(self._data.copy())

    def equals(self, other: "Matrix", epsilon: float = DEFAULT_EQUALITY_EPSILON) -> bool:
        """True if shapes match and every entry differs by at most `epsilon`."""
        if self.shape != other.shape:
            return False
        return bool(np.all(np.abs(self._data - other._data) <= epsilon))

    # =========================================================================
    # ARITHMETIC
    # =========================================================================

    def add(self, other: "Matrix") -> "Matrix":
        self._check_same_shape(other, "add")
        return Matrix._checked(self._data + other._data, "add")

    def subtract(self, other: "Matrix") -> "Matrix":
        self._check_same_shape(other, "subtract")
        return Matrix._checked(self._data - other._data, "subtract")

    def multiply(self, other: "Matrix") -> "Matrix":
        """Matrix product ``self @ other``."""
        if self.cols != other.rows:
            raise ShapeMismatchError(
                f"Cannot multiply matrices: first matrix has {self.cols} columns, "
                f"second matrix has {other.rows} rows",
                expected=(self.cols, other.cols),
                actual=other.shape,
            )
        return Matrix._checked(self._data @ other._data, "multiply")

    def multiply_scalar(self, scalar: float) -> "Matrix":
        _check_scalar(scalar)
        return Matrix._checked(self._data * float(scalar), "multiply_scalar")

    def divide_scalar(self, scalar: float) -> "Matrix":
        _check_scalar(scalar)
        if scalar == 0:
            raise DivisionByZeroError("Cannot divide by zero")
        return Matrix._checked(self._data / float(scalar), "divide_scalar")

    def add_scalar(self, scalar: float) -> "Matrix":
        _check_scalar(scalar)
        return Matrix._checked(self._data + float(scalar), "add_scalar")

    def elementwise_multiply(self, other: "Matrix") -> "Matrix":
        """Hadamard product."""
        self._check_same_shape(other, "multiply element-wise")
        return Matrix._checked(self._data * other._data, "elementwise_multiply")

    def elementwise_divide(self, other: "Matrix") -> "Matrix":
        self._check_same_shape(other, "divide element-wise")
        if np.any(other._data == 0):
            raise DivisionByZeroError("Cannot divide element-wise by a matrix containing zeros")
        return Matrix._checked(self._data / other._data, "elementwise_divide")

    def elementwise_sqrt(self) -> "Matrix":
        if np.any(self._data < 0):
            raise InvalidValueError("Cannot take the square root of negative entries")
        return Matrix._wrap(np.sqrt(self._data))

    def transpose(self) -> "Matrix":
        return Matrix._wrap(self._data.T.copy())

    def _check_same_shape(self, other: "Matrix", verb: str) -> None:
        if self.shape != other.shape:
            raise ShapeMismatchError(
                f"Cannot {verb} matrices: shapes {list(self.shape)} and "
                f"{list(other.shape)} are incompatible",
                expected=self.shape,
                actual=other.shape,
            )

    @classmethod
    def _checked(cls, array: np.ndarray, operation: str) -> "Matrix":
        # Finite inputs can still overflow to inf.
        if not np.all(np.isfinite(array)):
            raise NumericalOverflowError(f"{operation} produced non-finite values (overflow)")
        return cls._wrap(array)

    # =========================================================================
    # SQUARE-MATRIX OPERATIONS
    # =========================================================================

    def trace(self) -> float:
        """Sum of the diagonal."""
        self._require_square("Trace")
        return float(np.trace(self._data))

    def determinant(self, method: Union[DeterminantMethod, str] = DeterminantMethod.COFACTOR) -> float:
        """
        Determinant of a square matrix.

        Parameters
        ----------
        method : {"cofactor", "lu"}, default="cofactor"
            "cofactor" expands along the first row recursively down to 2x2 /
            1x1 base cases. It is exact up to floating point but costs O(n!),
            so it is unsuitable for n much beyond 10.
            "lu" uses scipy's LU factorization with partial pivoting, O(n^3).
            Results may differ from cofactor expansion in the 10th+
            significant digit; singular matrices return (close to) zero.

        Raises
        ------
        NotSquareError
            If the matrix is not square.
        InvalidValueError
            If `method` is unknown.
        """
        self._require_square("Determinant")
        try:
            method = DeterminantMethod(method)
        except ValueError:
            raise InvalidValueError(
                f"Unknown determinant method: '{method}'. "
                f"Valid methods are: {[m.value for m in DeterminantMethod]}"
            ) from None

        if method == DeterminantMethod.LU:
            logger.debug(f"Determinant via LU | Shape: {self.shape}")
            return _lu_determinant(self._data)

        if self.rows > COFACTOR_WARN_SIZE:
            logger.warning(
                f"Cofactor determinant on a {self.rows}x{self.rows} matrix is O(n!); "
                f"consider method='lu'"
            )
        logger.debug(f"Determinant via cofactor expansion | Shape: {self.shape}")
        return _cofactor_determinant(self._data)

    def power_iteration(
        self,
        max_iterations: int = DEFAULT_POWER_MAX_ITERATIONS,
        tolerance: float = DEFAULT_POWER_TOLERANCE,
        rng: Optional[np.random.Generator] = None,
    ) -> EigenPair:
        """
        Estimate the dominant eigenpair by power iteration.

        Algorithm:
            1. v = random unit vector (entries drawn uniformly from [0, 1))
            2. w = A @ v
            3. lambda = w . v   (inner product of the image with the previous vector)
            4. v = w / ||w||
            5. stop when |lambda - lambda_prev| < tolerance

        Parameters
        ----------
        max_iterations : int, default=1000
            Iteration cap.
        tolerance : float, default=1e-10
            Threshold on the absolute change of the eigenvalue estimate.
        rng : np.random.Generator, optional
            Source of the random seed vector. A fresh ``default_rng()`` is used
            if omitted, so repeated calls may take different iteration counts.

        Returns
        -------
        EigenPair
            eigenvalue, unit eigenvector (n x 1), iterations used, converged flag.

        Raises
        ------
        NotSquareError
            If the matrix is not square.
        """
        self._require_square("Power iteration")
        if isinstance(max_iterations, bool) or not isinstance(max_iterations, int) \
                or max_iterations < 1:
            raise InvalidValueError(
                f"max_iterations must be a positive integer, got {max_iterations}"
            )
        if rng is None:
            rng = np.random.default_rng()

        A = self._data
        n = self.rows

        v = rng.random(n)
        norm = np.linalg.norm(v)
        while norm == 0:  # all-zero draw
            v = rng.random(n)
            norm = np.linalg.norm(v)
        v = v / norm

        eigenvalue = 0.0
        previous = 0.0
        converged = False
        iterations = 0

        for iteration in range(max_iterations):
            iterations = iteration + 1
            w = A @ v
            eigenvalue = float(w @ v)
            norm = float(np.linalg.norm(w))

            if norm == 0.0:
                # A v = 0: v is an eigenvector for eigenvalue 0.
                eigenvalue = 0.0
                converged = True
                break

            v = w / norm

            if abs(eigenvalue - previous) < tolerance:
                converged = True
                break
            previous = eigenvalue

        if converged:
            logger.debug(
                f"Power iteration converged | n={n}, lambda={eigenvalue:.6g}, "
                f"iterations={iterations}"
            )
        else:
            logger.warning(
                f"Power iteration did not converge in {max_iterations} iterations "
                f"(n={n}, last lambda={eigenvalue:.6g})"
            )

        return EigenPair(
            eigenvalue=eigenvalue,
            eigenvector=Matrix._wrap(v.reshape(n, 1)),
            iterations=iterations,
            converged=converged,
        )

    def _require_square(self, operation: str) -> None:
        if not self.is_square:
            raise NotSquareError(operation, self.shape)

    # =========================================================================
    # REPRESENTATION
    # =========================================================================

    def __repr__(self) -> str:
        return f"Matrix(rows={self.rows}, cols={self.cols}, data={self.data})"

    def __str__(self) -> str:
        return "\n".join("\t".join(repr(float(x)) for x in row) for row in self._data)


# =============================================================================
# VALIDATION HELPERS
# =============================================================================

def _validate_data(data: ArrayLike) -> np.ndarray:
    if isinstance(data, Matrix):
        return data.to_numpy()

    if isinstance(data, np.ndarray):
        if data.ndim != 2:
            raise InvalidShapeError(f"Matrix data must be 2D, got shape {data.shape}")
        if data.size == 0:
            raise InvalidShapeError(f"Matrix data must be non-empty, got shape {data.shape}")
        if np.iscomplexobj(data) or not (
            np.issubdtype(data.dtype, np.number) or data.dtype == np.bool_
        ):
            raise InvalidShapeError(f"Matrix data must be numeric, got dtype {data.dtype}")
        array = np.array(data, dtype=np.float64)
    else:
        if isinstance(data, (str, bytes)) or not isinstance(data, Sequence) or len(data) == 0:
            raise InvalidShapeError("Matrix data must be a non-empty 2D array")

        rows = []
        for i, row in enumerate(data):
            if isinstance(row, (str, bytes)) or not isinstance(row, (Sequence, np.ndarray)):
                raise InvalidShapeError(f"Row {i} is not a sequence")
            rows.append(row)

        cols = len(rows[0])
        if cols == 0:
            raise InvalidShapeError("Matrix must have at least one column")
        for i, row in enumerate(rows[1:], start=1):
            if len(row) != cols:
                raise InvalidShapeError(f"Row {i} has {len(row)} columns, expected {cols}")

        for i, row in enumerate(rows):
            for j, value in enumerate(row):
                if not _is_real_number(value):
                    raise InvalidShapeError(f"Element at [{i}][{j}] must be a valid number")

        array = np.array(rows, dtype=np.float64)

    if not np.all(np.isfinite(array)):
        i, j = np.argwhere(~np.isfinite(array))[0]
        raise InvalidShapeError(f"Element at [{i}][{j}] must be a finite number")

    return array


def _check_dimension(value, name: str) -> None:
    if not _is_index(value) or value <= 0:
        raise InvalidShapeError(f"{name} must be a positive integer, got {value!r}")


def _check_scalar(scalar) -> None:
    if not _is_finite_scalar(scalar):
        raise InvalidScalarError(f"Scalar must be a finite number, got {scalar!r}")


def _is_index(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _is_real_number(value) -> bool:
    # np.number also covers complex scalars
    if isinstance(value, np.complexfloating):
        return False
    return isinstance(value, (Real, np.number))


def _is_finite_scalar(value) -> bool:
    if isinstance(value, bool) or not _is_real_number(value):
        return False
    return math.isfinite(value)


# =============================================================================
# DETERMINANT KERNELS
# =============================================================================

def _cofactor_determinant(data: np.ndarray) -> float:
    n = data.shape[0]
    if n == 1:
        return float(data[0, 0])
    if n == 2:
        return float(data[0, 0] * data[1, 1] - data[0, 1] * data[1, 0])

    det = 0.0
    for j in range(n):
        if data[0, j] == 0:
            continue
        minor = np.delete(data[1:, :], j, axis=1)
        sign = 1.0 if j % 2 == 0 else -1.0
        det += sign * data[0, j] * _cofactor_determinant(minor)
    return float(det)


def _lu_determinant(data: np.ndarray) -> float:
    lu, piv = scipy.linalg.lu_factor(data, check_finite=False)
    # Each piv[i] != i is one row swap.
    swaps = int(np.count_nonzero(piv != np.arange(piv.size)))
    sign = -1.0 if swaps % 2 else 1.0
    return float(sign * np.prod(np.diag(lu)))


__all__ = ["Matrix"]
