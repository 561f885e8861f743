"""
test_matrix.py - Tests for the Validated Matrix Type

Tests cover:
- Construction and validation
- Factories and element access
- Arithmetic and its error paths
- Trace and determinant (cofactor and LU)
- Power iteration
"""

import math

import pytest
import numpy as np

from matrix_lab import (
    Matrix,
    DeterminantMethod,
    DivisionByZeroError,
    IndexOutOfBoundsError,
    InvalidScalarError,
    InvalidShapeError,
    InvalidValueError,
    MatrixLabError,
    NotSquareError,
    NumericalOverflowError,
    ShapeMismatchError,
)


class TestConstruction:
    """Tests for Matrix construction and validation."""

    def test_from_nested_lists(self):
        m = Matrix([[1, 2, 3], [4, 5, 6]])
        assert m.shape == (2, 3)
        assert m.rows == 2
        assert m.cols == 3
        assert m.get(1, 2) == 6.0

    def test_from_numpy(self, rng):
        data = rng.standard_normal((3, 4))
        m = Matrix(data)
        assert np.array_equal(m.to_numpy(), data)

    def test_input_is_deep_copied(self):
        """Mutating the source after construction must not leak in."""
        rows = [[1.0, 2.0], [3.0, 4.0]]
        m = Matrix(rows)
        rows[0][0] = 100.0
        assert m.get(0, 0) == 1.0

        array = np.ones((2, 2))
        m = Matrix(array)
        array[0, 0] = 5.0
        assert m.get(0, 0) == 1.0

    def test_accessors_return_copies(self):
        m = Matrix([[1, 2], [3, 4]])
        m.to_numpy()[0, 0] = 99.0
        m.data[0][0] = 99.0
        m.get_row(0)[0] = 99.0
        assert m.get(0, 0) == 1.0

    def test_empty_rejected(self):
        with pytest.raises(InvalidShapeError, match="non-empty"):
            Matrix([])

    def test_empty_row_rejected(self):
        with pytest.raises(InvalidShapeError, match="at least one column"):
            Matrix([[]])

    def test_ragged_rejected(self):
        with pytest.raises(InvalidShapeError, match="Row 1 has 1 columns, expected 2"):
            Matrix([[1, 2], [3]])

    def test_non_numeric_rejected(self):
        with pytest.raises(InvalidShapeError, match="must be a valid number"):
            Matrix([[1, "a"]])

    def test_nan_rejected(self):
        with pytest.raises(InvalidShapeError, match="must be a finite number"):
            Matrix([[1.0, float("nan")]])

    def test_infinity_rejected(self):
        with pytest.raises(InvalidShapeError, match="finite"):
            Matrix(np.array([[np.inf]]))

    def test_complex_entries_rejected(self):
        with pytest.raises(InvalidShapeError, match="must be a valid number"):
            Matrix([[1.0, np.complex128(2 + 1j)]])
        with pytest.raises(InvalidShapeError, match="numeric"):
            Matrix(np.array([[1 + 0j, 2 + 0j]]))

    def test_one_dimensional_array_rejected(self):
        with pytest.raises(InvalidShapeError, match="2D"):
            Matrix(np.zeros(3))

    def test_errors_share_base_class(self):
        """Validation errors are both MatrixLabError and ValueError."""
        with pytest.raises(MatrixLabError):
            Matrix([[1], [2, 3]])
        with pytest.raises(ValueError):
            Matrix([[1], [2, 3]])


class TestFactories:
    """Tests for identity / zeros / ones."""

    def test_identity(self):
        assert np.array_equal(Matrix.identity(3).to_numpy(), np.eye(3))

    def test_zeros_and_ones(self):
        assert np.array_equal(Matrix.zeros(2, 3).to_numpy(), np.zeros((2, 3)))
        assert np.array_equal(Matrix.ones(3, 1).to_numpy(), np.ones((3, 1)))

    @pytest.mark.parametrize("size", [0, -1, 1.5])
    def test_invalid_identity_size(self, size):
        with pytest.raises(InvalidShapeError, match="positive integer"):
            Matrix.identity(size)

    def test_invalid_zeros_dimensions(self):
        with pytest.raises(InvalidShapeError):
            Matrix.zeros(2, 0)


class TestElementAccess:
    """Tests for get / set / get_row / get_column."""

    def test_set_mutates_in_place(self):
        m = Matrix.zeros(2, 2)
        m.set(1, 0, 7.5)
        assert m.get(1, 0) == 7.5

    def test_set_non_finite_rejected(self):
        m = Matrix.zeros(2, 2)
        with pytest.raises(InvalidValueError):
            m.set(0, 0, float("inf"))

    @pytest.mark.parametrize("i, j", [(2, 0), (0, 2), (-1, 0)])
    def test_out_of_bounds(self, i, j):
        m = Matrix.zeros(2, 2)
        with pytest.raises(IndexOutOfBoundsError, match="Index out of bounds"):
            m.get(i, j)
        with pytest.raises(IndexError):
            m.set(i, j, 1.0)

    def test_row_and_column(self, square_2x2):
        assert square_2x2.get_row(1) == [3.0, 4.0]
        assert square_2x2.get_column(0) == [1.0, 3.0]
        with pytest.raises(IndexOutOfBoundsError):
            square_2x2.get_column(5)


class TestComparison:
    """Tests for clone and equals."""

    def test_clone_is_independent(self, square_2x2):
        copy = square_2x2.clone()
        copy.set(0, 0, 10.0)
        assert square_2x2.get(0, 0) == 1.0

    def test_equals_with_epsilon(self):
        a = Matrix([[1.0, 2.0]])
        b = Matrix([[1.0 + 1e-12, 2.0]])
        assert a.equals(b)
        assert not a.equals(Matrix([[1.1, 2.0]]))
        assert a.equals(Matrix([[1.1, 2.0]]), epsilon=0.2)

    def test_equals_different_shapes(self):
        assert not Matrix([[1, 2]]).equals(Matrix([[1], [2]]))


class TestArithmetic:
    """Tests for matrix and scalar arithmetic."""

    def test_add_subtract_round_trip(self, random_square, rng):
        other = Matrix(rng.standard_normal((5, 5)))
        assert random_square.add(other).subtract(other).equals(random_square)

    def test_double_transpose(self, rng):
        m = Matrix(rng.standard_normal((3, 7)))
        assert m.transpose().shape == (7, 3)
        assert m.transpose().transpose().equals(m)

    def test_multiply_matches_numpy(self, rng, tolerance):
        a = rng.standard_normal((3, 4))
        b = rng.standard_normal((4, 2))
        result = Matrix(a).multiply(Matrix(b))
        assert result.shape == (3, 2)
        assert np.allclose(result.to_numpy(), a @ b, **tolerance)

    def test_multiply_by_identity(self, square_2x2):
        assert square_2x2.multiply(Matrix.identity(2)).equals(square_2x2)

    def test_add_shape_mismatch(self):
        with pytest.raises(ShapeMismatchError, match="Cannot add matrices") as exc_info:
            Matrix([[1, 2]]).add(Matrix([[1], [2]]))
        assert exc_info.value.expected == (1, 2)
        assert exc_info.value.actual == (2, 1)

    def test_multiply_shape_mismatch(self):
        with pytest.raises(ShapeMismatchError,
                           match="first matrix has 2 columns, second matrix has 3 rows"):
            Matrix.ones(2, 2).multiply(Matrix.ones(3, 2))

    def test_scalar_operations(self, square_2x2):
        assert square_2x2.multiply_scalar(2).equals(Matrix([[2, 4], [6, 8]]))
        assert square_2x2.divide_scalar(2).equals(Matrix([[0.5, 1], [1.5, 2]]))
        assert square_2x2.add_scalar(-1).equals(Matrix([[0, 1], [2, 3]]))

    def test_divide_by_zero(self, square_2x2):
        with pytest.raises(DivisionByZeroError, match="Cannot divide by zero"):
            square_2x2.divide_scalar(0)
        with pytest.raises(ZeroDivisionError):
            square_2x2.divide_scalar(0.0)

    @pytest.mark.parametrize("scalar", [float("nan"), float("inf"), "2", None])
    def test_invalid_scalar(self, square_2x2, scalar):
        with pytest.raises(InvalidScalarError, match="Scalar must be a finite number"):
            square_2x2.multiply_scalar(scalar)

    def test_overflow_detected(self):
        with pytest.raises(InvalidValueError, match="non-finite"):
            Matrix([[1e308]]).multiply_scalar(10.0)

    def test_add_overflow_detected(self):
        big = Matrix([[1e308]])
        with pytest.raises(NumericalOverflowError, match="add produced non-finite"):
            big.add(big)

    def test_subtract_overflow_detected(self):
        with pytest.raises(NumericalOverflowError, match="subtract produced non-finite"):
            Matrix([[1e308]]).subtract(Matrix([[-1e308]]))

    def test_complex_scalar_rejected(self, square_2x2):
        with pytest.raises(InvalidScalarError):
            square_2x2.multiply_scalar(np.complex128(2 + 0j))
        with pytest.raises(InvalidValueError):
            square_2x2.set(0, 0, np.complex64(1 + 1j))

    def test_elementwise_operations(self):
        a = Matrix([[1, 4], [9, 16]])
        b = Matrix([[1, 2], [3, 4]])
        assert a.elementwise_multiply(b).equals(Matrix([[1, 8], [27, 64]]))
        assert a.elementwise_divide(b).equals(Matrix([[1, 2], [3, 4]]))
        assert a.elementwise_sqrt().equals(b)

    def test_elementwise_divide_by_zero(self):
        with pytest.raises(DivisionByZeroError):
            Matrix([[1, 2]]).elementwise_divide(Matrix([[1, 0]]))

    def test_elementwise_sqrt_negative(self):
        with pytest.raises(InvalidValueError, match="negative"):
            Matrix([[1, -4]]).elementwise_sqrt()

    def test_operations_do_not_mutate(self, square_2x2):
        before = square_2x2.to_numpy()
        square_2x2.add(square_2x2)
        square_2x2.multiply_scalar(3)
        square_2x2.transpose()
        assert np.array_equal(square_2x2.to_numpy(), before)


class TestTraceAndDeterminant:
    """Tests for trace and both determinant algorithms."""

    def test_known_2x2(self, square_2x2):
        assert square_2x2.determinant() == pytest.approx(-2.0)
        assert square_2x2.trace() == pytest.approx(5.0)

    @pytest.mark.parametrize("n", [1, 2, 3, 6])
    def test_identity(self, n):
        identity = Matrix.identity(n)
        assert identity.determinant() == pytest.approx(1.0)
        assert identity.determinant(DeterminantMethod.LU) == pytest.approx(1.0)
        assert identity.trace() == pytest.approx(float(n))

    def test_known_3x3(self):
        m = Matrix([[6, 1, 1], [4, -2, 5], [2, 8, 7]])
        assert m.determinant() == pytest.approx(-306.0)
        assert m.determinant("lu") == pytest.approx(-306.0)

    def test_cofactor_matches_numpy(self, random_square):
        expected = np.linalg.det(random_square.to_numpy())
        assert random_square.determinant() == pytest.approx(expected, rel=1e-9)
        assert random_square.determinant("lu") == pytest.approx(expected, rel=1e-9)

    def test_singular_matrix_determinant(self):
        m = Matrix([[1, 2], [2, 4]])
        assert m.determinant() == pytest.approx(0.0)

    def test_unknown_method(self, square_2x2):
        with pytest.raises(InvalidValueError, match="Unknown determinant method"):
            square_2x2.determinant("qr")

    def test_not_square(self):
        m = Matrix.ones(2, 3)
        with pytest.raises(NotSquareError, match="Determinant is only defined for square matrices"):
            m.determinant()
        with pytest.raises(NotSquareError, match=r"Matrix shape: \[2, 3\]"):
            m.trace()


class TestPowerIteration:
    """Tests for dominant eigenpair estimation."""

    def test_symmetric_2x2_any_seed(self, symmetric_2x2, rng, rng_alternate):
        expected = 3.0 + math.sqrt(2.0)
        for generator in (rng, rng_alternate, np.random.default_rng(0)):
            pair = symmetric_2x2.power_iteration(rng=generator)
            assert pair.converged
            assert pair.eigenvalue == pytest.approx(expected, abs=1e-3)

    def test_eigenvector_is_unit_and_satisfies_equation(self, symmetric_2x2, rng):
        pair = symmetric_2x2.power_iteration(rng=rng)
        v = pair.eigenvector
        assert v.shape == (2, 1)
        assert np.linalg.norm(v.to_numpy()) == pytest.approx(1.0)
        residual = symmetric_2x2.multiply(v).subtract(v.multiply_scalar(pair.eigenvalue))
        assert np.max(np.abs(residual.to_numpy())) < 1e-4

    def test_matches_numpy_largest_eigenvalue(self, rng):
        a = rng.standard_normal((4, 4))
        sym = a @ a.T + np.diag([10.0, 0.0, 0.0, 0.0])
        pair = Matrix(sym).power_iteration(max_iterations=5000, rng=rng)
        assert pair.eigenvalue == pytest.approx(np.linalg.eigvalsh(sym)[-1], rel=1e-6)

    def test_reproducible_with_seed(self, symmetric_2x2):
        first = symmetric_2x2.power_iteration(rng=np.random.default_rng(7))
        second = symmetric_2x2.power_iteration(rng=np.random.default_rng(7))
        assert first.eigenvalue == second.eigenvalue
        assert first.iterations == second.iterations

    def test_zero_matrix(self, rng):
        pair = Matrix.zeros(3, 3).power_iteration(rng=rng)
        assert pair.eigenvalue == 0.0
        assert pair.converged
        assert pair.iterations == 1

    def test_iteration_cap_reports_not_converged(self, symmetric_2x2, rng, log_messages):
        pair = symmetric_2x2.power_iteration(max_iterations=1, rng=rng)
        assert not pair.converged
        assert pair.iterations == 1
        assert any(r["level"].name == "WARNING" for r in log_messages)

    def test_not_square(self, rng):
        with pytest.raises(NotSquareError, match="Power iteration"):
            Matrix.ones(2, 3).power_iteration(rng=rng)

    def test_invalid_max_iterations(self, symmetric_2x2):
        with pytest.raises(InvalidValueError, match="max_iterations"):
            symmetric_2x2.power_iteration(max_iterations=0)


class TestRepresentation:
    """Tests for __str__ / __repr__."""

    def test_str_is_tab_separated(self, square_2x2):
        assert str(square_2x2) == "1.0\t2.0\n3.0\t4.0"

    def test_repr(self, square_2x2):
        assert repr(square_2x2).startswith("Matrix(rows=2, cols=2")
