"""
test_losses.py - Tests for Loss Functions

Tests cover:
- Known values for MSE and Binary Cross-Entropy
- Gradients against central finite differences
- Probability clipping
- Protocol conformance and name lookup
"""

import math

import pytest
import numpy as np

from matrix_lab import (
    Matrix,
    LossFunction,
    LossType,
    MeanSquaredError,
    BinaryCrossEntropy,
    get_loss_function,
    InvalidValueError,
    ShapeMismatchError,
)


def _numerical_gradient(loss_fn, y_true: Matrix, y_pred: Matrix, h: float = 1e-6) -> np.ndarray:
    base = y_pred.to_numpy()
    grad = np.zeros_like(base)
    for idx in np.ndindex(base.shape):
        plus, minus = base.copy(), base.copy()
        plus[idx] += h
        minus[idx] -= h
        grad[idx] = (loss_fn.loss(y_true, Matrix(plus)) - loss_fn.loss(y_true, Matrix(minus))) / (2 * h)
    return grad


class TestMeanSquaredError:
    """Tests for MeanSquaredError."""

    def test_known_value(self):
        loss = MeanSquaredError().loss(Matrix([[1], [2]]), Matrix([[2], [4]]))
        assert loss == pytest.approx(2.5)

    def test_zero_for_perfect_prediction(self, rng):
        y = Matrix(rng.standard_normal((4, 2)))
        assert MeanSquaredError().loss(y, y.clone()) == 0.0

    def test_known_gradient(self):
        grad = MeanSquaredError().gradient(Matrix([[1], [2]]), Matrix([[2], [4]]))
        assert grad.equals(Matrix([[1], [2]]))

    def test_gradient_matches_finite_differences(self, rng):
        loss_fn = MeanSquaredError()
        y_true = Matrix(rng.standard_normal((3, 2)))
        y_pred = Matrix(rng.standard_normal((3, 2)))
        analytic = loss_fn.gradient(y_true, y_pred).to_numpy()
        assert np.allclose(analytic, _numerical_gradient(loss_fn, y_true, y_pred), atol=1e-6)

    def test_shape_mismatch(self):
        with pytest.raises(ShapeMismatchError, match="Shape mismatch between true"):
            MeanSquaredError().loss(Matrix([[1], [2]]), Matrix([[1, 2]]))
        with pytest.raises(ShapeMismatchError):
            MeanSquaredError().gradient(Matrix([[1], [2]]), Matrix([[1]]))


class TestBinaryCrossEntropy:
    """Tests for BinaryCrossEntropy."""

    def test_known_value(self):
        loss = BinaryCrossEntropy().loss(Matrix([[1], [0]]), Matrix([[0.9], [0.1]]))
        assert loss == pytest.approx(-math.log(0.9))

    def test_known_gradient(self):
        grad = BinaryCrossEntropy().gradient(Matrix([[1], [0]]), Matrix([[0.9], [0.1]]))
        expected = np.array([[-0.1 / 0.09 / 2], [0.1 / 0.09 / 2]])
        assert np.allclose(grad.to_numpy(), expected)

    def test_gradient_matches_finite_differences(self, rng):
        loss_fn = BinaryCrossEntropy()
        y_true = Matrix((rng.random((4, 1)) > 0.5).astype(float))
        y_pred = Matrix(rng.uniform(0.2, 0.8, (4, 1)))
        analytic = loss_fn.gradient(y_true, y_pred).to_numpy()
        assert np.allclose(analytic, _numerical_gradient(loss_fn, y_true, y_pred), atol=1e-5)

    def test_extreme_predictions_are_clipped(self):
        """Predictions of exactly 0 or 1 give large but finite values."""
        loss_fn = BinaryCrossEntropy()
        y_true = Matrix([[0], [1]])
        y_pred = Matrix([[1], [0]])

        loss = loss_fn.loss(y_true, y_pred)
        assert math.isfinite(loss)
        assert loss > 30.0
        assert np.all(np.isfinite(loss_fn.gradient(y_true, y_pred).to_numpy()))

    def test_shape_mismatch(self):
        with pytest.raises(ShapeMismatchError):
            BinaryCrossEntropy().loss(Matrix([[1]]), Matrix([[0.5, 0.5]]))


class TestLossLookup:
    """Tests for the LossFunction protocol and get_loss_function."""

    def test_builtins_satisfy_protocol(self):
        assert isinstance(MeanSquaredError(), LossFunction)
        assert isinstance(BinaryCrossEntropy(), LossFunction)

    def test_custom_loss_satisfies_protocol(self):
        class MeanAbsoluteError:
            def loss(self, y_true, y_pred):
                return float(np.mean(np.abs(y_pred.to_numpy() - y_true.to_numpy())))

            def gradient(self, y_true, y_pred):
                diff = y_pred.to_numpy() - y_true.to_numpy()
                return Matrix(np.sign(diff) / diff.size)

        assert isinstance(MeanAbsoluteError(), LossFunction)
        assert not isinstance(object(), LossFunction)

    @pytest.mark.parametrize("name, expected", [
        ("mse", MeanSquaredError),
        (LossType.MSE, MeanSquaredError),
        ("binary_cross_entropy", BinaryCrossEntropy),
    ])
    def test_lookup(self, name, expected):
        assert isinstance(get_loss_function(name), expected)

    def test_unknown_loss(self):
        with pytest.raises(InvalidValueError, match="Unknown loss function: 'hinge'"):
            get_loss_function("hinge")
