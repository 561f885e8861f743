"""
optimization.py - Gradient Descent for Optimizable Models
=========================================================

GradientDescent drives any OptimizableModel / LossFunction pair with one of
three update rules:

    SGD       update = lr * g
    Momentum  v <- beta v + lr g;                update = v
    Adam      m <- b1 m + (1 - b1) g
              v <- b2 v + (1 - b2) g^2
              m_hat = m / (1 - b1^(t+1)),  v_hat = v / (1 - b2^(t+1))
              update = lr * m_hat / (sqrt(v_hat) + eps)

Each call to `optimize` starts from fresh optimizer state. Training stops
when two consecutive losses differ by less than the tolerance (no update is
applied on that iteration) or after `max_iterations`.

There is no gradient clipping or divergence detection: a learning rate that
is too large shows up as a growing loss history. Once a loss, prediction or
parameter update stops being finite the loop ends with a warning and
``converged=False``; no exception escapes `optimize`.

Example Usage:
-------------
    >>> from matrix_lab import Matrix, LinearRegression, MeanSquaredError
    >>> from matrix_lab.optimization import GradientDescent
    >>>
    >>> X = Matrix([[1], [2], [3], [4]])
    >>> y = Matrix([[3], [5], [7], [9]])
    >>> model = LinearRegression(1)
    >>> optimizer = GradientDescent(learning_rate=0.05, max_iterations=5000,
    ...                             tolerance=1e-12, method="sgd")
    >>> history = optimizer.optimize(model, X, y, MeanSquaredError())
    >>> history.converged
    True
"""

from __future__ import annotations

import math
from typing import List, Union

from loguru import logger

from .exceptions import NumericalOverflowError
from .losses import LossFunction
from .matrix import Matrix
from .models import OptimizableModel
from .types import (
    DEFAULT_ADAM_BETA1,
    DEFAULT_ADAM_BETA2,
    DEFAULT_ADAM_EPSILON,
    DEFAULT_GD_MAX_ITERATIONS,
    DEFAULT_GD_TOLERANCE,
    DEFAULT_LEARNING_RATE,
    DEFAULT_MOMENTUM_BETA,
    GradientDescentConfig,
    OptimizationMethod,
    TrainingHistory,
)


class GradientDescent:
    """
    First-order optimizer with SGD, Momentum and Adam updates.

    Parameters
    ----------
    learning_rate : float, default=0.01
    max_iterations : int, default=1000
    tolerance : float, default=1e-6
        Stop when |previous_loss - current_loss| < tolerance.
    method : {"sgd", "momentum", "adam"}, default="sgd"
    momentum_beta : float, default=0.9
    adam_beta1 : float, default=0.9
    adam_beta2 : float, default=0.999
    adam_epsilon : float, default=1e-8

    Raises
    ------
    UnknownOptimizationMethodError
        If `method` is not one of the supported variants.
    InvalidValueError
        If a hyperparameter is out of range.
    """

    def __init__(
        self,
        learning_rate: float = DEFAULT_LEARNING_RATE,
        max_iterations: int = DEFAULT_GD_MAX_ITERATIONS,
        tolerance: float = DEFAULT_GD_TOLERANCE,
        method: Union[OptimizationMethod, str] = OptimizationMethod.SGD,
        momentum_beta: float = DEFAULT_MOMENTUM_BETA,
        adam_beta1: float = DEFAULT_ADAM_BETA1,
        adam_beta2: float = DEFAULT_ADAM_BETA2,
        adam_epsilon: float = DEFAULT_ADAM_EPSILON,
    ):
        self.config = GradientDescentConfig(
            learning_rate=learning_rate,
            max_iterations=max_iterations,
            tolerance=tolerance,
            method=method,
            momentum_beta=momentum_beta,
            adam_beta1=adam_beta1,
            adam_beta2=adam_beta2,
            adam_epsilon=adam_epsilon,
        )

        self._velocity: List[Matrix] = []
        self._m: List[Matrix] = []
        self._v: List[Matrix] = []
        self._t = 0

    @classmethod
    def from_config(cls, config: GradientDescentConfig) -> "GradientDescent":
        optimizer = cls.__new__(cls)
        optimizer.config = config
        optimizer._velocity, optimizer._m, optimizer._v = [], [], []
        optimizer._t = 0
        return optimizer

    @property
    def method(self) -> OptimizationMethod:
        return self.config.method

    # =========================================================================
    # MAIN LOOP
    # =========================================================================

    def optimize(
        self,
        model: OptimizableModel,
        X: Matrix,
        y: Matrix,
        loss_fn: LossFunction,
    ) -> TrainingHistory:
        """
        Train `model` in place.

        Parameters
        ----------
        model : OptimizableModel
            Model whose parameters are updated.
        X : Matrix
            Inputs (n_samples x n_features).
        y : Matrix
            Targets, same shape as model.predict(X).
        loss_fn : LossFunction
            Loss to minimise.

        Returns
        -------
        TrainingHistory
            Loss per iteration and whether the tolerance criterion was met.
        """
        cfg = self.config
        logger.info(
            f"Starting {cfg.method.value} optimization: lr={cfg.learning_rate}, "
            f"max_iterations={cfg.max_iterations}, tolerance={cfg.tolerance}"
        )
        self._initialize_state(model)

        losses: List[float] = []
        previous_loss = math.inf
        converged = False

        for _ in range(cfg.max_iterations):
            try:
                current_loss = loss_fn.loss(y, model.predict(X))
            except NumericalOverflowError as exc:
                # Predictions overflowed, so the loss is unbounded.
                logger.warning(f"Prediction overflowed after {len(losses)} iterations: {exc}")
                losses.append(math.inf)
                break
            losses.append(current_loss)

            if not math.isfinite(current_loss):
                # Parameters cannot move past a non-finite loss.
                logger.warning(
                    f"Loss became non-finite after {len(losses)} iterations; "
                    f"learning rate {cfg.learning_rate} is likely too large"
                )
                break

            if abs(previous_loss - current_loss) < cfg.tolerance:
                converged = True
                break
            previous_loss = current_loss

            try:
                gradients = model.compute_gradients(X, y, loss_fn)
                model.update_parameters(self._compute_updates(gradients))
            except NumericalOverflowError as exc:
                logger.warning(
                    f"Parameter update overflowed after {len(losses)} iterations; "
                    f"stopping with the last finite parameters: {exc}"
                )
                break
            self._t += 1

        history = TrainingHistory(losses=losses, converged=converged)
        if converged:
            logger.success(
                f"Optimization converged after {history.iterations} iterations. "
                f"Final loss: {history.final_loss:.6g}"
            )
        else:
            logger.warning(
                f"Optimization stopped without converging after {history.iterations} "
                f"iterations. Final loss: {history.final_loss:.6g}"
            )
        return history

    # =========================================================================
    # UPDATE RULES
    # =========================================================================

    def _initialize_state(self, model: OptimizableModel) -> None:
        params = model.get_parameters()
        self._velocity = [Matrix.zeros(p.rows, p.cols) for p in params]
        self._m = [Matrix.zeros(p.rows, p.cols) for p in params]
        self._v = [Matrix.zeros(p.rows, p.cols) for p in params]
        self._t = 0

    def _compute_updates(self, gradients: List[Matrix]) -> List[Matrix]:
        method = self.config.method
        if method == OptimizationMethod.SGD:
            return self._sgd(gradients)
        if method == OptimizationMethod.MOMENTUM:
            return self._momentum(gradients)
        return self._adam(gradients)

    def _sgd(self, gradients: List[Matrix]) -> List[Matrix]:
        return [g.multiply_scalar(self.config.learning_rate) for g in gradients]

    def _momentum(self, gradients: List[Matrix]) -> List[Matrix]:
        cfg = self.config
        for i, g in enumerate(gradients):
            self._velocity[i] = (
                self._velocity[i].multiply_scalar(cfg.momentum_beta)
                .add(g.multiply_scalar(cfg.learning_rate))
            )
        return [v.clone() for v in self._velocity]

    def _adam(self, gradients: List[Matrix]) -> List[Matrix]:
        cfg = self.config
        b1, b2 = cfg.adam_beta1, cfg.adam_beta2
        m_correction = 1.0 - b1 ** (self._t + 1)
        v_correction = 1.0 - b2 ** (self._t + 1)

        updates = []
        for i, g in enumerate(gradients):
            self._m[i] = self._m[i].multiply_scalar(b1).add(g.multiply_scalar(1.0 - b1))
            self._v[i] = (
                self._v[i].multiply_scalar(b2)
                .add(g.elementwise_multiply(g).multiply_scalar(1.0 - b2))
            )

            m_hat = self._m[i].divide_scalar(m_correction)
            v_hat = self._v[i].divide_scalar(v_correction)

            step = m_hat.elementwise_divide(v_hat.elementwise_sqrt().add_scalar(cfg.adam_epsilon))
            updates.append(step.multiply_scalar(cfg.learning_rate))
        return updates


__all__ = ["GradientDescent"]
