"""
conftest.py - Pytest Configuration and Shared Fixtures

This file contains fixtures used across all test modules. Fixtures are
organized by category:
- Random number generators (for reproducibility)
- Matrices with known properties
- Regression data
- Log capture
"""

import pytest
import numpy as np
from loguru import logger

from matrix_lab import Matrix


# =============================================================================
# RANDOM NUMBER GENERATORS
# =============================================================================

@pytest.fixture
def rng():
    """
    Provide a seeded random number generator for reproducible tests.

    All tests should use this fixture (or derive from it) to ensure
    reproducibility across runs.
    """
    return np.random.default_rng(seed=42)


@pytest.fixture
def rng_alternate():
    """Alternate RNG with different seed for comparison tests."""
    return np.random.default_rng(seed=12345)


# =============================================================================
# MATRICES
# =============================================================================

@pytest.fixture
def square_2x2():
    """[[1, 2], [3, 4]]: determinant -2, trace 5."""
    return Matrix([[1, 2], [3, 4]])


@pytest.fixture
def symmetric_2x2():
    """[[4, 1], [1, 2]]: eigenvalues 3 +/- sqrt(2)."""
    return Matrix([[4, 1], [1, 2]])


@pytest.fixture
def random_square(rng):
    """A random 5x5 matrix with N(0, 1) entries."""
    return Matrix(rng.standard_normal((5, 5)))


@pytest.fixture
def known_spectrum_matrix(rng):
    """
    A 6x4 matrix with singular values exactly [10, 5, 2, 1].

    Built as U @ diag(s) @ V.T from orthonormal factors, so the singular
    values are well separated and power iteration converges quickly.
    """
    U, _ = np.linalg.qr(rng.standard_normal((6, 4)))
    V, _ = np.linalg.qr(rng.standard_normal((4, 4)))
    s = np.array([10.0, 5.0, 2.0, 1.0])
    return Matrix(U @ np.diag(s) @ V.T)


@pytest.fixture
def rank_one_matrix():
    """A 3x2 matrix of rank 1 (second column = 2 x first)."""
    return Matrix([[1, 2], [2, 4], [3, 6]])


# =============================================================================
# REGRESSION DATA
# =============================================================================

@pytest.fixture
def line_data():
    """Four points on y = 2x + 1."""
    X = Matrix([[1], [2], [3], [4]])
    y = Matrix([[3], [5], [7], [9]])
    return X, y


# =============================================================================
# LOG CAPTURE
# =============================================================================

@pytest.fixture
def log_messages():
    """
    Collect loguru messages emitted during a test.

    loguru does not propagate to the stdlib logging module, so caplog does
    not see its records; a temporary sink does.
    """
    messages = []
    handler_id = logger.add(
        lambda message: messages.append(message.record),
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)


# =============================================================================
# HELPER FIXTURES
# =============================================================================

@pytest.fixture
def tolerance():
    """Standard numerical tolerance for float comparisons."""
    return {"rtol": 1e-5, "atol": 1e-8}


@pytest.fixture
def iterative_tolerance():
    """Looser tolerance for quantities produced by power iteration."""
    return {"rtol": 1e-4, "atol": 1e-4}
