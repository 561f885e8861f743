"""
io.py - Matrix Serialization and Deserialization

This module reads and writes Matrix objects for the command line tools.
Supported formats:
- CSV: one row per line, comma-separated, ``#`` starts a comment
- JSON: either a bare nested list or a payload object

    {"rows": 2, "cols": 2, "data": [[1, 2], [3, 4]]}

``rows``/``cols`` (or ``shape``) are optional in a payload; when present they
must agree with ``data``.

Example Usage:
-------------
    >>> from matrix_lab.io import save_matrix, load_matrix, MatrixFormat
    >>>
    >>> save_matrix(A, "a.json", format=MatrixFormat.JSON)
    >>> B = load_matrix("a.json")
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np
from loguru import logger

from .exceptions import InvalidShapeError, InvalidValueError
from .matrix import Matrix


class MatrixFormat(str, Enum):
    """Supported matrix file formats."""
    CSV = "csv"
    JSON = "json"


def save_matrix(
    matrix: Matrix,
    path: Union[str, Path],
    format: MatrixFormat = MatrixFormat.CSV,
) -> None:
    """
    Save a matrix to disk.

    Parameters
    ----------
    matrix : Matrix
        The matrix to save.
    path : str or Path
        Destination file path.
    format : MatrixFormat, default=MatrixFormat.CSV
        Output format.
    """
    path = Path(path)
    format = MatrixFormat(format)

    if format == MatrixFormat.CSV:
        np.savetxt(path, matrix.to_numpy(), delimiter=",", fmt="%.17g")
    else:
        with open(path, "w") as f:
            json.dump(matrix_to_payload(matrix), f, indent=2)

    logger.debug(f"Saved {matrix.rows}x{matrix.cols} matrix to {path} ({format.value})")


def load_matrix(path: Union[str, Path]) -> Matrix:
    """
    Load a matrix from disk.

    Parameters
    ----------
    path : str or Path
        Source file path. Format is inferred from the extension.

    Returns
    -------
    Matrix

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the extension is not recognized.
    InvalidShapeError, InvalidValueError
        If the contents do not describe a valid matrix.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Matrix file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        matrix = _load_csv(path)
    elif suffix == ".json":
        matrix = _load_json(path)
    else:
        raise ValueError(f"Unknown matrix format: {path.suffix}")

    logger.debug(f"Loaded {matrix.rows}x{matrix.cols} matrix from {path}")
    return matrix


def matrix_to_payload(matrix: Matrix) -> Dict[str, Any]:
    """Plain-dict form of a matrix (JSON serializable)."""
    return {"rows": matrix.rows, "cols": matrix.cols, "data": matrix.data}


def matrix_from_payload(payload: Union[Dict[str, Any], list]) -> Matrix:
    """
    Build a matrix from a payload dict or a bare nested list.

    Raises
    ------
    InvalidShapeError
        If declared dimensions disagree with the data.
    InvalidValueError
        If the payload has no ``data`` entry.
    """
    if isinstance(payload, list):
        return Matrix(payload)
    if not isinstance(payload, dict) or "data" not in payload:
        raise InvalidValueError("Matrix payload must be a list or an object with a 'data' field")

    matrix = Matrix(payload["data"])

    declared_rows = payload.get("rows")
    declared_cols = payload.get("cols")
    if "shape" in payload:
        shape = payload["shape"]
        if not isinstance(shape, (list, tuple)) or len(shape) != 2:
            raise InvalidShapeError(f"Payload shape must be [rows, cols], got {shape!r}")
        declared_rows, declared_cols = shape

    if declared_rows is not None and declared_rows != matrix.rows:
        raise InvalidShapeError(
            f"Payload declares {declared_rows} rows but data has {matrix.rows}"
        )
    if declared_cols is not None and declared_cols != matrix.cols:
        raise InvalidShapeError(
            f"Payload declares {declared_cols} columns but data has {matrix.cols}"
        )
    return matrix


def _load_csv(path: Path) -> Matrix:
    with open(path, "r") as f:
        lines = [line for line in f if line.strip() and not line.lstrip().startswith("#")]
    if not lines:
        raise InvalidShapeError(f"Matrix file is empty: {path}")

    try:
        data = np.loadtxt(lines, delimiter=",", comments="#", ndmin=2)
    except ValueError as exc:
        raise InvalidValueError(f"Could not parse CSV matrix {path}: {exc}") from exc
    return Matrix(data)


def _load_json(path: Path) -> Matrix:
    with open(path, "r") as f:
        payload = json.load(f)
    return matrix_from_payload(payload)


__all__ = [
    "MatrixFormat",
    "save_matrix",
    "load_matrix",
    "matrix_to_payload",
    "matrix_from_payload",
]
