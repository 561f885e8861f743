"""
matrix_lab - Dense Linear Algebra, Decompositions and Gradient Descent
"""

__version__ = "1.0.0"

# =============================================================================
# CORE TYPES
# =============================================================================
from .types import (
    EigenPair,
    QRFactors,
    TrainingHistory,
    GradientDescentConfig,
    OptimizationMethod,
    DeterminantMethod,
    LossType,
)

# =============================================================================
# EXCEPTIONS
# =============================================================================
from .exceptions import (
    MatrixLabError,
    InvalidShapeError,
    NotSquareError,
    ShapeMismatchError,
    FeatureMismatchError,
    IndexOutOfBoundsError,
    InvalidValueError,
    InvalidScalarError,
    NumericalOverflowError,
    DivisionByZeroError,
    SingularMatrixError,
    NotFittedError,
    InsufficientSamplesError,
    UnknownOptimizationMethodError,
)

# =============================================================================
# MATRIX
# =============================================================================
from .matrix import Matrix

# =============================================================================
# DECOMPOSITION
# =============================================================================
from .qr import QR
from .svd import SVD
from .pca import PCA

# =============================================================================
# OPTIMIZATION
# =============================================================================
from .losses import (
    LossFunction,
    MeanSquaredError,
    BinaryCrossEntropy,
    get_loss_function,
)
from .models import (
    OptimizableModel,
    LinearRegression,
)
from .optimization import GradientDescent

# =============================================================================
# I/O
# =============================================================================
from .io import (
    save_matrix,
    load_matrix,
    matrix_to_payload,
    matrix_from_payload,
    MatrixFormat,
)

# =============================================================================
# PUBLIC API
# =============================================================================
__all__ = [
    "__version__",
    "EigenPair",
    "QRFactors",
    "TrainingHistory",
    "GradientDescentConfig",
    "OptimizationMethod",
    "DeterminantMethod",
    "LossType",
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
    "Matrix",
    "QR",
    "SVD",
    "PCA",
    "LossFunction",
    "MeanSquaredError",
    "BinaryCrossEntropy",
    "get_loss_function",
    "OptimizableModel",
    "LinearRegression",
    "GradientDescent",
    "save_matrix",
    "load_matrix",
    "matrix_to_payload",
    "matrix_from_payload",
    "MatrixFormat",
]
