from stridegrad.backend import (
    NumpyBackend,
    TritonBackend,
    available_backends,
    get_backend,
    set_backend,
)
from stridegrad.errors import (
    AllocationFailure,
    BackendMismatch,
    BackendUnavailable,
    IndexOutOfBounds,
    InvalidShape,
    NullGradientNode,
    RankMismatch,
    ShapeMismatch,
    StridegradError,
)
from stridegrad.functional import (
    gradients,
    index,
    mm,
    negate,
    relu,
    relu_derivative,
    requires_gradients,
    transpose,
)
from stridegrad.rng import manual_seed
from stridegrad.tensor import Tensor, TensorView

__all__ = [
    "Tensor",
    "TensorView",
    "NumpyBackend",
    "TritonBackend",
    "available_backends",
    "get_backend",
    "set_backend",
    "manual_seed",
    "gradients",
    "index",
    "mm",
    "negate",
    "relu",
    "relu_derivative",
    "requires_gradients",
    "transpose",
    "AllocationFailure",
    "BackendMismatch",
    "BackendUnavailable",
    "IndexOutOfBounds",
    "InvalidShape",
    "NullGradientNode",
    "RankMismatch",
    "ShapeMismatch",
    "StridegradError",
]
