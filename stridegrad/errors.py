"""
Errors raised by stridegrad.

Every check happens before a kernel is launched, in the operation that received
the bad input. Nothing here is retried or recovered internally.
"""


class StridegradError(Exception):
    """Base class for all stridegrad errors."""


class ShapeMismatch(StridegradError, ValueError):
    """Operand shapes cannot be combined (broadcast, matmul, value counts)."""

    def __init__(self, op, *shapes, detail=None):
        shown = " vs ".join(str(tuple(s)) for s in shapes)
        msg = f"{op}: incompatible shapes {shown}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)
        self.op = op
        self.shapes = tuple(tuple(s) for s in shapes)


class InvalidShape(StridegradError, ValueError):
    """A shape is empty or holds a non-positive or non-integer size."""


class RankMismatch(StridegradError, IndexError):
    """A dimension or coordinate count does not fit the tensor rank."""

    def __init__(self, op, rank, got):
        super().__init__(f"{op}: got {got} for a rank-{rank} tensor")
        self.op = op
        self.rank = rank


class IndexOutOfBounds(StridegradError, IndexError):
    """A coordinate lies outside the tensor shape."""

    def __init__(self, coords, shape):
        super().__init__(
            f"index {tuple(coords)} is out of bounds for shape {tuple(shape)}"
        )
        self.coords = tuple(coords)
        self.shape = tuple(shape)


class NullGradientNode(StridegradError, RuntimeError):
    """Gradients were requested from a tensor that has no leaf to read them from."""


class AllocationFailure(StridegradError, MemoryError):
    """The backend could not provide a buffer of the requested size."""

    def __init__(self, backend, nbytes, cause=None):
        msg = f"{backend}: failed to allocate {nbytes} bytes"
        if cause is not None:
            msg = f"{msg}: {cause}"
        super().__init__(msg)
        self.backend = backend
        self.nbytes = nbytes


class BackendMismatch(StridegradError, RuntimeError):
    """Raised when operands live on different backends."""

    def __init__(self, backend_a, backend_b):
        super().__init__(f"backend mismatch: '{backend_a}' vs '{backend_b}'")
        self.backend_a = backend_a
        self.backend_b = backend_b


class BackendUnavailable(StridegradError, RuntimeError):
    """The requested backend cannot run in this environment."""


__all__ = [
    "StridegradError",
    "ShapeMismatch",
    "InvalidShape",
    "RankMismatch",
    "IndexOutOfBounds",
    "NullGradientNode",
    "AllocationFailure",
    "BackendMismatch",
    "BackendUnavailable",
]
