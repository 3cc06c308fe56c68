"""
Kernel dispatch for tensors.

These functions resolve shapes, allocate the output and launch one backend
kernel. They never touch the autograd graph: ``stridegrad.tensor`` wraps them
to attach nodes, and ``stridegrad.autograd`` calls them directly when routing
gradients.
"""

from .backend import BinaryOp, UnaryOp
from .config import get_logger
from .errors import BackendMismatch, ShapeMismatch
from .shape import (
    expand_strides,
    resolve_broadcast,
    resolve_matmul,
    resolve_reduction,
    row_major_strides,
    swap_dims,
)

logger = get_logger(__name__)


def _tensor_types():
    from .tensor import Tensor, TensorView  # late import to avoid circular deps

    return Tensor, TensorView


def _same_backend(a, b):
    if a.backend is not b.backend:
        raise BackendMismatch(a.backend.name, b.backend.name)
    return a.backend


def empty(shape, backend):
    Tensor, _ = _tensor_types()
    return Tensor(shape, backend=backend)


def fill(value, shape, backend):
    out = empty(shape, backend)
    backend.fill(out.buffer.handle, out.n_elements, float(value))
    return out


def view(x, shape, strides):
    """A TensorView of ``x``'s buffer with new metadata."""
    _, TensorView = _tensor_types()
    return TensorView(x, shape, strides)


def transpose(x, dim1, dim2):
    shape, strides = swap_dims(x.shape, x.strides, dim1, dim2)
    return view(x, shape, strides)


def broadcast_to(x, shape):
    return view(x, tuple(shape), expand_strides(x.shape, x.strides, shape))


def binary(op, a, b):
    backend = _same_backend(a, b)
    plan = resolve_broadcast(a.shape, a.strides, b.shape, b.strides)
    out = empty(plan.shape, backend)
    logger.debug("%s %s x %s -> %s", BinaryOp(op).name, a.shape, b.shape, plan.shape)
    backend.binary(
        op,
        out.buffer.handle,
        a.buffer.handle,
        b.buffer.handle,
        out.n_elements,
        plan.out_strides,
        plan.a_strides,
        plan.b_strides,
    )
    return out


def add(a, b):
    return binary(BinaryOp.ADD, a, b)


def sub(a, b):
    return binary(BinaryOp.SUB, a, b)


def mul(a, b):
    return binary(BinaryOp.MUL, a, b)


def div(a, b):
    return binary(BinaryOp.DIV, a, b)


def unary(op, x):
    out = empty(x.shape, x.backend)
    x.backend.unary(op, out.buffer.handle, x.buffer.handle, out.n_elements, out.strides, x.strides)
    return out


def neg(x):
    return unary(UnaryOp.NEG, x)


def relu(x):
    return unary(UnaryOp.RELU, x)


def relu_derivative(x):
    return unary(UnaryOp.RELU_DERIVATIVE, x)


def contiguous(x):
    return unary(UnaryOp.COPY, x)


def copy_into(dst, src):
    """Write ``src`` (broadcast to ``dst.shape``) into ``dst``'s own buffer."""
    if dst.is_view:
        raise ShapeMismatch("copy_into", dst.shape, detail="destination must own its buffer")
    backend = _same_backend(dst, src)
    src_strides = expand_strides(src.shape, src.strides, dst.shape)
    backend.unary(
        UnaryOp.COPY,
        dst.buffer.handle,
        src.buffer.handle,
        dst.n_elements,
        row_major_strides(dst.shape),
        src_strides,
    )
    return dst


def matmul(a, b):
    backend = _same_backend(a, b)
    plan = resolve_matmul(a.shape, a.strides, b.shape, b.strides)
    limit = backend.max_matmul_batch
    if limit is not None and plan.batch_count > limit:
        raise ShapeMismatch(
            "mm", a.shape, b.shape, detail=f"batch count {plan.batch_count} exceeds {backend.name} limit {limit}"
        )
    out = empty(plan.shape, backend)
    logger.debug("mm %s @ %s -> %s", a.shape, b.shape, plan.shape)
    backend.matmul(out.buffer.handle, a.buffer.handle, b.buffer.handle, plan)
    return out


def reduce_sum(x):
    out = empty((1,) * x.rank, x.backend)
    x.backend.reduce_sum(out.buffer.handle, x.buffer.handle, x.shape, x.strides)
    return out


def reduce_to(x, shape):
    """Sum ``x`` over the dims where ``shape`` is 1; returns ``x`` when shapes match."""
    shape = tuple(shape)
    if x.shape == shape:
        return x
    plan = resolve_reduction(x.shape, x.strides, shape)
    out = empty(shape, x.backend)
    x.backend.reduce_to(out.buffer.handle, x.buffer.handle, plan)
    return out
