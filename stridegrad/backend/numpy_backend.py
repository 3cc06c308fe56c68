import numpy as np

from ..config import get_logger
from ..errors import AllocationFailure
from ..shape import numel, row_major_strides
from .base import Backend, BinaryOp, UnaryOp

logger = get_logger(__name__)

_BINARY = {
    BinaryOp.ADD: np.add,
    BinaryOp.SUB: np.subtract,
    BinaryOp.MUL: np.multiply,
    BinaryOp.DIV: np.divide,
}


def _decode(n_elements, decode_strides, *operand_strides):
    """Flat task index -> one buffer offset array per operand.

    Each of the ``n_elements`` tasks peels its coordinates off with
    division/remainder against ``decode_strides`` (largest first) and maps them
    through every operand's strides.
    """
    rem = np.arange(n_elements, dtype=np.int64)
    offsets = [np.zeros(n_elements, dtype=np.int64) for _ in operand_strides]
    for i, stride in enumerate(decode_strides):
        coord, rem = np.divmod(rem, stride)
        for off, strides in zip(offsets, operand_strides):
            if strides[i]:
                off += coord * strides[i]
    return offsets


def _relu(x):
    return np.where(x > 0, x, 0).astype(x.dtype, copy=False)


def _relu_derivative(x):
    return np.where(x > 0, 1, 0).astype(x.dtype, copy=False)


_UNARY = {
    UnaryOp.NEG: np.negative,
    UnaryOp.RELU: _relu,
    UnaryOp.RELU_DERIVATIVE: _relu_derivative,
    UnaryOp.COPY: lambda x: x,
}


class NumpyBackend(Backend):
    """Host reference backend.

    A "launch" evaluates every task of the grid at once with vectorised numpy,
    so it runs synchronously and is the ground truth for the Triton kernels.
    """

    name = "numpy"

    def allocate(self, nbytes):
        n_elements = nbytes // self.itemsize
        try:
            handle = np.empty(n_elements, dtype=self.dtype)
        except MemoryError as exc:
            raise AllocationFailure(self.name, nbytes, exc) from exc
        logger.debug("allocated %d bytes", nbytes)
        return handle

    def free(self, handle):
        logger.debug("freed %d bytes", handle.nbytes)

    def copy_host_to_device(self, handle, host):
        host = np.asarray(host, dtype=self.dtype).reshape(-1)
        handle[: host.size] = host

    def copy_device_to_host(self, handle, count=None, offset=0):
        if count is None:
            count = handle.size - offset
        return handle[offset : offset + count].copy()

    def fill(self, out, n_elements, value):
        out[:n_elements] = value

    def binary(self, op, out, a, b, n_elements, out_strides, a_strides, b_strides):
        a_off, b_off = _decode(n_elements, out_strides, a_strides, b_strides)
        # IEEE semantics for division by zero, without numpy's warnings.
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            out[:n_elements] = _BINARY[BinaryOp(op)](a[a_off], b[b_off])

    def unary(self, op, out, x, n_elements, out_strides, x_strides):
        (x_off,) = _decode(n_elements, out_strides, x_strides)
        out[:n_elements] = _UNARY[UnaryOp(op)](x[x_off])

    def reduce_sum(self, out, x, shape, strides):
        n_elements = numel(shape)
        (x_off,) = _decode(n_elements, row_major_strides(shape), strides)
        # np.sum reduces pairwise, which is the host-side tree reduction.
        out[0] = np.sum(x[x_off], dtype=self.dtype)

    def reduce_to(self, out, x, plan):
        n_out = numel(plan.shape)
        (base,) = _decode(n_out, plan.out_strides, plan.src_strides)
        (walk,) = _decode(plan.reduced_count, plan.reduced_decode, plan.reduced_strides)
        out[:n_out] = np.sum(x[base[:, None] + walk[None, :]], axis=1, dtype=self.dtype)

    def matmul(self, out, a, b, plan):
        (a_base, b_base) = _decode(
            plan.batch_count, plan.batch_decode, plan.a_batch_strides, plan.b_batch_strides
        )
        rows = np.arange(plan.height, dtype=np.int64)
        cols = np.arange(plan.width, dtype=np.int64)
        ks = np.arange(plan.shared, dtype=np.int64)
        # (batch, height, shared) and (batch, shared, width) gathers through each operand's strides.
        a_idx = a_base[:, None, None] + rows[None, :, None] * plan.stride_am + ks[None, None, :] * plan.stride_ak
        b_idx = b_base[:, None, None] + ks[None, :, None] * plan.stride_bk + cols[None, None, :] * plan.stride_bn
        product = np.matmul(a[a_idx], b[b_idx])
        out[: product.size] = product.reshape(-1)
