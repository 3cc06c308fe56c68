from enum import IntEnum

import numpy as np


class BinaryOp(IntEnum):
    ADD = 0
    SUB = 1
    MUL = 2
    DIV = 3


class UnaryOp(IntEnum):
    NEG = 0
    RELU = 1
    RELU_DERIVATIVE = 2
    COPY = 3


class Backend:
    """Backend interface: the device memory service plus every kernel stridegrad.ops launches.

    Handles are opaque to callers; kernels receive handles and stride tuples and
    always write a dense row-major output of ``n_elements`` values.
    """

    name = "base"
    dtype = np.float32
    itemsize = np.dtype(np.float32).itemsize
    # Largest batch count one matmul launch can cover; None means unbounded.
    max_matmul_batch = None

    def __repr__(self):
        return f"{type(self).__name__}()"

    def allocate(self, nbytes):
        # Used by Buffer for every tensor allocation.
        raise NotImplementedError

    def free(self, handle):
        # Called from the Buffer finalizer once the last owner is gone.
        raise NotImplementedError

    def copy_host_to_device(self, handle, host):
        # Used by Tensor.from_values and the random factories.
        raise NotImplementedError

    def copy_device_to_host(self, handle, count=None, offset=0):
        # Used by indexing (count=1) and by to_numpy/format (whole buffer).
        raise NotImplementedError

    def fill(self, out, n_elements, value):
        # Used by Tensor.fill/zeros/ones.
        raise NotImplementedError

    def binary(self, op, out, a, b, n_elements, out_strides, a_strides, b_strides):
        # Broadcast elementwise add/sub/mul/div; strides come from shape.resolve_broadcast.
        raise NotImplementedError

    def unary(self, op, out, x, n_elements, out_strides, x_strides):
        # Negate, relu, relu derivative and strided copy.
        raise NotImplementedError

    def reduce_sum(self, out, x, shape, strides):
        # Sum of every element of a (possibly strided) tensor into out[0].
        raise NotImplementedError

    def reduce_to(self, out, x, plan):
        # Used by the backward pass to fold broadcast gradients; plan is a shape.Reduction.
        raise NotImplementedError

    def matmul(self, out, a, b, plan):
        # Batched strided matmul; plan is a shape.Matmul.
        raise NotImplementedError

    def synchronize(self):
        # Block until queued kernels have finished.
        return None
