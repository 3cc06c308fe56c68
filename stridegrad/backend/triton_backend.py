import numpy as np
import torch

from ..config import get_logger
from ..errors import AllocationFailure, BackendUnavailable
from .base import Backend, BinaryOp, UnaryOp

logger = get_logger(__name__)


class TritonBackend(Backend):
    """CUDA backend: buffers are flat float32 torch tensors, kernels are Triton.

    torch is only used as the device memory service (allocation and host/device
    copies); every computation goes through a Triton kernel. Launches are
    queued on torch's current stream and only host reads synchronise.
    """

    name = "triton"
    # CUDA grid z-dimension limit; matmul launches one grid layer per batch.
    max_matmul_batch = 65535

    def __init__(self, device="cuda"):
        try:
            import triton  # noqa: F401
            import triton.language as tl  # noqa: F401
        except Exception as exc:
            raise BackendUnavailable(
                "Triton backend requires Triton to be installed"
            ) from exc
        if not torch.cuda.is_available():
            raise BackendUnavailable("Triton backend requires CUDA to be available")
        super().__init__()
        self.device = torch.device(device)

        from .triton.kernels._common import _fill_const
        from .triton.kernels.elementwise import _broadcast_binary, _strided_unary
        from .triton.kernels.matmul import _strided_bmm
        from .triton.kernels.reduce import _reduce_to, _strided_sum

        self._kernels = {
            "fill": _fill_const,
            "binary": _broadcast_binary,
            "unary": _strided_unary,
            "sum": _strided_sum,
            "reduce_to": _reduce_to,
            "matmul": _strided_bmm,
        }

    def __repr__(self):
        return f"TritonBackend(device={str(self.device)!r})"

    def allocate(self, nbytes):
        n_elements = nbytes // self.itemsize
        try:
            handle = torch.empty((n_elements,), dtype=torch.float32, device=self.device)
        except torch.cuda.OutOfMemoryError as exc:
            raise AllocationFailure(self.name, nbytes, exc) from exc
        logger.debug("allocated %d bytes on %s", nbytes, self.device)
        return handle

    def free(self, handle):
        # The caching allocator reclaims the block once the last reference drops.
        logger.debug("freed %d bytes on %s", handle.numel() * self.itemsize, self.device)

    def copy_host_to_device(self, handle, host):
        host = np.ascontiguousarray(host, dtype=np.float32).reshape(-1)
        handle[: host.size].copy_(torch.from_numpy(host))

    def copy_device_to_host(self, handle, count=None, offset=0):
        if count is None:
            count = handle.numel() - offset
        return handle[offset : offset + count].cpu().numpy()

    def fill(self, out, n_elements, value):
        self._kernels["fill"](out, n_elements, value)

    def binary(self, op, out, a, b, n_elements, out_strides, a_strides, b_strides):
        self._kernels["binary"](
            BinaryOp(op), out, a, b, n_elements, out_strides, a_strides, b_strides
        )

    def unary(self, op, out, x, n_elements, out_strides, x_strides):
        self._kernels["unary"](UnaryOp(op), out, x, n_elements, out_strides, x_strides)

    def reduce_sum(self, out, x, shape, strides):
        self._kernels["sum"](out, x, shape, strides)

    def reduce_to(self, out, x, plan):
        self._kernels["reduce_to"](out, x, plan)

    def matmul(self, out, a, b, plan):
        self._kernels["matmul"](out, a, b, plan)

    def synchronize(self):
        torch.cuda.synchronize(self.device)
