import triton
import triton.language as tl

from ._common import _MATMUL_BLOCK_M, _MATMUL_BLOCK_N, _device_strides


@triton.jit
def _strided_bmm_kernel(
    a_ptr,
    b_ptr,
    c_ptr,
    M,
    N,
    K,
    batch_rank,
    batch_decode_ptr,
    a_batch_strides_ptr,
    b_batch_strides_ptr,
    stride_am,
    stride_ak,
    stride_bk,
    stride_bn,
    BLOCK_M: tl.constexpr,
    BLOCK_N: tl.constexpr,
):
    # One program per (row tile, column tile, batch index); every lane of the
    # tile is one (row, column) task.
    pid_m = tl.program_id(0)
    pid_n = tl.program_id(1)
    pid_b = tl.program_id(2)

    # Batch index -> per-operand batch offsets through each operand's own strides.
    rem = pid_b.to(tl.int64)
    a_base = rem * 0
    b_base = rem * 0
    for i in range(batch_rank):
        stride = tl.load(batch_decode_ptr + i)
        coord = rem // stride
        rem = rem - coord * stride
        a_base += coord * tl.load(a_batch_strides_ptr + i)
        b_base += coord * tl.load(b_batch_strides_ptr + i)

    offs_m = pid_m * BLOCK_M + tl.arange(0, BLOCK_M)
    offs_n = pid_n * BLOCK_N + tl.arange(0, BLOCK_N)
    mask_m = offs_m < M
    mask_n = offs_n < N

    a_ptrs = a_ptr + a_base + offs_m.to(tl.int64) * stride_am
    b_ptrs = b_ptr + b_base + offs_n.to(tl.int64) * stride_bn

    # fp32 outer-product accumulation over the shared dim.
    accumulator = tl.zeros((BLOCK_M, BLOCK_N), dtype=tl.float32)
    for k in range(0, K):
        a = tl.load(a_ptrs + k * stride_ak, mask=mask_m, other=0.0)
        b = tl.load(b_ptrs + k * stride_bk, mask=mask_n, other=0.0)
        accumulator += a[:, None] * b[None, :]

    c_batch_ptr = c_ptr + pid_b.to(tl.int64) * M * N
    c_ptrs = c_batch_ptr + offs_m[:, None] * N + offs_n[None, :]
    tl.store(c_ptrs, accumulator, mask=mask_m[:, None] & mask_n[None, :])


def _strided_bmm(out, a, b, plan):
    device = out.device
    grid = (
        triton.cdiv(plan.height, _MATMUL_BLOCK_M),
        triton.cdiv(plan.width, _MATMUL_BLOCK_N),
        plan.batch_count,
    )
    _strided_bmm_kernel[grid](
        a,
        b,
        out,
        plan.height,
        plan.width,
        plan.shared,
        len(plan.batch_shape),
        _device_strides(plan.batch_decode, device),
        _device_strides(plan.a_batch_strides, device),
        _device_strides(plan.b_batch_strides, device),
        plan.stride_am,
        plan.stride_ak,
        plan.stride_bk,
        plan.stride_bn,
        BLOCK_M=_MATMUL_BLOCK_M,
        BLOCK_N=_MATMUL_BLOCK_N,
    )
    return out


__all__ = [
    "_strided_bmm_kernel",
    "_strided_bmm",
]
