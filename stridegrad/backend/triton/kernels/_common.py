import torch
import triton
import triton.language as tl

_BLOCK_SIZE = 1024
_MATMUL_BLOCK_M = 32
_MATMUL_BLOCK_N = 32


def _device_strides(values, device):
    # Stride tables live in device memory so every program can read them.
    # Rank-0 tables (e.g. no batch dims) still get one slot; the loops never read it.
    values = tuple(int(v) for v in values) or (0,)
    return torch.tensor(values, dtype=torch.int64, device=device)


@triton.jit
def _decode_one(offs, rank, decode_ptr, x_strides_ptr):
    # Flat task index -> buffer offset of one operand.
    rem = offs.to(tl.int64)
    x_off = rem * 0
    for i in range(rank):
        stride = tl.load(decode_ptr + i)
        coord = rem // stride
        rem = rem - coord * stride
        x_off += coord * tl.load(x_strides_ptr + i)
    return x_off


@triton.jit
def _decode_two(offs, rank, decode_ptr, a_strides_ptr, b_strides_ptr):
    # Same walk as _decode_one, shared by both operands of a binary op.
    rem = offs.to(tl.int64)
    a_off = rem * 0
    b_off = rem * 0
    for i in range(rank):
        stride = tl.load(decode_ptr + i)
        coord = rem // stride
        rem = rem - coord * stride
        a_off += coord * tl.load(a_strides_ptr + i)
        b_off += coord * tl.load(b_strides_ptr + i)
    return a_off, b_off


@triton.jit
def _fill_const_kernel(out_ptr, n_elements, value, BLOCK_SIZE: tl.constexpr):
    # Fill a flat buffer with a constant value.
    pid = tl.program_id(0)
    offs = pid * BLOCK_SIZE + tl.arange(0, BLOCK_SIZE)
    mask = offs < n_elements
    tl.store(out_ptr + offs, value, mask=mask)


def _fill_const(out, n_elements, value):
    blocks = triton.cdiv(n_elements, _BLOCK_SIZE)
    _fill_const_kernel[(blocks,)](out, n_elements, float(value), BLOCK_SIZE=_BLOCK_SIZE)
    return out


__all__ = [
    "_BLOCK_SIZE",
    "_MATMUL_BLOCK_M",
    "_MATMUL_BLOCK_N",
    "_device_strides",
    "_decode_one",
    "_decode_two",
    "_fill_const_kernel",
    "_fill_const",
]
