import torch
import triton
import triton.language as tl

from ...shape import numel, row_major_strides
from ._common import _BLOCK_SIZE, _decode_one, _device_strides


@triton.jit
def _strided_partial_sum_kernel(
    x_ptr,
    out_ptr,
    decode_ptr,
    x_strides_ptr,
    n_elements,
    rank,
    BLOCK_SIZE: tl.constexpr,
):
    # First tree level: each program sums one block of (possibly strided) elements.
    pid = tl.program_id(0)
    offs = pid * BLOCK_SIZE + tl.arange(0, BLOCK_SIZE)
    mask = offs < n_elements
    x_off = _decode_one(offs, rank, decode_ptr, x_strides_ptr)
    x = tl.load(x_ptr + x_off, mask=mask, other=0.0)
    tl.store(out_ptr + pid, tl.sum(x, axis=0))


@triton.jit
def _reduce_sum_kernel(x_ptr, out_ptr, n_elements, BLOCK_SIZE: tl.constexpr):
    # Later tree levels: reduce each block of contiguous partials to one value.
    pid = tl.program_id(0)
    offs = pid * BLOCK_SIZE + tl.arange(0, BLOCK_SIZE)
    mask = offs < n_elements
    x = tl.load(x_ptr + offs, mask=mask, other=0)
    acc = tl.sum(x, axis=0)
    tl.store(out_ptr + pid, acc)


@triton.jit
def _reduce_to_kernel(
    x_ptr,
    out_ptr,
    decode_ptr,
    src_strides_ptr,
    reduced_decode_ptr,
    reduced_strides_ptr,
    n_out,
    rank,
    reduced_count,
    reduced_rank,
    BLOCK_SIZE: tl.constexpr,
):
    # One task per destination element, walking the broadcast dims of the source.
    pid = tl.program_id(0)
    offs = pid * BLOCK_SIZE + tl.arange(0, BLOCK_SIZE)
    mask = offs < n_out
    base = _decode_one(offs, rank, decode_ptr, src_strides_ptr)
    acc = tl.zeros((BLOCK_SIZE,), dtype=tl.float32)
    for j in range(reduced_count):
        rem = j.to(tl.int64)
        walk = rem * 0
        for i in range(reduced_rank):
            stride = tl.load(reduced_decode_ptr + i)
            coord = rem // stride
            rem = rem - coord * stride
            walk += coord * tl.load(reduced_strides_ptr + i)
        acc += tl.load(x_ptr + base + walk, mask=mask, other=0.0)
    tl.store(out_ptr + offs, acc, mask=mask)


def _strided_sum(out, x, shape, strides):
    # Sum every element into out[0] with iterative block reductions.
    device = out.device
    n_elements = numel(shape)
    blocks = triton.cdiv(n_elements, _BLOCK_SIZE)
    dest = out if blocks == 1 else torch.empty((blocks,), device=device, dtype=out.dtype)
    _strided_partial_sum_kernel[(blocks,)](
        x,
        dest,
        _device_strides(row_major_strides(shape), device),
        _device_strides(strides, device),
        n_elements,
        len(shape),
        BLOCK_SIZE=_BLOCK_SIZE,
    )
    current = dest
    while blocks > 1:
        n_elements = blocks
        blocks = triton.cdiv(n_elements, _BLOCK_SIZE)
        dest = out if blocks == 1 else torch.empty((blocks,), device=device, dtype=out.dtype)
        _reduce_sum_kernel[(blocks,)](current, dest, n_elements, BLOCK_SIZE=_BLOCK_SIZE)
        current = dest
    return out


def _reduce_to(out, x, plan):
    device = out.device
    n_out = numel(plan.shape)
    blocks = triton.cdiv(n_out, _BLOCK_SIZE)
    _reduce_to_kernel[(blocks,)](
        x,
        out,
        _device_strides(plan.out_strides, device),
        _device_strides(plan.src_strides, device),
        _device_strides(plan.reduced_decode, device),
        _device_strides(plan.reduced_strides, device),
        n_out,
        len(plan.shape),
        plan.reduced_count,
        len(plan.reduced_decode),
        BLOCK_SIZE=_BLOCK_SIZE,
    )
    return out


__all__ = [
    "_strided_partial_sum_kernel",
    "_reduce_sum_kernel",
    "_reduce_to_kernel",
    "_strided_sum",
    "_reduce_to",
]
