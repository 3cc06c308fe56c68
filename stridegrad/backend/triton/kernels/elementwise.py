import triton
import triton.language as tl

from ._common import _BLOCK_SIZE, _decode_one, _decode_two, _device_strides


@triton.jit
def _broadcast_binary_kernel(
    a_ptr,
    b_ptr,
    out_ptr,
    decode_ptr,
    a_strides_ptr,
    b_strides_ptr,
    n_elements,
    rank,
    OP: tl.constexpr,
    BLOCK_SIZE: tl.constexpr,
):
    pid = tl.program_id(0)
    offs = pid * BLOCK_SIZE + tl.arange(0, BLOCK_SIZE)
    mask = offs < n_elements
    # OP follows stridegrad.backend.base.BinaryOp.
    a_off, b_off = _decode_two(offs, rank, decode_ptr, a_strides_ptr, b_strides_ptr)
    a = tl.load(a_ptr + a_off, mask=mask, other=0.0)
    b = tl.load(b_ptr + b_off, mask=mask, other=1.0)
    if OP == 0:
        out = a + b
    elif OP == 1:
        out = a - b
    elif OP == 2:
        out = a * b
    else:
        out = a / b
    tl.store(out_ptr + offs, out, mask=mask)


@triton.jit
def _strided_unary_kernel(
    x_ptr,
    out_ptr,
    decode_ptr,
    x_strides_ptr,
    n_elements,
    rank,
    OP: tl.constexpr,
    BLOCK_SIZE: tl.constexpr,
):
    pid = tl.program_id(0)
    offs = pid * BLOCK_SIZE + tl.arange(0, BLOCK_SIZE)
    mask = offs < n_elements
    # OP follows stridegrad.backend.base.UnaryOp.
    x_off = _decode_one(offs, rank, decode_ptr, x_strides_ptr)
    x = tl.load(x_ptr + x_off, mask=mask, other=0.0)
    if OP == 0:
        out = -x
    elif OP == 1:
        out = tl.where(x > 0, x, 0.0)
    elif OP == 2:
        out = tl.where(x > 0, 1.0, 0.0)
    else:
        out = x
    tl.store(out_ptr + offs, out, mask=mask)


def _broadcast_binary(op, out, a, b, n_elements, out_strides, a_strides, b_strides):
    device = out.device
    blocks = triton.cdiv(n_elements, _BLOCK_SIZE)
    _broadcast_binary_kernel[(blocks,)](
        a,
        b,
        out,
        _device_strides(out_strides, device),
        _device_strides(a_strides, device),
        _device_strides(b_strides, device),
        n_elements,
        len(out_strides),
        OP=int(op),
        BLOCK_SIZE=_BLOCK_SIZE,
    )
    return out


def _strided_unary(op, out, x, n_elements, out_strides, x_strides):
    device = out.device
    blocks = triton.cdiv(n_elements, _BLOCK_SIZE)
    _strided_unary_kernel[(blocks,)](
        x,
        out,
        _device_strides(out_strides, device),
        _device_strides(x_strides, device),
        n_elements,
        len(out_strides),
        OP=int(op),
        BLOCK_SIZE=_BLOCK_SIZE,
    )
    return out


__all__ = [
    "_broadcast_binary_kernel",
    "_strided_unary_kernel",
    "_broadcast_binary",
    "_strided_unary",
]
