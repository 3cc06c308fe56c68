"""
Shape and stride algebra.

Everything here works on plain tuples of ints and never touches a buffer. The
plans returned by the ``resolve_*`` helpers are consumed directly by the
backend kernels, which is how broadcasting happens without expanded copies: a
stride of 0 makes every index along that axis read the same element.
"""

from collections import namedtuple
from numbers import Integral

from .errors import IndexOutOfBounds, InvalidShape, RankMismatch, ShapeMismatch

Broadcast = namedtuple("Broadcast", ["shape", "out_strides", "a_strides", "b_strides"])

# Folding a (broadcast) source onto a smaller destination. Destination elements
# are decoded with ``out_strides``; the source element for reduced index 0 sits
# at ``sum(coord * src_strides)``, and the reduced dims are walked by decoding
# a counter against ``reduced_decode`` and mapping through ``reduced_strides``.
Reduction = namedtuple(
    "Reduction",
    ["shape", "out_strides", "src_strides", "reduced_count", "reduced_decode", "reduced_strides"],
)

Matmul = namedtuple(
    "Matmul",
    [
        "shape",
        "batch_shape",
        "batch_count",
        "height",
        "width",
        "shared",
        "batch_decode",
        "a_batch_strides",
        "b_batch_strides",
        "stride_am",
        "stride_ak",
        "stride_bk",
        "stride_bn",
    ],
)


def numel(shape):
    n = 1
    for dim in shape:
        n *= int(dim)
    return n


def check_shape(shape):
    """Normalise ``shape`` to a tuple of positive ints (a bare int is rank 1)."""
    if isinstance(shape, Integral):
        shape = (shape,)
    try:
        dims = tuple(shape)
    except TypeError:
        raise InvalidShape(f"shape must be a sequence of ints, got {shape!r}") from None
    if not dims:
        raise InvalidShape("shape must have at least one dimension")
    for dim in dims:
        if isinstance(dim, bool) or not isinstance(dim, Integral):
            raise InvalidShape(f"shape sizes must be ints, got {dims!r}")
        if dim <= 0:
            raise InvalidShape(f"shape sizes must be positive, got {dims!r}")
    return tuple(int(d) for d in dims)


def row_major_strides(shape):
    strides = [0] * len(shape)
    stride = 1
    for i in range(len(shape) - 1, -1, -1):
        strides[i] = stride
        stride *= int(shape[i])
    return tuple(strides)


def check_dim(op, rank, dim):
    if isinstance(dim, bool) or not isinstance(dim, Integral) or not 0 <= dim < rank:
        raise RankMismatch(op, rank, f"dim {dim!r}")
    return int(dim)


def swap_dims(shape, strides, dim1, dim2):
    rank = len(shape)
    dim1 = check_dim("transpose", rank, dim1)
    dim2 = check_dim("transpose", rank, dim2)
    shape = list(shape)
    strides = list(strides)
    shape[dim1], shape[dim2] = shape[dim2], shape[dim1]
    strides[dim1], strides[dim2] = strides[dim2], strides[dim1]
    return tuple(shape), tuple(strides)


def flat_offset(shape, strides, coords):
    if isinstance(coords, Integral):
        coords = (coords,)
    coords = tuple(coords)
    if len(coords) != len(shape):
        raise RankMismatch("index", len(shape), f"{len(coords)} coordinates")
    offset = 0
    for c, dim, stride in zip(coords, shape, strides):
        if isinstance(c, bool) or not isinstance(c, Integral) or not 0 <= c < dim:
            raise IndexOutOfBounds(coords, shape)
        offset += int(c) * stride
    return offset


def resolve_broadcast(a_shape, a_strides, b_shape, b_strides):
    """
    Output shape and effective operand strides for an elementwise op.

    Both operands must have the same rank. Along each dim the sizes must be
    equal, or one of them must be 1; the size-1 side gets stride 0 so its
    single element is reused across the axis.
    """
    if len(a_shape) != len(b_shape):
        raise ShapeMismatch("broadcast", a_shape, b_shape, detail="ranks differ")
    shape = []
    a_eff = []
    b_eff = []
    for a_dim, b_dim, a_stride, b_stride in zip(a_shape, b_shape, a_strides, b_strides):
        if a_dim == b_dim:
            shape.append(a_dim)
            a_eff.append(a_stride)
            b_eff.append(b_stride)
        elif b_dim == 1:
            shape.append(a_dim)
            a_eff.append(a_stride)
            b_eff.append(0)
        elif a_dim == 1:
            shape.append(b_dim)
            a_eff.append(0)
            b_eff.append(b_stride)
        else:
            raise ShapeMismatch(
                "broadcast", a_shape, b_shape, detail=f"sizes {a_dim} and {b_dim} differ and neither is 1"
            )
    shape = tuple(shape)
    return Broadcast(shape, row_major_strides(shape), tuple(a_eff), tuple(b_eff))


def expand_strides(shape, strides, target):
    """Strides that read a ``shape`` tensor as if it had shape ``target``."""
    if len(shape) != len(target):
        raise ShapeMismatch("broadcast_to", shape, target, detail="ranks differ")
    out = []
    for dim, stride, want in zip(shape, strides, target):
        if dim == want:
            out.append(stride)
        elif dim == 1:
            out.append(0)
        else:
            raise ShapeMismatch("broadcast_to", shape, target)
    return tuple(out)


def resolve_reduction(src_shape, src_strides, dst_shape):
    """Plan for summing ``src`` over the dims where ``dst_shape`` is 1."""
    if len(src_shape) != len(dst_shape):
        raise ShapeMismatch("reduce_to", src_shape, dst_shape, detail="ranks differ")
    reduced_sizes = []
    reduced_strides = []
    for src_dim, dst_dim, stride in zip(src_shape, dst_shape, src_strides):
        if src_dim == dst_dim:
            continue
        if dst_dim != 1:
            raise ShapeMismatch("reduce_to", src_shape, dst_shape)
        reduced_sizes.append(src_dim)
        reduced_strides.append(stride)
    dst_shape = tuple(dst_shape)
    return Reduction(
        dst_shape,
        row_major_strides(dst_shape),
        tuple(src_strides),
        numel(reduced_sizes),
        row_major_strides(reduced_sizes),
        tuple(reduced_strides),
    )


def resolve_matmul(a_shape, a_strides, b_shape, b_strides):
    """
    Plan a batched matmul over the trailing two dims.

    ``a`` is ``(*batch, height, shared)`` and ``b`` is ``(*batch, shared, width)``;
    the batch prefixes must match exactly.
    """
    if len(a_shape) < 2 or len(b_shape) < 2:
        raise ShapeMismatch("mm", a_shape, b_shape, detail="operands need rank >= 2")
    if len(a_shape) != len(b_shape):
        raise ShapeMismatch("mm", a_shape, b_shape, detail="ranks differ")
    if a_shape[:-2] != b_shape[:-2]:
        raise ShapeMismatch("mm", a_shape, b_shape, detail="batch dims differ")
    if a_shape[-1] != b_shape[-2]:
        raise ShapeMismatch("mm", a_shape, b_shape, detail="shared dim differs")

    batch_shape = tuple(a_shape[:-2])
    height, shared = a_shape[-2], a_shape[-1]
    width = b_shape[-1]
    shape = batch_shape + (height, width)
    return Matmul(
        shape=shape,
        batch_shape=batch_shape,
        batch_count=numel(batch_shape),
        height=height,
        width=width,
        shared=shared,
        batch_decode=row_major_strides(batch_shape),
        a_batch_strides=tuple(a_strides[:-2]),
        b_batch_strides=tuple(b_strides[:-2]),
        stride_am=a_strides[-2],
        stride_ak=a_strides[-1],
        stride_bk=b_strides[-2],
        stride_bn=b_strides[-1],
    )


__all__ = [
    "Broadcast",
    "Reduction",
    "Matmul",
    "numel",
    "check_shape",
    "row_major_strides",
    "check_dim",
    "swap_dims",
    "flat_offset",
    "resolve_broadcast",
    "expand_strides",
    "resolve_reduction",
    "resolve_matmul",
]
