import pytest

from stridegrad.errors import IndexOutOfBounds, InvalidShape, RankMismatch, ShapeMismatch
from stridegrad.shape import (
    check_shape,
    expand_strides,
    flat_offset,
    numel,
    resolve_broadcast,
    resolve_matmul,
    resolve_reduction,
    row_major_strides,
    swap_dims,
)


@pytest.mark.parametrize("shape, strides", [
    ((5,),          (1,)),
    ((2, 3),        (3, 1)),
    ((2, 3, 4),     (12, 4, 1)),
    ((1, 1, 7),     (7, 7, 1)),
])
def test_row_major_strides(shape, strides):
    assert row_major_strides(shape) == strides
    # last stride is 1 and each stride is the product of the sizes to its right
    for i in range(len(shape) - 1):
        assert strides[i] == strides[i + 1] * shape[i + 1]


def test_check_shape():
    assert check_shape(4) == (4,)
    assert check_shape([2, 3]) == (2, 3)
    for bad in [(), (0, 3), (2, -1), (2.5,), (True, 2), None]:
        with pytest.raises(InvalidShape):
            check_shape(bad)


def test_numel():
    assert numel((2, 3, 4)) == 24
    assert numel(()) == 1


def test_swap_dims_is_an_involution():
    shape, strides = (2, 3, 4), (12, 4, 1)
    once = swap_dims(shape, strides, 0, 2)
    assert once == ((4, 3, 2), (1, 4, 12))
    assert swap_dims(*once, 0, 2) == (shape, strides)
    assert swap_dims(shape, strides, 1, 1) == (shape, strides)


def test_swap_dims_rejects_bad_dims():
    with pytest.raises(RankMismatch):
        swap_dims((2, 3), (3, 1), 0, 2)
    with pytest.raises(RankMismatch):
        swap_dims((2, 3), (3, 1), -1, 0)


def test_flat_offset():
    assert flat_offset((2, 3), (3, 1), (1, 2)) == 5
    # transposed metadata over the same buffer
    assert flat_offset((3, 2), (1, 3), (2, 1)) == 5
    assert flat_offset((4,), (1,), 3) == 3
    with pytest.raises(RankMismatch):
        flat_offset((2, 3), (3, 1), (1,))
    with pytest.raises(IndexOutOfBounds):
        flat_offset((2, 3), (3, 1), (2, 0))
    with pytest.raises(IndexOutOfBounds):
        flat_offset((2, 3), (3, 1), (0, -1))


def test_resolve_broadcast_row_vector():
    plan = resolve_broadcast((2, 3), (3, 1), (1, 3), (3, 1))
    assert plan.shape == (2, 3)
    assert plan.out_strides == (3, 1)
    assert plan.a_strides == (3, 1)
    assert plan.b_strides == (0, 1)


def test_resolve_broadcast_both_sides():
    plan = resolve_broadcast((4, 1), (1, 1), (1, 5), (5, 1))
    assert plan.shape == (4, 5)
    assert plan.a_strides == (1, 0)
    assert plan.b_strides == (0, 1)


def test_resolve_broadcast_errors():
    with pytest.raises(ShapeMismatch):
        resolve_broadcast((2, 3), (3, 1), (3, 3), (3, 1))
    with pytest.raises(ShapeMismatch):
        resolve_broadcast((2, 3), (3, 1), (3,), (1,))


def test_expand_strides():
    assert expand_strides((1, 3), (3, 1), (4, 3)) == (0, 1)
    with pytest.raises(ShapeMismatch):
        expand_strides((2, 3), (3, 1), (4, 3))


def test_resolve_reduction():
    plan = resolve_reduction((2, 3, 4), (12, 4, 1), (1, 3, 1))
    assert plan.shape == (1, 3, 1)
    assert plan.reduced_count == 8
    assert plan.reduced_decode == (4, 1)
    assert plan.reduced_strides == (12, 1)
    with pytest.raises(ShapeMismatch):
        resolve_reduction((2, 3), (3, 1), (2, 2))


def test_resolve_matmul():
    plan = resolve_matmul((5, 2, 3), (6, 3, 1), (5, 3, 4), (12, 4, 1))
    assert plan.shape == (5, 2, 4)
    assert plan.batch_count == 5
    assert (plan.height, plan.width, plan.shared) == (2, 4, 3)
    assert plan.a_batch_strides == (6,)
    assert plan.b_batch_strides == (12,)
    assert (plan.stride_am, plan.stride_ak, plan.stride_bk, plan.stride_bn) == (3, 1, 4, 1)


def test_resolve_matmul_unbatched():
    plan = resolve_matmul((2, 3), (3, 1), (3, 4), (4, 1))
    assert plan.shape == (2, 4)
    assert plan.batch_shape == ()
    assert plan.batch_count == 1


@pytest.mark.parametrize("a_shape, b_shape", [
    ((3,),          (3, 4)),        # rank < 2
    ((2, 3),        (2, 3, 4)),     # ranks differ
    ((2, 2, 3),     (3, 3, 4)),     # batch prefix differs
    ((2, 3),        (4, 5)),        # shared dim differs
])
def test_resolve_matmul_errors(a_shape, b_shape):
    with pytest.raises(ShapeMismatch):
        resolve_matmul(a_shape, row_major_strides(a_shape), b_shape, row_major_strides(b_shape))
