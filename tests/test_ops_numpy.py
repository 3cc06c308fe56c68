import pytest

pytest.importorskip("torch")

from stridegrad.backend import get_backend, set_backend

from ._ops_shared import (
    BackendHelper,
    run_binary_cases,
    run_contiguous_cases,
    run_matmul_cases,
    run_reduce_to_cases,
    run_relu_derivative_cases,
    run_scalar_cases,
    run_strided_sum_cases,
    run_strided_unary_cases,
    run_sum_cases,
    run_training_step_cases,
    run_transposed_matmul_cases,
    run_unary_cases,
)


class _NumpyHelper(BackendHelper):
    def __init__(self):
        super().__init__("numpy")


def setup_module():
    global _PREV_BACKEND
    _PREV_BACKEND = get_backend()
    set_backend("numpy")


def teardown_module():
    set_backend(_PREV_BACKEND)


def test_binary_numpy():
    run_binary_cases(_NumpyHelper())


def test_scalar_operands_numpy():
    run_scalar_cases(_NumpyHelper())


def test_unary_numpy():
    run_unary_cases(_NumpyHelper())


def test_relu_derivative_numpy():
    run_relu_derivative_cases(_NumpyHelper())


def test_strided_unary_numpy():
    run_strided_unary_cases(_NumpyHelper())


def test_matmul_numpy():
    run_matmul_cases(_NumpyHelper())


def test_transposed_matmul_numpy():
    run_transposed_matmul_cases(_NumpyHelper())


def test_sum_numpy():
    run_sum_cases(_NumpyHelper())


def test_strided_sum_numpy():
    run_strided_sum_cases(_NumpyHelper())


def test_reduce_to_numpy():
    run_reduce_to_cases(_NumpyHelper())


def test_contiguous_numpy():
    run_contiguous_cases(_NumpyHelper())


def test_training_step_numpy():
    run_training_step_cases(_NumpyHelper())
