import pytest

torch = pytest.importorskip("torch")
pytest.importorskip("triton")

if not torch.cuda.is_available():
    pytest.skip("CUDA not available for Triton tests", allow_module_level=True)

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


class _TritonHelper(BackendHelper):
    def __init__(self):
        super().__init__("triton")


def setup_module():
    global _PREV_BACKEND
    _PREV_BACKEND = get_backend()
    set_backend("triton")


def teardown_module():
    set_backend(_PREV_BACKEND)


def test_binary_triton():
    run_binary_cases(_TritonHelper())


def test_scalar_operands_triton():
    run_scalar_cases(_TritonHelper())


def test_unary_triton():
    run_unary_cases(_TritonHelper())


def test_relu_derivative_triton():
    run_relu_derivative_cases(_TritonHelper())


def test_strided_unary_triton():
    run_strided_unary_cases(_TritonHelper())


def test_matmul_triton():
    run_matmul_cases(_TritonHelper())


def test_transposed_matmul_triton():
    run_transposed_matmul_cases(_TritonHelper())


def test_sum_triton():
    run_sum_cases(_TritonHelper())


def test_strided_sum_triton():
    run_strided_sum_cases(_TritonHelper())


def test_reduce_to_triton():
    run_reduce_to_cases(_TritonHelper())


def test_contiguous_triton():
    run_contiguous_cases(_TritonHelper())


def test_training_step_triton():
    run_training_step_cases(_TritonHelper())
