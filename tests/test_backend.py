import logging

import numpy as np
import pytest

from stridegrad import config
from stridegrad.backend import (
    BinaryOp,
    NumpyBackend,
    TritonBackend,
    UnaryOp,
    available_backends,
    get_backend,
    set_backend,
)
from stridegrad.buffer import Buffer
from stridegrad.errors import ShapeMismatch
from stridegrad.tensor import Tensor


def setup_module():
    global _PREV_BACKEND
    _PREV_BACKEND = get_backend()


def teardown_module():
    set_backend(_PREV_BACKEND)


def test_backend_registry():
    assert "numpy" in available_backends()
    backend = set_backend("numpy")
    assert isinstance(backend, NumpyBackend)
    assert get_backend() is backend

    other = NumpyBackend()
    assert set_backend(other) is other
    assert get_backend() is other

    with pytest.raises(ValueError):
        set_backend("opencl")
    with pytest.raises(TypeError):
        set_backend(3)


def test_memory_service_round_trip():
    backend = NumpyBackend()
    handle = backend.allocate(6 * backend.itemsize)
    backend.copy_host_to_device(handle, np.arange(6, dtype=np.float32))
    np.testing.assert_array_equal(backend.copy_device_to_host(handle), np.arange(6))
    np.testing.assert_array_equal(backend.copy_device_to_host(handle, 2, 3), [3.0, 4.0])
    backend.free(handle)


def test_numpy_kernels_follow_strides():
    backend = NumpyBackend()
    a = np.arange(6, dtype=np.float32)             # (2, 3) row-major
    b = np.array([10.0, 20.0, 30.0], np.float32)   # (1, 3)
    out = np.empty(6, np.float32)
    backend.binary(BinaryOp.ADD, out, a, b, 6, (3, 1), (3, 1), (0, 1))
    np.testing.assert_array_equal(out, [10, 21, 32, 13, 24, 35])

    # read a as its (3, 2) transpose
    backend.unary(UnaryOp.COPY, out, a, 6, (2, 1), (1, 3))
    np.testing.assert_array_equal(out, [0, 3, 1, 4, 2, 5])


def test_buffer_frees_on_collection():
    buf = Buffer(NumpyBackend(), 4)
    assert buf.nbytes == 16
    assert buf.alive
    finalizer = buf._finalizer
    del buf
    assert not finalizer.alive


def test_config_reads_environment(monkeypatch):
    monkeypatch.setenv(config.BACKEND_ENV, " Triton ")
    assert config.default_backend_name() == "triton"
    monkeypatch.delenv(config.BACKEND_ENV)
    assert config.default_backend_name() == "numpy"

    monkeypatch.setenv(config.LOG_LEVEL_ENV, "debug")
    assert config.log_level() == logging.DEBUG
    monkeypatch.setenv(config.LOG_LEVEL_ENV, "nonsense")
    assert config.log_level() == logging.WARNING


def test_get_logger_hierarchy():
    root = config.get_logger()
    assert root.name == "stridegrad"
    assert len(root.handlers) == 1
    assert config.get_logger("stridegrad.ops").name == "stridegrad.ops"
    assert config.get_logger("training").name == "stridegrad.training"
    config.get_logger("again")
    assert len(root.handlers) == 1


def test_logging_is_silent_unless_requested(monkeypatch):
    monkeypatch.delenv(config.LOG_LEVEL_ENV, raising=False)
    assert isinstance(config._make_handler(), logging.NullHandler)
    monkeypatch.setenv(config.LOG_LEVEL_ENV, "info")
    handler = config._make_handler()
    assert isinstance(handler, logging.StreamHandler)
    assert handler.formatter is not None


def test_matmul_batch_limit_is_checked_before_launch():
    assert TritonBackend.max_matmul_batch == 65535
    assert NumpyBackend.max_matmul_batch is None

    backend = NumpyBackend()
    backend.max_matmul_batch = 2
    a = Tensor.ones((2, 2, 3), backend=backend)
    b = Tensor.ones((2, 3, 4), backend=backend)
    assert (a @ b).shape == (2, 2, 4)
    with pytest.raises(ShapeMismatch):
        Tensor.ones((3, 2, 3), backend=backend) @ Tensor.ones((3, 3, 4), backend=backend)
