import importlib.util
from typing import Union

from ..config import default_backend_name, get_logger
from ..errors import BackendUnavailable
from .base import Backend, BinaryOp, UnaryOp
from .numpy_backend import NumpyBackend
from .triton_backend import TritonBackend

logger = get_logger(__name__)


def _make_backend(name):
    name = name.lower()
    if name == "numpy":
        return NumpyBackend()
    if name == "triton":
        return TritonBackend()
    raise ValueError(f"unknown backend '{name}'")


def _initial_backend():
    name = default_backend_name()
    try:
        return _make_backend(name)
    except BackendUnavailable as exc:
        logger.warning("backend '%s' unavailable (%s); using numpy", name, exc)
        return NumpyBackend()


_CURRENT_BACKEND = _initial_backend()


def get_backend():
    return _CURRENT_BACKEND


def set_backend(backend: Union[str, Backend]):
    """Switch the active backend by name or instance."""
    global _CURRENT_BACKEND
    if isinstance(backend, str):
        _CURRENT_BACKEND = _make_backend(backend)
    elif isinstance(backend, Backend):
        _CURRENT_BACKEND = backend
    else:
        raise TypeError(
            f"backend must be name or NumpyBackend/TritonBackend, got {type(backend)}"
        )
    logger.info("active backend: %r", _CURRENT_BACKEND)
    return _CURRENT_BACKEND


def available_backends():
    backends = ["numpy"]
    if importlib.util.find_spec("triton") is not None:
        import torch

        if torch.cuda.is_available():
            backends.append("triton")
    return backends


__all__ = [
    "Backend",
    "BinaryOp",
    "UnaryOp",
    "NumpyBackend",
    "TritonBackend",
    "available_backends",
    "get_backend",
    "set_backend",
]
