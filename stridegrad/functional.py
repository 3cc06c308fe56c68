"""Free-function spellings of the Tensor operations."""

from .tensor import Tensor


def add(a, b):
    return a.add(b)


def sub(a, b):
    return a.sub(b)


def mul(a, b):
    return a.mul(b)


def div(a, b):
    return a.div(b)


def negate(x):
    return x.neg()


def mm(a, b):
    return a.mm(b)


matmul = mm


def relu(x):
    return x.relu()


def relu_derivative(x):
    return x.relu_derivative()


def sum(x):  # noqa: A001
    return x.sum()


def transpose(x, dim1, dim2):
    return x.transpose(dim1, dim2)


def index(x, coords):
    return x.index(coords)


def requires_gradients(x):
    return x.requires_gradients()


def gradients(x):
    return x.gradients()


def format(x):  # noqa: A001
    return str(x)


__all__ = [
    "Tensor",
    "add",
    "sub",
    "mul",
    "div",
    "negate",
    "mm",
    "matmul",
    "relu",
    "relu_derivative",
    "sum",
    "transpose",
    "index",
    "requires_gradients",
    "gradients",
    "format",
]
