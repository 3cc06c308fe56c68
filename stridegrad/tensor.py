from numbers import Real

import numpy as np

from . import autograd, ops, rng
from .autograd import NodeKind
from .backend import get_backend
from .buffer import Buffer
from .errors import NullGradientNode, ShapeMismatch
from .shape import check_shape, flat_offset, numel, row_major_strides


class Tensor:
    """N-dimensional float32 array living in a backend buffer.

    A Tensor created from a shape owns a fresh buffer with dense row-major
    strides. Results of arithmetic are new owning tensors; ``transpose`` and
    ``broadcast_to`` return TensorViews over the same buffer.
    """

    def __init__(self, shape, backend=None):
        backend = backend or get_backend()
        shape = check_shape(shape)
        self._set_metadata(backend, shape, row_major_strides(shape))
        self.buffer = Buffer(backend, self.n_elements)

        self.node = None
        # Autograd node that receives this tensor's gradient. None means the
        # tensor is not tracked; an ACCUMULATE node makes it a leaf whose
        # gradients can be read back with gradients().

    def _set_metadata(self, backend, shape, strides):
        self.backend = backend
        self.shape = tuple(shape)
        self.strides = tuple(strides)
        self.rank = len(self.shape)
        self.n_elements = numel(self.shape)

    @property
    def nbytes(self):
        return self.n_elements * self.backend.itemsize

    size = nbytes

    @property
    def is_view(self):
        return False

    @property
    def is_contiguous(self):
        return self.strides == row_major_strides(self.shape)

    # construction

    @classmethod
    def from_values(cls, values, shape, backend=None):
        shape = check_shape(shape)
        host = np.asarray(values, dtype=np.float32).reshape(-1)
        if host.size != numel(shape):
            raise ShapeMismatch(
                "from_values", (host.size,), shape, detail="value count must equal element count"
            )
        out = cls(shape, backend=backend)
        out.backend.copy_host_to_device(out.buffer.handle, host)
        return out

    @classmethod
    def fill(cls, value, shape, backend=None):
        return ops.fill(value, check_shape(shape), backend or get_backend())

    @classmethod
    def zeros(cls, shape, backend=None):
        return cls.fill(0.0, shape, backend=backend)

    @classmethod
    def ones(cls, shape, backend=None):
        return cls.fill(1.0, shape, backend=backend)

    @classmethod
    def random_uniform(cls, low, high, shape, generator=None, backend=None):
        shape = check_shape(shape)
        values = rng.resolve(generator).uniform(low, high, size=numel(shape))
        return cls.from_values(values, shape, backend=backend)

    @classmethod
    def random_normal(cls, mean, stddev, shape, generator=None, backend=None):
        shape = check_shape(shape)
        values = rng.resolve(generator).normal(mean, stddev, size=numel(shape))
        return cls.from_values(values, shape, backend=backend)

    # host access

    def index(self, coords):
        offset = flat_offset(self.shape, self.strides, coords)
        return float(self.backend.copy_device_to_host(self.buffer.handle, 1, offset)[0])

    def __getitem__(self, coords):
        return self.index(coords)

    def to_numpy(self):
        host = self.backend.copy_device_to_host(self.buffer.handle)
        itemsize = host.itemsize
        logical = np.lib.stride_tricks.as_strided(
            host,
            shape=self.shape,
            strides=tuple(s * itemsize for s in self.strides),
            writeable=False,
        )
        return np.array(logical, dtype=np.float32)

    def tolist(self):
        return self.to_numpy().tolist()

    def __format__(self, spec):
        if spec:
            return format(str(self), spec)
        return str(self)

    def __str__(self):
        values = np.array2string(self.to_numpy(), separator=", ", threshold=np.inf)
        return (
            f"{values}\n"
            f"shape={self.shape}, rank={self.rank}, strides={self.strides}, "
            f"n_elements={self.n_elements}, size={self.nbytes}"
        )

    def __repr__(self):
        grad_fn = self.node.kind.name if self.node is not None else None
        return (
            f"{type(self).__name__}(shape={self.shape}, strides={self.strides}, "
            f"backend={self.backend.name!r}, node={grad_fn})"
        )

    # autograd

    def requires_gradients(self):
        self.node = autograd.leaf()
        return self

    def gradients(self):
        return autograd.leaf_gradient(self.node)

    def zero_gradients(self):
        if self.node is not None and self.node.kind is NodeKind.ACCUMULATE:
            self.node.gradients.clear()

    def backward(self, gradient=None, retain_graph=False):
        if self.node is None:
            raise NullGradientNode("tensor has no autograd node; nothing to differentiate")
        if gradient is None:
            if self.n_elements != 1:
                raise ShapeMismatch(
                    "backward", self.shape, detail="an explicit gradient is required for non-scalar outputs"
                )
            gradient = Tensor.ones(self.shape, backend=self.backend)
        elif gradient.shape != self.shape:
            raise ShapeMismatch("backward", gradient.shape, self.shape)
        autograd.backward(self.node, gradient, retain_graph=retain_graph)

    # arithmetic

    def _coerce(self, other):
        if isinstance(other, Tensor):
            return other
        if isinstance(other, Real):
            return Tensor.fill(other, (1,) * self.rank, backend=self.backend)
        return NotImplemented

    def _binary(self, kind, fn, a, b, keep_operands=False):
        out = fn(a, b)
        if keep_operands:
            out.node = autograd.build(kind, (a, b), saved=(a, b))
        else:
            out.node = autograd.build(kind, (a, b), meta=(a.shape, b.shape))
        return out

    def add(self, other):
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return self._binary(NodeKind.ADD, ops.add, self, other)

    def sub(self, other):
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return self._binary(NodeKind.SUBTRACT, ops.sub, self, other)

    def mul(self, other):
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return self._binary(NodeKind.MULTIPLY, ops.mul, self, other, keep_operands=True)

    def div(self, other):
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return self._binary(NodeKind.DIVIDE, ops.div, self, other, keep_operands=True)

    __add__ = add
    __sub__ = sub
    __mul__ = mul
    __truediv__ = div

    def __radd__(self, other):
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return other.add(self)

    def __rsub__(self, other):
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return other.sub(self)

    def __rmul__(self, other):
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return other.mul(self)

    def __rtruediv__(self, other):
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return other.div(self)

    def neg(self):
        out = ops.neg(self)
        out.node = autograd.build(NodeKind.NEGATE, (self,))
        return out

    __neg__ = neg

    def mm(self, other):
        out = ops.matmul(self, other)
        out.node = autograd.build(NodeKind.MATMUL, (self, other), saved=(self, other))
        return out

    __matmul__ = mm

    def relu(self):
        out = ops.relu(self)
        out.node = autograd.build(NodeKind.RELU, (self,), saved=(self,))
        return out

    def relu_derivative(self):
        # Not tracked by autograd.
        return ops.relu_derivative(self)

    def sum(self):
        out = ops.reduce_sum(self)
        out.node = autograd.build(NodeKind.SUM, (self,), meta=(self.shape,))
        return out

    # views and copies

    def transpose(self, dim1, dim2):
        out = ops.transpose(self, dim1, dim2)
        out.node = autograd.build(NodeKind.TRANSPOSE, (self,), meta=(int(dim1), int(dim2)))
        return out

    def broadcast_to(self, shape):
        # Read-only view; not tracked by autograd.
        return ops.broadcast_to(self, check_shape(shape))

    def contiguous(self):
        out = ops.contiguous(self)
        out.node = autograd.build(NodeKind.COPY, (self,))
        return out

    def assign_(self, other):
        """Overwrite this tensor's elements in place (no autograd tracking)."""
        if self.is_view:
            raise ShapeMismatch("assign_", self.shape, detail="cannot assign into a view")
        other = self._coerce(other)
        if other is NotImplemented:
            raise TypeError(f"cannot assign {type(other)} to a Tensor")
        ops.copy_into(self, other)
        return self


class TensorView(Tensor):
    """Tensor whose metadata is its own but whose buffer belongs to ``base``.

    ``base`` is always an owning Tensor, and the view keeps it alive, so the
    buffer cannot be released while a view still refers to it.
    """

    def __init__(self, source, shape, strides):
        base = source.base if isinstance(source, TensorView) else source
        self._set_metadata(source.backend, shape, strides)
        self.base = base
        self.buffer = base.buffer
        self.node = None

    @property
    def is_view(self):
        return True
