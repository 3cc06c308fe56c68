"""
Reverse-mode autograd graph.

Nodes are plain records tagged with a ``NodeKind``; what a node does with an
incoming gradient is looked up in ``_ROUTES`` by that tag. A node holds
references to its parents' nodes (shared, never copied) plus whatever operand
tensors or shapes its rule needs.

Two ways to drive the graph:

- ``invoke(node, gradient)`` pushes a gradient through immediately. A node
  reached along two paths is processed twice, so leaves see one gradient per
  path.
- ``backward(root, gradient)`` orders the graph topologically, sums every
  gradient arriving at a node first and processes each node once, then
  releases the interior nodes. A released node raises NullGradientNode when
  it is built on, invoked or differentiated again.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple

from . import ops
from .config import get_logger
from .errors import NullGradientNode

logger = get_logger(__name__)


class NodeKind(Enum):
    NOOP = "noop"
    ACCUMULATE = "accumulate"
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    NEGATE = "negate"
    MATMUL = "matmul"
    RELU = "relu"
    SUM = "sum"
    TRANSPOSE = "transpose"
    COPY = "copy"


ARITY = {
    NodeKind.NOOP: 0,
    NodeKind.ACCUMULATE: 0,
    NodeKind.ADD: 2,
    NodeKind.SUBTRACT: 2,
    NodeKind.MULTIPLY: 2,
    NodeKind.DIVIDE: 2,
    NodeKind.NEGATE: 1,
    NodeKind.MATMUL: 2,
    NodeKind.RELU: 1,
    NodeKind.SUM: 1,
    NodeKind.TRANSPOSE: 1,
    NodeKind.COPY: 1,
}


@dataclass(eq=False)
class Node:
    kind: NodeKind
    parents: Tuple[Optional["Node"], ...] = ()
    saved: Tuple[Any, ...] = ()
    meta: Tuple[Any, ...] = ()
    gradients: List[Any] = field(default_factory=list)
    released: bool = False

    def __post_init__(self):
        self.parents = tuple(self.parents)
        if len(self.parents) != ARITY[self.kind]:
            raise ValueError(
                f"{self.kind.name} node takes {ARITY[self.kind]} parents, got {len(self.parents)}"
            )

    @property
    def is_leaf(self):
        return self.kind in (NodeKind.NOOP, NodeKind.ACCUMULATE)

    def release(self):
        # Drop graph references; the parent count stays fixed.
        self.parents = (None,) * len(self.parents)
        self.saved = ()
        self.released = True

    def __call__(self, gradient):
        invoke(self, gradient)

    def __repr__(self):
        linked = sum(p is not None for p in self.parents)
        return f"Node({self.kind.name}, parents={linked}/{len(self.parents)})"


def noop():
    return Node(NodeKind.NOOP)


def leaf():
    return Node(NodeKind.ACCUMULATE)


def _check_live(node):
    if node is not None and node.released:
        raise NullGradientNode(
            f"{node.kind.name} node was released by an earlier backward(); "
            "pass retain_graph=True to keep the graph"
        )


def build(kind, inputs, saved=(), meta=()):
    """Node for an op applied to ``inputs``, or None when no input is tracked."""
    parents = tuple(t.node for t in inputs)
    for parent in parents:
        _check_live(parent)
    if all(p is None for p in parents):
        return None
    return Node(kind, parents, tuple(saved), tuple(meta))


def leaf_gradient(node):
    if node is None:
        raise NullGradientNode("tensor has no autograd node; call requires_gradients() first")
    if node.kind is not NodeKind.ACCUMULATE:
        raise NullGradientNode(f"tensor is not a gradient leaf (node is {node.kind.name})")
    if not node.gradients:
        raise NullGradientNode("no gradient has been accumulated yet")
    return node.gradients[0]


# Gradient rules. Each returns one gradient per parent; entries for parents
# that are None are skipped rather than computed.


def _wants(node, i):
    return node.parents[i] is not None


def _route_add(node, g):
    a_shape, b_shape = node.meta
    return (
        ops.reduce_to(g, a_shape) if _wants(node, 0) else None,
        ops.reduce_to(g, b_shape) if _wants(node, 1) else None,
    )


def _route_subtract(node, g):
    a_shape, b_shape = node.meta
    return (
        ops.reduce_to(g, a_shape) if _wants(node, 0) else None,
        ops.reduce_to(ops.neg(g), b_shape) if _wants(node, 1) else None,
    )


def _route_multiply(node, g):
    a, b = node.saved
    return (
        ops.reduce_to(ops.mul(g, b), a.shape) if _wants(node, 0) else None,
        ops.reduce_to(ops.mul(g, a), b.shape) if _wants(node, 1) else None,
    )


def _route_divide(node, g):
    a, b = node.saved
    grad_a = grad_b = None
    if _wants(node, 0):
        grad_a = ops.reduce_to(ops.div(g, b), a.shape)
    if _wants(node, 1):
        # d(a/b)/db = -a / b^2
        grad_b = ops.neg(ops.div(ops.mul(g, a), ops.mul(b, b)))
        grad_b = ops.reduce_to(grad_b, b.shape)
    return grad_a, grad_b


def _route_negate(node, g):
    return (ops.neg(g),)


def _route_matmul(node, g):
    a, b = node.saved
    last = a.rank - 1
    grad_a = grad_b = None
    if _wants(node, 0):
        grad_a = ops.matmul(g, ops.transpose(b, last - 1, last))
    if _wants(node, 1):
        grad_b = ops.matmul(ops.transpose(a, last - 1, last), g)
    return grad_a, grad_b


def _route_relu(node, g):
    (x,) = node.saved
    return (ops.mul(g, ops.relu_derivative(x)),)


def _route_sum(node, g):
    (shape,) = node.meta
    return (ops.contiguous(ops.broadcast_to(g, shape)),)


def _route_transpose(node, g):
    dim1, dim2 = node.meta
    return (ops.transpose(g, dim1, dim2),)


def _route_copy(node, g):
    return (g,)


_ROUTES = {
    NodeKind.ADD: _route_add,
    NodeKind.SUBTRACT: _route_subtract,
    NodeKind.MULTIPLY: _route_multiply,
    NodeKind.DIVIDE: _route_divide,
    NodeKind.NEGATE: _route_negate,
    NodeKind.MATMUL: _route_matmul,
    NodeKind.RELU: _route_relu,
    NodeKind.SUM: _route_sum,
    NodeKind.TRANSPOSE: _route_transpose,
    NodeKind.COPY: _route_copy,
}


def route(node, gradient):
    """Per-parent gradients for ``gradient`` arriving at an interior node."""
    return _ROUTES[node.kind](node, gradient)


def invoke(node, gradient):
    if node is None or node.kind is NodeKind.NOOP:
        return
    _check_live(node)
    if node.kind is NodeKind.ACCUMULATE:
        node.gradients.append(gradient)
        return
    for parent, grad in zip(node.parents, route(node, gradient)):
        if parent is not None:
            invoke(parent, grad)


def topological_order(root):
    """Nodes reachable from ``root``, every node before its parents."""
    order = []
    seen = set()
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            order.append(node)
            continue
        if id(node) in seen:
            continue
        seen.add(id(node))
        stack.append((node, True))
        for parent in node.parents:
            if parent is not None and id(parent) not in seen:
                stack.append((parent, False))
    order.reverse()
    return order


def backward(root, gradient, retain_graph=False):
    if root is None:
        raise NullGradientNode("tensor has no autograd node; nothing to differentiate")
    order = topological_order(root)
    for node in order:
        _check_live(node)
    logger.debug("backward over %d nodes from %s", len(order), root)
    pending = {id(root): gradient}
    for node in order:
        grad = pending.pop(id(node), None)
        if grad is None or node.kind is NodeKind.NOOP:
            continue
        if node.kind is NodeKind.ACCUMULATE:
            node.gradients.append(grad)
            continue
        for parent, parent_grad in zip(node.parents, route(node, grad)):
            if parent is None:
                continue
            key = id(parent)
            if key in pending:
                pending[key] = ops.add(pending[key], parent_grad)
            else:
                pending[key] = parent_grad
    if not retain_graph:
        teardown(order)


def teardown(nodes):
    for node in nodes:
        if not node.is_leaf:
            node.release()


__all__ = [
    "NodeKind",
    "ARITY",
    "Node",
    "noop",
    "leaf",
    "build",
    "leaf_gradient",
    "route",
    "invoke",
    "topological_order",
    "backward",
    "teardown",
]
