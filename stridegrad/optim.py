from stridegrad import ops
from stridegrad.errors import ShapeMismatch


class Optimizer:
    def __init__(self, params):
        self.params = list(params)
        for p in self.params:
            # Updates are written densely into the parameter's own buffer.
            if p.is_view:
                raise ShapeMismatch(
                    "optimizer", p.shape, detail="parameters must own their buffer, not be views"
                )
            if p.node is None:
                p.requires_gradients()

    def zero_grad(self):
        for p in self.params:
            p.zero_gradients()


class SGD(Optimizer):
    def __init__(self, params, lr=0.001):
        super(SGD, self).__init__(params)
        self.lr = lr

    def step(self):
        for t in self.params:
            if t.node is None or not t.node.gradients:
                continue
            grad = t.gradients()
            # Optimizer math stays out of the autograd graph.
            scaled = ops.mul(grad, ops.fill(self.lr, (1,) * t.rank, t.backend))
            ops.copy_into(t, ops.sub(t, scaled))
