import numpy as np

from stridegrad import available_backends, manual_seed, set_backend
from stridegrad.config import get_logger
from stridegrad.loss import mse
from stridegrad.optim import SGD
from stridegrad.tensor import Tensor

logger = get_logger("examples.mlp_regression")


class TinyNet:
    def __init__(self, hidden=32):
        self.l1 = Tensor.random_normal(0.0, 2.0 ** 0.5, (1, hidden))
        self.b1 = Tensor.zeros((1, hidden))
        self.l2 = Tensor.random_normal(0.0, (2.0 / hidden) ** 0.5, (hidden, 1))
        self.b2 = Tensor.zeros((1, 1))

    def forward(self, x):
        # (B, 1) -> (B, hidden) -> (B, 1)
        return (x @ self.l1 + self.b1).relu() @ self.l2 + self.b2

    def parameters(self):
        return [self.l1, self.b1, self.l2, self.b2]


def main(steps=2000, batch_size=64):
    set_backend("triton" if "triton" in available_backends() else "numpy")
    manual_seed(0)
    data_rng = np.random.default_rng(0)

    model = TinyNet()
    optim = SGD(model.parameters(), lr=0.01)

    for i in range(steps):
        x_np = data_rng.uniform(-3.0, 3.0, size=(batch_size, 1)).astype(np.float32)
        y_np = np.sin(x_np)
        x = Tensor.from_values(x_np, x_np.shape)
        y = Tensor.from_values(y_np, y_np.shape)

        optim.zero_grad()
        loss = mse(model.forward(x), y)
        loss.backward()
        optim.step()

        if i % 200 == 0:
            print(f"step {i:5d} | loss: {loss.index((0, 0)):.4f}")

    logger.info("finished %d steps", steps)


if __name__ == "__main__":
    main()
