# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

"""Linear regression with difftensor.

Fits ``y = 5x + 2`` by plain gradient descent. The model is a user-defined
``Differentiable`` aggregate, so the gradient comes back as another
``LinearModel`` holding one adjoint per parameter.
"""

from __future__ import annotations

import difftensor as dt


class LinearModel(dt.Differentiable):
    def __init__(self, weight: dt.Tensor, bias: dt.Tensor):
        self.weight = weight
        self.bias = bias

    def wrap(self, wrapper: dt.Wrapper) -> "LinearModel":
        return LinearModel(wrapper.wrap(self.weight), wrapper.wrap(self.bias))

    def __call__(self, x: dt.Tensor) -> dt.Tensor:
        return x * self.weight + self.bias


def make_dataset(n: int = 100):
    x = dt.linspace(-1.0, 1.0, n)
    return x, 5.0 * x + 2.0


def train_model(
    epochs: int = 300, lr: float = 0.2, seed: int = 0, verbose: bool = False
):
    """Train on noise-free data from a random start; return ``(loss, w, b)``."""

    dt.manual_seed(seed)
    x, y = make_dataset()
    init = dt.randn(2)
    model = LinearModel(init[0], init[1])

    def loss_fn(m: LinearModel) -> dt.Tensor:
        return dt.mse_loss(m(x), y)

    loss = None
    for epoch in range(epochs):
        loss, grad = dt.primal_and_reverse_derivative(model, loss_fn)
        model = LinearModel(
            model.weight - lr * grad.weight, model.bias - lr * grad.bias
        )
        if verbose and (epoch == 0 or (epoch + 1) % 50 == 0):
            print(f"Epoch {epoch+1:03d} | Loss: {float(loss):.6f}")

    return float(loss), float(model.weight), float(model.bias)


def main() -> None:  # pragma: no cover - example script
    loss, w, b = train_model(verbose=True)
    print("Final loss:", loss)
    print("w:", w, "b:", b)


if __name__ == "__main__":  # pragma: no cover - example script
    main()
