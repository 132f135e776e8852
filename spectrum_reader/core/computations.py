"""Per-timestep gradient primitives used by the networks.

All gradients are gradients of the half squared error
``0.5 * sum((target - output) ** 2)``, so subtracting ``lr * grad`` descends.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from .activations import Activation
from .errors import ShapeMismatchError
from .types import Array


def output_grad(output: Array, target: Array, raw_output: Array, activation: Activation) -> Array:
    """Gradient of the loss with respect to the output pre-activation."""

    output = np.asarray(output, dtype=np.float32)
    target = np.asarray(target, dtype=np.float32)
    if output.shape != target.shape:
        raise ShapeMismatchError(
            f"Target length {target.shape} does not match output {output.shape}"
        )
    return -(target - output) * activation.deriv(raw_output)


def hidden_grad(layer_input: Array, grad: Array) -> Array:
    """``outer(a_i, g)``, shaped like the weight mapping ``a_i`` forward."""

    return np.outer(layer_input, grad).astype(np.float32)


def bias_grad(grad: Array, expected: int) -> Array:
    if grad.shape != (expected,):
        raise ShapeMismatchError(
            f"Gradient length {grad.shape} does not match bias length {expected}"
        )
    return grad.copy()


def recurrence_grad(dim: int, grad: Array, previous: Optional[Array]) -> Array:
    """Recurrent weight gradient from the immediately preceding timestep only."""

    if previous is None:
        return np.zeros((dim, dim), dtype=np.float32)
    return np.outer(previous, grad).astype(np.float32)


def backpropagated_grad(weight: Array, activation: Activation, grad: Array, raw: Array) -> Array:
    """Carry ``grad`` back through ``weight`` into the previous layer's pre-activation."""

    return (weight @ grad) * activation.deriv(raw)


def half_squared_error(output: Array, target: Array) -> float:
    diff = np.asarray(target, dtype=np.float64) - np.asarray(output, dtype=np.float64)
    return float(0.5 * np.sum(diff * diff))


def shape_of(arrays) -> Tuple[Tuple[int, ...], ...]:
    return tuple(np.shape(a) for a in arrays)


__all__ = [
    "output_grad",
    "hidden_grad",
    "bias_grad",
    "recurrence_grad",
    "backpropagated_grad",
    "half_squared_error",
    "shape_of",
]
