"""Activation catalog for spectrum-reader networks."""

from __future__ import annotations

from enum import Enum
from typing import Union

import numpy as np

from .errors import UnknownActivationError

Scalar = Union[float, np.ndarray]


def _sigmoid(x: np.ndarray) -> np.ndarray:
    # tanh form avoids overflow in exp for large |x|
    return 0.5 * (1.0 + np.tanh(0.5 * x))


def _unwrap(result: np.ndarray) -> Scalar:
    if result.ndim == 0:
        return float(result)
    return result.astype(np.float32, copy=False)


class Activation(Enum):
    """Closed set of element-wise nonlinearities.

    The member value is the stable key written to save files.
    """

    IDENTITY = "none"
    RELU = "relu"
    SIGMOID = "sigmoid"

    @property
    def key(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, key: str) -> "Activation":
        """Return the activation registered under ``key``."""

        try:
            return cls(key.strip())
        except (ValueError, AttributeError) as exc:
            known = ", ".join(member.value for member in cls)
            raise UnknownActivationError(
                f"Unknown activation {key!r}; expected one of: {known}"
            ) from exc

    def of(self, x: Scalar) -> Scalar:
        """Evaluate the activation element-wise."""

        x = np.asarray(x, dtype=np.float32)
        if self is Activation.RELU:
            return _unwrap(np.maximum(x, 0.0))
        if self is Activation.SIGMOID:
            return _unwrap(_sigmoid(x))
        return _unwrap(x.copy())

    def deriv(self, x: Scalar) -> Scalar:
        """Evaluate the derivative element-wise."""

        x = np.asarray(x, dtype=np.float32)
        if self is Activation.RELU:
            return _unwrap((x > 0).astype(np.float32))
        if self is Activation.SIGMOID:
            s = _sigmoid(x)
            return _unwrap(s * (1.0 - s))
        return _unwrap(np.ones_like(x))

    def __str__(self) -> str:
        return self.value


def coerce(activation: Activation | str) -> Activation:
    if isinstance(activation, Activation):
        return activation
    return Activation.from_name(activation)


def of(name: Activation | str, x: Scalar) -> Scalar:
    """Evaluate the activation named ``name`` at ``x``."""

    return coerce(name).of(x)


def deriv(name: Activation | str, x: Scalar) -> Scalar:
    """Evaluate the derivative of the activation named ``name`` at ``x``."""

    return coerce(name).deriv(x)


def name(activation: Activation) -> str:
    """Return the serialization key of ``activation``."""

    return activation.key


__all__ = ["Activation", "coerce", "of", "deriv", "name"]
