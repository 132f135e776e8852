"""Core numerical primitives for spectrum-reader."""

from . import activations, computations, errors, parameters, types, update

__all__ = ["activations", "computations", "errors", "parameters", "types", "update"]
