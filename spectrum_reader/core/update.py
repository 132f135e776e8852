"""Batched gradient accumulation."""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from .computations import shape_of
from .errors import ShapeMismatchError
from .types import Array, LayerGradients, ParameterConfig


class Update:
    """Running sums of per-timestep gradients, shaped like a network's parameters."""

    def __init__(
        self,
        input_size: int,
        output_size: int,
        units_by_layer: Sequence[int],
        max_batch_size: int,
        *,
        recurrent: bool = True,
    ) -> None:
        if max_batch_size < 1:
            raise ValueError(f"max_batch_size must be at least 1, got {max_batch_size}")
        config = ParameterConfig(
            layers=len(units_by_layer),
            input_size=input_size,
            output_size=output_size,
            units_by_layer=tuple(units_by_layer),
        ).validate()

        self.max_batch_size = int(max_batch_size)
        self.batch_count = 0
        self.hidden: List[Array] = [
            np.zeros(dims, dtype=np.float32) for dims in config.layer_dims()
        ]
        self.biases: List[Array] = [
            np.zeros(dim_out, dtype=np.float32) for _, dim_out in config.layer_dims()
        ]
        self.recurrence: List[Array] = (
            [np.zeros((u, u), dtype=np.float32) for u in config.units_by_layer]
            if recurrent
            else []
        )

    @classmethod
    def for_network(cls, network, max_batch_size: int) -> "Update":
        return cls(
            network.input_size,
            network.output_size,
            network.units_by_layer,
            max_batch_size,
            recurrent=network.recurrent,
        )

    def combine(self, gradients: LayerGradients) -> None:
        """Add one timestep's gradients into the running sums."""

        for name, current, incoming in (
            ("hidden", self.hidden, gradients.hidden),
            ("recurrence", self.recurrence, gradients.recurrence),
            ("bias", self.biases, gradients.biases),
        ):
            if shape_of(current) != shape_of(incoming):
                raise ShapeMismatchError(
                    f"Mismatched {name} gradients: expected {shape_of(current)}, "
                    f"got {shape_of(incoming)}"
                )

        for acc, grad in zip(self.hidden, gradients.hidden):
            acc += grad
        for acc, grad in zip(self.recurrence, gradients.recurrence):
            acc += grad
        for acc, grad in zip(self.biases, gradients.biases):
            acc += grad
        self.batch_count += 1

    def should_apply(self) -> bool:
        return self.batch_count >= self.max_batch_size

    def norm(self) -> float:
        total = 0.0
        for arr in (*self.hidden, *self.recurrence, *self.biases):
            total += float(np.sum(np.square(arr, dtype=np.float64)))
        return float(np.sqrt(total))

    def clear(self) -> None:
        for arr in (*self.hidden, *self.recurrence, *self.biases):
            arr.fill(0.0)
        # batch_count returns to zero every cycle
        self.batch_count = 0

    def __repr__(self) -> str:
        return (
            f"Update(batch_count={self.batch_count}, max_batch_size={self.max_batch_size}, "
            f"layers={len(self.biases) - 1})"
        )


__all__ = ["Update"]
