"""Core typing contracts for spectrum-reader."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .activations import Activation, coerce

Array = np.ndarray


@dataclass(frozen=True)
class ParameterConfig:
    """Network topology: hidden layer count and per-layer unit counts."""

    layers: int
    input_size: int
    output_size: int
    units_by_layer: Tuple[int, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "units_by_layer", tuple(int(u) for u in self.units_by_layer))

    def validate(self) -> "ParameterConfig":
        if self.layers < 1 or self.input_size < 1 or self.output_size < 1:
            raise ValueError(
                "Cannot create network with "
                f"{self.layers} layers, {self.input_size} input dim, "
                f"{self.output_size} output dim"
            )
        if len(self.units_by_layer) != self.layers:
            raise ValueError(
                f"units_by_layer has {len(self.units_by_layer)} entries "
                f"but layers={self.layers}"
            )
        if any(units < 1 for units in self.units_by_layer):
            raise ValueError(f"Every layer needs at least one unit: {list(self.units_by_layer)}")
        return self

    def layer_dims(self) -> List[Tuple[int, int]]:
        """Return ``(dim_in, dim_out)`` for each of the ``layers + 1`` boundaries."""

        dims = [self.input_size, *self.units_by_layer, self.output_size]
        return list(zip(dims[:-1], dims[1:]))


@dataclass(frozen=True)
class WeightConfig:
    """Uniform initialisation ranges for weights and biases."""

    min_weight: float = -0.1
    max_weight: float = 0.1
    min_bias: float = -0.1
    max_bias: float = 0.1

    def validate(self) -> "WeightConfig":
        if not self.min_weight < self.max_weight:
            raise ValueError(f"Empty weight range [{self.min_weight}, {self.max_weight})")
        if not self.min_bias < self.max_bias:
            raise ValueError(f"Empty bias range [{self.min_bias}, {self.max_bias})")
        return self


@dataclass(frozen=True)
class ActivationConfig:
    """Hidden and output activations of a network."""

    hidden: Activation = Activation.RELU
    output: Activation = Activation.IDENTITY

    def __post_init__(self) -> None:
        object.__setattr__(self, "hidden", coerce(self.hidden))
        object.__setattr__(self, "output", coerce(self.output))


@dataclass(frozen=True)
class ConverterConfig:
    """Topology and batching of a spectrogram-to-notes converter."""

    layers: int
    units_by_layer: Tuple[int, ...]
    batch_size: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "units_by_layer", tuple(int(u) for u in self.units_by_layer))


@dataclass
class ForwardState:
    """Values captured during one forward step.

    ``activations`` holds the input followed by each hidden post-activation
    (``L + 1`` entries); ``preactivations`` holds the pre-activation of every
    layer boundary including the output (``L + 1`` entries).
    """

    output: Array
    activations: List[Array]
    preactivations: List[Array]


@dataclass
class LayerGradients:
    """Parameter gradients for a single timestep."""

    hidden: List[Array]
    biases: List[Array]
    recurrence: List[Array] = field(default_factory=list)


@dataclass(frozen=True)
class SequencePair:
    """Aligned input and target sequences."""

    inputs: Sequence[Array]
    targets: Sequence[Array]


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`spectrum_reader.training.pipelines.run_pipeline`."""

    steps: int
    metrics_path: str
    manifest_path: str
    summary_path: str = ""
    save_path: Optional[str] = None
