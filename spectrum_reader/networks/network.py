"""Multi-layer networks with optional per-layer temporal recurrence."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..core import computations
from ..core.activations import Activation
from ..core.errors import ShapeMismatchError
from ..core.parameters import Bias, Weight
from ..core.types import (
    ActivationConfig,
    Array,
    ForwardState,
    LayerGradients,
    ParameterConfig,
    WeightConfig,
)
from ..core.update import Update

logger = logging.getLogger(__name__)

LEARNING_RATE = 0.001


class Network:
    """Dense network trained one timestep at a time.

    ``hidden_weights[i]`` maps layer ``i`` (the input when ``i == 0``) to layer
    ``i + 1`` (the output when ``i == layers``). When :attr:`recurrent` is set,
    ``recurrence_weights[i]`` feeds the previous timestep's post-activation of
    hidden layer ``i`` back into its own pre-activation.

    The recurrent gradient is truncated to a single step: each timestep only
    sees the post-activations of the step immediately before it. This is not
    full backpropagation through time.
    """

    recurrent = False

    def __init__(
        self,
        params: ParameterConfig,
        weights: WeightConfig | None = None,
        activations: ActivationConfig | None = None,
        *,
        rng: np.random.Generator | None = None,
    ) -> None:
        params.validate()
        weights = (weights or WeightConfig()).validate()
        activations = activations or ActivationConfig()
        rng = rng or np.random.default_rng()

        hidden_weights: List[Weight] = []
        biases: List[Bias] = []
        for dim_in, dim_out in params.layer_dims():
            hidden_weights.append(
                Weight.random(dim_in, dim_out, weights.min_weight, weights.max_weight, rng)
            )
            biases.append(Bias.random(dim_out, weights.min_bias, weights.max_bias, rng))

        recurrence_weights: List[Weight] = []
        if self.recurrent:
            recurrence_weights = [
                Weight.random(units, units, weights.min_weight, weights.max_weight, rng)
                for units in params.units_by_layer
            ]

        self._assign(params, hidden_weights, recurrence_weights, biases, activations)

    @classmethod
    def from_parameters(
        cls,
        params: ParameterConfig,
        hidden_weights: Sequence[Weight],
        recurrence_weights: Sequence[Weight],
        biases: Sequence[Bias],
        activations: ActivationConfig,
    ) -> "Network":
        """Build a network around existing parameters, checking every shape."""

        params.validate()
        dims = params.layer_dims()
        if len(hidden_weights) != len(dims) or len(biases) != len(dims):
            raise ValueError(
                f"Expected {len(dims)} weight and bias records, "
                f"got {len(hidden_weights)} and {len(biases)}"
            )
        expected_recurrence = params.layers if cls.recurrent else 0
        if len(recurrence_weights) != expected_recurrence:
            raise ValueError(
                f"Expected {expected_recurrence} recurrence records, got {len(recurrence_weights)}"
            )
        for idx, (weight, bias, (dim_in, dim_out)) in enumerate(zip(hidden_weights, biases, dims)):
            if weight.shape != (dim_in, dim_out):
                raise ValueError(
                    f"Hidden weight {idx} has shape {weight.shape}, expected {(dim_in, dim_out)}"
                )
            if bias.shape != (dim_out,):
                raise ValueError(f"Bias {idx} has length {len(bias)}, expected {dim_out}")
        for idx, (weight, units) in enumerate(zip(recurrence_weights, params.units_by_layer)):
            if weight.shape != (units, units):
                raise ValueError(
                    f"Recurrence weight {idx} has shape {weight.shape}, expected {(units, units)}"
                )

        network = cls.__new__(cls)
        network._assign(params, hidden_weights, recurrence_weights, biases, activations)
        return network

    def _assign(
        self,
        params: ParameterConfig,
        hidden_weights: Sequence[Weight],
        recurrence_weights: Sequence[Weight],
        biases: Sequence[Bias],
        activations: ActivationConfig,
    ) -> None:
        self._params = params
        self._hidden_weights = list(hidden_weights)
        self._recurrence_weights = list(recurrence_weights)
        self._biases = list(biases)
        self._hidden_activation = activations.hidden
        self._output_activation = activations.output
        self._last_update_norm = 0.0

    # ------------------------------------------------------------------
    # Topology

    @property
    def config(self) -> ParameterConfig:
        return self._params

    @property
    def layers(self) -> int:
        return self._params.layers

    @property
    def input_size(self) -> int:
        return self._params.input_size

    @property
    def output_size(self) -> int:
        return self._params.output_size

    @property
    def units_by_layer(self) -> Tuple[int, ...]:
        return self._params.units_by_layer

    @property
    def hidden_weights(self) -> Tuple[Weight, ...]:
        return tuple(self._hidden_weights)

    @property
    def recurrence_weights(self) -> Tuple[Weight, ...]:
        return tuple(self._recurrence_weights)

    @property
    def biases(self) -> Tuple[Bias, ...]:
        return tuple(self._biases)

    @property
    def hidden_activation(self) -> Activation:
        return self._hidden_activation

    @property
    def output_activation(self) -> Activation:
        return self._output_activation

    @property
    def activations(self) -> ActivationConfig:
        return ActivationConfig(hidden=self._hidden_activation, output=self._output_activation)

    @property
    def last_update_norm(self) -> float:
        """Norm of the most recently applied accumulated gradient."""

        return self._last_update_norm

    def parameter_count(self) -> int:
        arrays = [*self._hidden_weights, *self._recurrence_weights, *self._biases]
        return int(sum(p.array.size for p in arrays))

    # ------------------------------------------------------------------
    # Inference

    def forward(self, vector: Sequence[float], previous: Optional[ForwardState] = None) -> ForwardState:
        """Run one timestep.

        ``previous`` is the state of the preceding timestep, or ``None`` when
        there is no history (equivalent to a zero recurrent contribution).
        """

        x = np.asarray(vector, dtype=np.float32).reshape(-1)
        if x.shape[0] != self.input_size:
            raise ValueError(f"Invalid input size of {x.shape[0]}, expected {self.input_size}")

        activations: List[Array] = [x]
        preactivations: List[Array] = []
        for i, (weight, bias) in enumerate(zip(self._hidden_weights, self._biases)):
            raw = x @ weight.array
            if i < self.layers and self.recurrent and previous is not None:
                raw = raw + previous.activations[i + 1] @ self._recurrence_weights[i].array
            raw = raw + bias.array
            preactivations.append(raw)
            if i < self.layers:
                x = self._hidden_activation.of(raw)
                activations.append(x)

        output = self._output_activation.of(preactivations[-1])
        return ForwardState(output=output, activations=activations, preactivations=preactivations)

    def predict(self, sequence: Sequence[Sequence[float]]) -> List[Array]:
        """Return one output vector per input timestep."""

        outputs: List[Array] = []
        previous: Optional[ForwardState] = None
        for vector in sequence:
            state = self.forward(vector, previous)
            outputs.append(state.output)
            previous = state
        return outputs

    def mean_squared_error(
        self,
        sequence: Sequence[Sequence[float]],
        targets: Sequence[Sequence[float]],
    ) -> float:
        outputs = self.predict(sequence)
        _check_targets(len(outputs), targets)
        diffs = [
            np.asarray(t, dtype=np.float64) - np.asarray(o, dtype=np.float64)
            for o, t in zip(outputs, targets)
        ]
        return float(np.mean(np.concatenate([d.reshape(-1) for d in diffs]) ** 2))

    # ------------------------------------------------------------------
    # Training

    def derive_gradients(
        self,
        state: ForwardState,
        target: Sequence[float],
        previous: Optional[ForwardState] = None,
    ) -> LayerGradients:
        """Gradients of one timestep's half squared error.

        The recurrent gradient uses only ``previous`` (one step back); the
        gradient is not propagated further into the past.
        """

        grad = computations.output_grad(
            state.output, target, state.preactivations[-1], self._output_activation
        )
        hidden: List[Array] = [None] * (self.layers + 1)  # type: ignore[list-item]
        biases: List[Array] = [None] * (self.layers + 1)  # type: ignore[list-item]
        recurrence: List[Array] = [None] * len(self._recurrence_weights)  # type: ignore[list-item]

        for i in reversed(range(self.layers + 1)):
            hidden[i] = computations.hidden_grad(state.activations[i], grad)
            biases[i] = computations.bias_grad(grad, len(self._biases[i]))
            if i < self.layers and self.recurrent:
                prev_act = previous.activations[i + 1] if previous is not None else None
                recurrence[i] = computations.recurrence_grad(
                    self.units_by_layer[i], grad, prev_act
                )
            if i > 0:
                grad = computations.backpropagated_grad(
                    self._hidden_weights[i].array,
                    self._hidden_activation,
                    grad,
                    state.preactivations[i - 1],
                )

        return LayerGradients(hidden=hidden, biases=biases, recurrence=recurrence)

    def apply_update(self, update: Update, learning_rate: float = LEARNING_RATE) -> None:
        """Descend along the accumulated sums, then clear ``update``."""

        norm = update.norm()
        logger.debug("Applying update of %d steps with norm %.6f", update.batch_count, norm)
        pairs = (
            ("hidden", update.hidden, self._hidden_weights),
            ("recurrence", update.recurrence, self._recurrence_weights),
            ("biases", update.biases, self._biases),
        )
        for name, grads, params in pairs:
            expected = computations.shape_of([p.array for p in params])
            actual = computations.shape_of(grads)
            if actual != expected:
                raise ShapeMismatchError(
                    f"Update {name} shapes {actual} do not match the network's {expected}"
                )
        for weight, grad in zip(self._hidden_weights, update.hidden):
            weight.update(grad, learning_rate)
        for weight, grad in zip(self._recurrence_weights, update.recurrence):
            weight.update(grad, learning_rate)
        for bias, grad in zip(self._biases, update.biases):
            bias.update(grad, learning_rate)
        self._last_update_norm = norm
        update.clear()

    def predict_and_update(
        self,
        sequence: Sequence[Sequence[float]],
        targets: Sequence[Sequence[float]],
        batch_size: int,
        learning_rate: float = LEARNING_RATE,
    ) -> List[Array]:
        """Train on one sequence, applying an update every ``batch_size`` steps.

        Returns the outputs produced along the way. Gradients left over in an
        incomplete final batch are discarded with the accumulator.
        """

        _check_targets(len(sequence), targets)
        update = Update.for_network(self, batch_size)
        outputs: List[Array] = []
        previous: Optional[ForwardState] = None
        for vector, target in zip(sequence, targets):
            state = self.forward(vector, previous)
            update.combine(self.derive_gradients(state, target, previous))
            if update.should_apply():
                self.apply_update(update, learning_rate)
            outputs.append(state.output)
            previous = state
        return outputs

    # ------------------------------------------------------------------
    # Persistence

    def save(self, path: str | Path) -> None:
        from .save import save_to_file

        save_to_file(self, path)

    @classmethod
    def load(cls, path: str | Path) -> "Network":
        from .save import from_save

        recurrent = None if cls is Network else cls.recurrent
        return from_save(path, recurrent=recurrent)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(layers={self.layers}, input_size={self.input_size}, "
            f"output_size={self.output_size}, units_by_layer={list(self.units_by_layer)}, "
            f"hidden={self._hidden_activation.key}, output={self._output_activation.key})"
        )


class RNN(Network):
    """Network with per-layer recurrence weights."""

    recurrent = True


class NN(Network):
    """Feed-forward network without recurrence weights."""

    recurrent = False


def _check_targets(steps: int, targets: Sequence[Sequence[float]]) -> None:
    if len(targets) < steps:
        raise ValueError(f"Missing target vector for timestep {len(targets)} of {steps}")


__all__ = ["LEARNING_RATE", "Network", "RNN", "NN"]
