"""Spectrogram-to-note conversion on top of the recurrent network.

Audio decoding and MIDI encoding live outside this package; they are consumed
through the small protocols below.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Callable, List, Protocol, Sequence, TypeVar

import numpy as np

from .core.errors import SaveFileNotFoundError
from .core.types import ActivationConfig, Array, ConverterConfig, ParameterConfig, WeightConfig
from .networks.network import RNN

logger = logging.getLogger(__name__)

MIN_FREQ = 27.5
MAX_FREQ = 4200.0
BINS_PER_OCTAVE = 12
INPUT_SIZE = int(BINS_PER_OCTAVE * math.ceil(math.log2(MAX_FREQ / MIN_FREQ)))

KEY_COUNT = 88
NON_KEY_VARS = 3
ENCODING_LENGTH = KEY_COUNT * 2 + NON_KEY_VARS

T = TypeVar("T")


class Spectrogram(Protocol):
    """Fixed-width frequency vectors plus the duration of one step."""

    timestep: float

    def graph(self) -> Sequence[Sequence[float]]:
        ...


class Encoding(Protocol):
    """Fixed-width 0/1 note-activation vectors, one per step."""

    def vectors(self) -> Sequence[Sequence[float]]:
        ...


Decoder = Callable[[List[Array], float, float], T]


def threshold(outputs: Sequence[Array], timestep: float, cutoff: float) -> List[Array]:
    """Default decoder: mark every output ``>= cutoff`` as active."""

    return [(np.asarray(out) >= cutoff).astype(np.float32) for out in outputs]


class RNNConverter:
    """Translate spectrograms into note encodings and learn from examples."""

    def __init__(
        self,
        config: ConverterConfig,
        weights: WeightConfig,
        activations: ActivationConfig,
        *,
        input_size: int = INPUT_SIZE,
        output_size: int = ENCODING_LENGTH,
        decoder: Decoder | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        params = ParameterConfig(
            layers=config.layers,
            input_size=input_size,
            output_size=output_size,
            units_by_layer=config.units_by_layer,
        )
        self.rnn = RNN(params, weights, activations, rng=rng)
        self.batch_size = int(config.batch_size)
        self.decoder = decoder or threshold

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        batch_size: int,
        *,
        input_size: int = INPUT_SIZE,
        output_size: int = ENCODING_LENGTH,
        decoder: Decoder | None = None,
    ) -> "RNNConverter":
        rnn = RNN.load(path)
        if rnn.input_size != input_size or rnn.output_size != output_size:
            raise ValueError(
                f"Invalid converter save file {path}: network maps {rnn.input_size} -> "
                f"{rnn.output_size}, expected {input_size} -> {output_size}"
            )
        converter = cls.__new__(cls)
        converter.rnn = rnn
        converter.batch_size = int(batch_size)
        converter.decoder = decoder or threshold
        return converter

    @classmethod
    def load_or_create(
        cls,
        path: str | Path,
        config: ConverterConfig,
        weights: WeightConfig,
        activations: ActivationConfig,
        **kwargs,
    ) -> "RNNConverter":
        """Load ``path`` or start from random weights when it does not exist."""

        rng = kwargs.pop("rng", None)
        try:
            return cls.from_file(path, config.batch_size, **kwargs)
        except SaveFileNotFoundError:
            logger.info("No converter weights at %s, initialising new network", path)
            return cls(config, weights, activations, rng=rng, **kwargs)

    def translate_spectrum(self, spectrum: Spectrogram, cutoff: float):
        outputs = self.rnn.predict(spectrum.graph())
        return self.decoder(outputs, spectrum.timestep, cutoff)

    def update(self, spectrum: Spectrogram, encoding: Encoding) -> None:
        self.rnn.predict_and_update(spectrum.graph(), encoding.vectors(), self.batch_size)

    def save(self, path: str | Path) -> None:
        self.rnn.save(path)


__all__ = [
    "INPUT_SIZE",
    "ENCODING_LENGTH",
    "Spectrogram",
    "Encoding",
    "RNNConverter",
    "threshold",
]
