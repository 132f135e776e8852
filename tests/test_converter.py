from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import numpy as np
import pytest

from spectrum_reader import converter
from spectrum_reader.converter import ENCODING_LENGTH, INPUT_SIZE, RNNConverter
from spectrum_reader.core.types import ActivationConfig, ConverterConfig, WeightConfig


@dataclass
class FakeSpectrogram:
    frames: List[List[float]]
    timestep: float = 0.01

    def graph(self):
        return self.frames


@dataclass
class FakeEncoding:
    notes: List[List[float]] = field(default_factory=list)

    def vectors(self):
        return self.notes


CONFIG = ConverterConfig(layers=1, units_by_layer=(6,), batch_size=2)
ACTIVATIONS = ActivationConfig(hidden="relu", output="sigmoid")


def _spectrum(steps=4, width=8, seed=0):
    rng = np.random.default_rng(seed)
    return FakeSpectrogram(rng.uniform(size=(steps, width)).tolist())


def _encoding(steps=4, width=3):
    notes = np.zeros((steps, width))
    notes[::2, 0] = 1.0
    return FakeEncoding(notes.tolist())


def _converter(**kwargs):
    return RNNConverter(
        CONFIG,
        WeightConfig(),
        ACTIVATIONS,
        input_size=8,
        output_size=3,
        rng=np.random.default_rng(0),
        **kwargs,
    )


def test_default_dimensions():
    assert INPUT_SIZE == 96
    assert ENCODING_LENGTH == 179
    default = RNNConverter(CONFIG, WeightConfig(), ACTIVATIONS, rng=np.random.default_rng(0))
    assert default.rnn.input_size == INPUT_SIZE
    assert default.rnn.output_size == ENCODING_LENGTH


def test_translate_thresholds_outputs():
    conv = _converter()
    notes = conv.translate_spectrum(_spectrum(), cutoff=0.5)
    assert len(notes) == 4
    for row in notes:
        assert set(np.unique(row)) <= {0.0, 1.0}
    silent = conv.translate_spectrum(_spectrum(), cutoff=1.1)
    assert not np.any(silent)


def test_translate_uses_custom_decoder():
    calls = []

    def decoder(outputs, timestep, cutoff):
        calls.append((len(outputs), timestep, cutoff))
        return "decoded"

    conv = _converter(decoder=decoder)
    assert conv.translate_spectrum(_spectrum(steps=3), cutoff=0.3) == "decoded"
    assert calls == [(3, 0.01, 0.3)]


def test_update_trains_the_network():
    conv = _converter()
    spectrum, encoding = _spectrum(), _encoding()
    before = conv.rnn.mean_squared_error(spectrum.graph(), encoding.vectors())
    for _ in range(20):
        conv.update(spectrum, encoding)
    assert conv.rnn.mean_squared_error(spectrum.graph(), encoding.vectors()) < before


def test_update_rejects_short_encoding():
    conv = _converter()
    with pytest.raises(ValueError):
        conv.update(_spectrum(steps=4), _encoding(steps=3))


def test_save_and_reload(tmp_path):
    conv = _converter()
    path = tmp_path / "converter.txt"
    conv.save(path)
    loaded = RNNConverter.from_file(path, batch_size=3, input_size=8, output_size=3)
    assert loaded.batch_size == 3
    np.testing.assert_array_equal(
        loaded.translate_spectrum(_spectrum(), 0.5), conv.translate_spectrum(_spectrum(), 0.5)
    )
    with pytest.raises(ValueError):
        RNNConverter.from_file(path, batch_size=3)


def test_load_or_create_falls_back(tmp_path):
    conv = RNNConverter.load_or_create(
        tmp_path / "absent.txt",
        CONFIG,
        WeightConfig(),
        ACTIVATIONS,
        input_size=8,
        output_size=3,
        rng=np.random.default_rng(1),
    )
    assert conv.rnn.input_size == 8
    assert conv.batch_size == CONFIG.batch_size


def test_threshold_decoder():
    decoded = converter.threshold([np.array([0.2, 0.5, 0.9])], 0.01, 0.5)
    np.testing.assert_array_equal(decoded[0], [0.0, 1.0, 1.0])
