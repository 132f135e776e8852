import numpy as np
import pytest

from spectrum_reader.core.errors import SaveFileNotFoundError, SaveFormatError
from spectrum_reader.core.types import ActivationConfig, ParameterConfig, WeightConfig
from spectrum_reader.networks import NN, RNN, Network, from_save
from spectrum_reader.networks.save import from_lines, to_lines

HAND_WRITTEN = """1
2
1
2
2,2#1,0,0,1
2,1#1,1
2#0,0
1#0.5
relu
none
"""


def _network(cls, seed=0):
    params = ParameterConfig(layers=2, input_size=5, output_size=3, units_by_layer=(4, 2))
    activations = ActivationConfig(hidden="sigmoid", output="relu")
    return cls(params, WeightConfig(), activations, rng=np.random.default_rng(seed))


@pytest.mark.parametrize("cls, records", [(RNN, 3 * 2 + 8), (NN, 2 * 2 + 8)])
def test_round_trip_is_exact(tmp_path, cls, records):
    network = _network(cls)
    path = tmp_path / "nested" / "net.txt"
    network.save(path)

    lines = path.read_text().splitlines()
    assert len(lines) == records
    assert lines[:4] == ["2", "5", "3", "4,2"]
    assert lines[-2:] == ["sigmoid", "relu"]

    loaded = Network.load(path)
    assert type(loaded) is cls
    assert loaded.units_by_layer == (4, 2)
    for ours, theirs in zip(network.hidden_weights, loaded.hidden_weights):
        np.testing.assert_array_equal(ours.array, theirs.array)
    for ours, theirs in zip(network.recurrence_weights, loaded.recurrence_weights):
        np.testing.assert_array_equal(ours.array, theirs.array)
    for ours, theirs in zip(network.biases, loaded.biases):
        np.testing.assert_array_equal(ours.array, theirs.array)

    sequence = np.random.default_rng(1).uniform(size=(4, 5))
    for a, b in zip(network.predict(sequence), loaded.predict(sequence)):
        np.testing.assert_array_equal(a, b)
    assert to_lines(loaded) == lines


def test_hand_written_file(tmp_path):
    path = tmp_path / "ff.txt"
    path.write_text(HAND_WRITTEN)
    network = from_save(path)
    assert isinstance(network, NN)
    out = network.forward([1.0, -3.0]).output
    np.testing.assert_allclose(out, [1.5])


def test_missing_file_is_recoverable(tmp_path):
    with pytest.raises(SaveFileNotFoundError):
        RNN.load(tmp_path / "absent.txt")
    with pytest.raises(FileNotFoundError):
        from_save(tmp_path / "absent.txt")


def test_layout_must_match_requested_class(tmp_path):
    path = tmp_path / "ff.txt"
    path.write_text(HAND_WRITTEN)
    with pytest.raises(SaveFormatError):
        RNN.load(path)
    assert isinstance(NN.load(path), NN)


@pytest.mark.parametrize(
    "mutate",
    [
        lambda lines: lines[:-1],
        lambda lines: ["x"] + lines[1:],
        lambda lines: lines[:3] + ["2,2"] + lines[4:],
        lambda lines: lines[:4] + ["2,3#1,0,0,1,0,0"] + lines[5:],
        lambda lines: lines[:4] + ["2,2#1,0,0"] + lines[5:],
        lambda lines: lines[:7] + ["1#0.5,0.5"] + lines[8:],
        lambda lines: lines[:-2] + ["tanh"] + lines[-1:],
        lambda lines: lines + ["extra"],
    ],
)
def test_malformed_files(mutate):
    lines = HAND_WRITTEN.splitlines()
    with pytest.raises(SaveFormatError):
        from_lines(mutate(lines))


def test_trailing_blank_lines_are_ignored():
    lines = HAND_WRITTEN.splitlines() + ["", ""]
    assert isinstance(from_lines(lines), NN)
