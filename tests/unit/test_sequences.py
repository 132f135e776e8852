import numpy as np
import pytest

from spectrum_reader.data import available, load_sequences, read_array


def test_available_sources():
    assert available() == ["files", "inline"]


def test_inline_sequences_are_float32_matrices():
    pair = load_sequences(
        {"name": "inline", "options": {"inputs": [[1, 0], [0, 1]], "targets": [1, 0]}}
    )
    assert pair.inputs.dtype == np.float32
    assert pair.inputs.shape == (2, 2)
    assert pair.targets.shape == (2, 1)


def test_length_mismatch_is_rejected():
    with pytest.raises(ValueError):
        load_sequences(
            {"name": "inline", "options": {"inputs": [[1, 0], [0, 1]], "targets": [[1]]}}
        )


def test_unknown_source():
    with pytest.raises(KeyError):
        load_sequences({"name": "wav", "options": {}})


def test_read_array_formats(tmp_path):
    data = np.arange(6, dtype=np.float32).reshape(3, 2)
    np.save(tmp_path / "a.npy", data)
    np.savez(tmp_path / "b.npz", frames=data)
    np.savez(tmp_path / "c.npz", x=data, y=data)
    np.savetxt(tmp_path / "d.csv", data, delimiter=",")

    np.testing.assert_array_equal(read_array(tmp_path / "a.npy"), data)
    np.testing.assert_array_equal(read_array(tmp_path / "b.npz"), data)
    np.testing.assert_array_equal(read_array(tmp_path / "c.npz", "y"), data)
    np.testing.assert_array_equal(read_array(tmp_path / "d.csv"), data)
    with pytest.raises(KeyError):
        read_array(tmp_path / "c.npz")
    with pytest.raises(ValueError):
        read_array(tmp_path / "e.wav")
