from __future__ import annotations

import hashlib
import json
from pathlib import Path

import numpy as np
import pytest

from spectrum_reader.networks import NN, RNN, Network
from spectrum_reader.training import pipelines


def _config(tmp_path: Path, **train) -> dict:
    config = pipelines.load_preset("chord-toy")
    config["train"].update(
        {"iterations": 30, "eval_every": 10, "run_dir": str(tmp_path / "run"), **train}
    )
    return config


def test_presets_include_builtin_and_file_presets():
    names = set(pipelines.presets())
    assert {"chord-toy", "chord-toy-recurrent", "echo-recurrent"} <= names
    with pytest.raises(KeyError):
        pipelines.load_preset("does-not-exist")


def test_file_presets_ship_inside_the_package():
    package_dir = Path(pipelines.__file__).resolve().parents[1]
    preset_dir = pipelines._PRESET_DIR
    assert preset_dir.is_relative_to(package_dir)
    assert (preset_dir / "echo-recurrent.yaml").is_file()


def test_load_preset_returns_a_copy():
    config = pipelines.load_preset("chord-toy")
    config["train"]["iterations"] = 1
    assert pipelines.load_preset("chord-toy")["train"]["iterations"] == 1000


def test_pipeline_produces_artifacts(tmp_path):
    result = pipelines.run_pipeline(_config(tmp_path))

    assert result.steps == 30 * 5
    metrics = [
        json.loads(line)
        for line in Path(result.metrics_path).read_text().splitlines()
        if line
    ]
    assert [m["iteration"] for m in metrics] == [0, 10, 20, 30]
    assert metrics[-1]["loss"] < metrics[0]["loss"]

    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["config"]["train"]["iterations"] == 30
    assert manifest["network"]["type"] == "NN"
    assert manifest["network"]["shapes"]["recurrence"] == []
    saved = Path(result.save_path).read_bytes()
    assert manifest["save"]["sha256"] == hashlib.sha256(saved).hexdigest()
    assert manifest["save"]["records"] == 2 * 1 + 8

    summary = json.loads(Path(result.summary_path).read_text())
    assert summary["records"] == 4
    assert summary["loss_improvement"] > 1.0

    assert Path(result.save_path) == tmp_path / "run" / "network.txt"
    assert isinstance(Network.load(result.save_path), NN)


def test_pipeline_resumes_from_saved_network(tmp_path):
    first = pipelines.run_pipeline(_config(tmp_path))
    resumed_cfg = _config(tmp_path, run_dir=str(tmp_path / "resumed"))
    resumed_cfg["model"]["load_path"] = first.save_path
    second = pipelines.run_pipeline(resumed_cfg)

    manifest = json.loads(Path(second.manifest_path).read_text())
    assert manifest["network"]["origin"] == f"loaded:{first.save_path}"
    first_metrics = Path(first.metrics_path).read_text().splitlines()
    second_metrics = Path(second.metrics_path).read_text().splitlines()
    assert json.loads(second_metrics[0])["loss"] == pytest.approx(json.loads(first_metrics[-1])["loss"])


def test_pipeline_falls_back_when_save_is_missing(tmp_path):
    config = _config(tmp_path)
    config["model"]["load_path"] = str(tmp_path / "missing.txt")
    result = pipelines.run_pipeline(config)
    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["network"]["origin"] == "random"


def test_pipeline_rejects_incompatible_save(tmp_path):
    first = pipelines.run_pipeline(_config(tmp_path))
    config = pipelines.load_preset("echo-recurrent")
    config["model"]["load_path"] = first.save_path
    config["train"].update({"iterations": 1, "run_dir": str(tmp_path / "echo")})
    with pytest.raises(ValueError):
        pipelines.run_pipeline(config)


def test_pipeline_reads_sequence_files(tmp_path):
    rng = np.random.default_rng(0)
    inputs = rng.uniform(size=(6, 4)).astype(np.float32)
    targets = (inputs[:, :2] > 0.5).astype(np.float32)
    np.save(tmp_path / "inputs.npy", inputs)
    np.savetxt(tmp_path / "targets.csv", targets, delimiter=",")

    config = {
        "data": {
            "name": "files",
            "options": {
                "inputs": str(tmp_path / "inputs.npy"),
                "targets": str(tmp_path / "targets.csv"),
            },
        },
        "model": {"recurrent": True, "hidden": [5, 3], "output_activation": "sigmoid"},
        "train": {
            "iterations": 5,
            "batch_size": 3,
            "lr": 0.05,
            "seed": 1,
            "metrics": ["mse", "f1"],
            "run_dir": str(tmp_path / "files-run"),
        },
    }
    result = pipelines.run_pipeline(config)
    network = Network.load(result.save_path)
    assert isinstance(network, RNN)
    assert network.units_by_layer == (5, 3)
    record = json.loads(Path(result.metrics_path).read_text().splitlines()[-1])
    assert {"loss", "mse", "f1"} <= set(record)


def test_config_hash_is_stable():
    config = pipelines.load_preset("chord-toy")
    assert pipelines.config_hash(config) == pipelines.config_hash(json.loads(json.dumps(config)))
    config["train"]["seed"] = 99
    assert pipelines.config_hash(config) != pipelines.config_hash(pipelines.load_preset("chord-toy"))
