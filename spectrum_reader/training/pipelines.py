"""Config-driven training runs for spectrum-reader networks."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, Mapping

import numpy as np

from ..core.errors import SaveFileNotFoundError
from ..core.types import ActivationConfig, ParameterConfig, RunResult, WeightConfig
from ..data import load_sequences
from ..networks.network import LEARNING_RATE, NN, RNN, Network
from ..reporting.artifacts import describe_network, write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from ..reporting.summary import write_summary
from .metrics import DEFAULT_CUTOFF
from .trainer import Trainer

logger = logging.getLogger(__name__)

_CHORD_INPUTS = [
    [1, 1, 0, 1, 1],
    [1, 0, 0, 1, 1],
    [1, 1, 0, 1, 0],
    [1, 1, 1, 0, 1],
    [1, 1, 0, 0, 0],
]
_CHORD_TARGETS = [
    [1, 0, 1],
    [1, 0, 1],
    [1, 0, 1],
    [1, 1, 1],
    [1, 0, 1],
]

_PRESETS: Dict[str, Mapping[str, object]] = {
    "chord-toy": {
        "data": {
            "name": "inline",
            "options": {"inputs": _CHORD_INPUTS, "targets": _CHORD_TARGETS},
        },
        "model": {
            "recurrent": False,
            "hidden": [4],
            "hidden_activation": "relu",
            "output_activation": "none",
            "weights": {"min_weight": 0.01, "max_weight": 0.05, "min_bias": 0.0, "max_bias": 0.001},
        },
        "train": {
            "iterations": 1000,
            "batch_size": 5,
            "lr": LEARNING_RATE,
            "seed": 0,
            "eval_every": 10,
            "run_dir": "runs/chord-toy",
            "enable_plots": False,
        },
    },
    "chord-toy-recurrent": {
        "data": {
            "name": "inline",
            "options": {"inputs": _CHORD_INPUTS, "targets": _CHORD_TARGETS},
        },
        "model": {
            "recurrent": True,
            "hidden": [4],
            "hidden_activation": "relu",
            "output_activation": "none",
            "weights": {"min_weight": 0.01, "max_weight": 0.05, "min_bias": 0.0, "max_bias": 0.001},
        },
        "train": {
            "iterations": 1000,
            "batch_size": 5,
            "lr": LEARNING_RATE,
            "seed": 0,
            "eval_every": 10,
            "run_dir": "runs/chord-toy-recurrent",
            "save_path": "runs/chord-toy-recurrent/network.txt",
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[1] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def read_config_file(path: Path) -> Mapping[str, object]:
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        import yaml

        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def config_hash(config: Mapping[str, object]) -> str:
    """Return a stable 12-character hash for ``config``."""

    canonical = json.dumps(config, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:12]


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        presets: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                missing = {"data", "model", "train"} - set(data)
                if missing:
                    raise KeyError(
                        f"Preset {file.name} is missing required sections: "
                        f"{', '.join(sorted(missing))}"
                    )
                presets[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = presets
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_presets = _file_presets()
    if name in file_presets:
        return file_presets[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


def build_network(
    model_cfg: Mapping[str, object],
    input_size: int,
    output_size: int,
    *,
    seed: int | None = None,
) -> Network:
    """Create a randomly initialised network from the ``model`` config section."""

    hidden = [int(h) for h in model_cfg.get("hidden", [16])]  # type: ignore[union-attr]
    layers = int(model_cfg.get("layers", len(hidden)))
    params = ParameterConfig(
        layers=layers,
        input_size=int(model_cfg.get("input_size", input_size)),
        output_size=int(model_cfg.get("output_size", output_size)),
        units_by_layer=tuple(hidden),
    )
    weights = WeightConfig(**dict(model_cfg.get("weights", {})))  # type: ignore[arg-type]
    activations = ActivationConfig(
        hidden=str(model_cfg.get("hidden_activation", "relu")),  # type: ignore[arg-type]
        output=str(model_cfg.get("output_activation", "none")),  # type: ignore[arg-type]
    )
    cls = RNN if bool(model_cfg.get("recurrent", True)) else NN
    return cls(params, weights, activations, rng=np.random.default_rng(seed))


def _resolve_network(
    model_cfg: Mapping[str, object], input_size: int, output_size: int, seed: int
) -> tuple[Network, str]:
    load_path = model_cfg.get("load_path")
    if load_path:
        try:
            network = Network.load(str(load_path))
        except SaveFileNotFoundError:
            logger.info("No saved network at %s, starting from random weights", load_path)
        else:
            if network.input_size != input_size or network.output_size != output_size:
                raise ValueError(
                    f"Saved network maps {network.input_size} -> {network.output_size} "
                    f"but data has {input_size} -> {output_size}"
                )
            return network, f"loaded:{load_path}"
    return build_network(model_cfg, input_size, output_size, seed=seed), "random"


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    data_cfg = dict(config["data"])  # type: ignore[arg-type]
    model_cfg = dict(config["model"])  # type: ignore[arg-type]
    train_cfg = dict(config["train"])  # type: ignore[arg-type]

    sequences = load_sequences(data_cfg)
    input_size = int(sequences.inputs.shape[1])  # type: ignore[attr-defined]
    output_size = int(sequences.targets.shape[1])  # type: ignore[attr-defined]

    seed = int(train_cfg.get("seed", 0))
    iterations = int(train_cfg.get("iterations", 100))
    batch_size = int(train_cfg.get("batch_size", 1))
    learning_rate = float(train_cfg.get("lr", LEARNING_RATE))
    cutoff = float(train_cfg.get("cutoff", DEFAULT_CUTOFF))
    eval_every = int(train_cfg.get("eval_every", 1))
    metrics_cfg = train_cfg.get("metrics", "default")
    if isinstance(metrics_cfg, str):
        metric_names = metrics_cfg
    else:
        metric_names = ",".join(str(item) for item in metrics_cfg)  # type: ignore[union-attr]

    network, origin = _resolve_network(model_cfg, input_size, output_size, seed)

    run_dir = _resolve_run_dir(train_cfg)
    run_dir.mkdir(parents=True, exist_ok=True)
    save_path = Path(train_cfg.get("save_path", run_dir / "network.txt"))  # type: ignore[arg-type]

    _print_startup_summary(
        network=network,
        origin=origin,
        timesteps=len(sequences.inputs),
        iterations=iterations,
        batch_size=batch_size,
        learning_rate=learning_rate,
    )

    jsonl = JsonlSink(run_dir / "metrics.jsonl", split="train", seed=seed)
    csv_sink = CsvSink(run_dir / "metrics.csv", split="train")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    trainer = Trainer(
        network,
        batch_size=batch_size,
        learning_rate=learning_rate,
        callbacks=[jsonl, csv_sink, plots],
    )
    checkpoint = run_dir / "best.txt" if train_cfg.get("checkpoint", False) else None
    trainer.run(
        sequences.inputs,
        sequences.targets,
        iterations,
        metric_names=metric_names,
        cutoff=cutoff,
        eval_every=eval_every,
        checkpoint_path=checkpoint,
    )
    plots.close()

    network.save(save_path)
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=json.loads(json.dumps(config, default=str)),
        network=describe_network(network, origin=origin),
        save_path=save_path,
    )
    summary_path = write_summary(
        jsonl.path, run_dir / "summary.json", tail=int(train_cfg.get("summary_tail", 32))
    )

    return RunResult(
        steps=iterations * len(sequences.inputs),
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
        summary_path=summary_path,
        save_path=str(save_path),
    )


def _resolve_run_dir(train_cfg: Mapping[str, object]) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp


def _print_startup_summary(
    *,
    network: Network,
    origin: str,
    timesteps: int,
    iterations: int,
    batch_size: int,
    learning_rate: float,
) -> None:
    print("=== spectrum-reader run ===")
    print(f"Network       : {type(network).__name__} ({origin})")
    print(f"Dimensions    : {network.input_size} -> {list(network.units_by_layer)} -> {network.output_size}")
    print(f"Activations   : {network.hidden_activation.key} / {network.output_activation.key}")
    print(f"Parameters    : {network.parameter_count()}")
    print(f"Timesteps     : {timesteps}")
    print(f"Iterations    : {iterations}")
    print(f"Batch size    : {batch_size}")
    print(f"Learning rate : {learning_rate}")
    print("===========================")


__all__ = [
    "build_network",
    "config_hash",
    "load_preset",
    "presets",
    "read_config_file",
    "run_pipeline",
]
