"""Command line entry point for spectrum-reader training and prediction."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Iterable

import numpy as np

from spectrum_reader.data import read_array
from spectrum_reader.networks import Network
from spectrum_reader.training import pipelines
from spectrum_reader.training.metrics import DEFAULT_CUTOFF


def _format_result(result, run_id: str | None = None) -> str:
    payload = {
        "steps": result.steps,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    if getattr(result, "summary_path", ""):
        payload["summary"] = result.summary_path
    if getattr(result, "save_path", None):
        payload["save"] = result.save_path
    if run_id is not None:
        payload["run_id"] = run_id
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="chord-toy",
        help="Preset configuration to execute",
    )
    parser.add_argument(
        "--config", type=Path, help="Optional JSON/YAML config override"
    )
    parser.add_argument(
        "--enable-plots", action="store_true", help="Enable plotting adapters"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for the network's weight initialisation",
    )
    parser.add_argument("--iterations", type=int, help="Override train.iterations")
    parser.add_argument(
        "--load",
        type=Path,
        help="Network save file to resume from (or to predict with)",
    )
    parser.add_argument("--save", type=Path, help="Where to write the trained network")
    parser.add_argument(
        "--predict",
        type=Path,
        help="Run a saved network (--load) over an input matrix file and exit",
    )
    parser.add_argument(
        "--cutoff",
        type=float,
        default=DEFAULT_CUTOFF,
        help="Activation threshold for note decisions",
    )
    parser.add_argument(
        "--output", type=Path, help="CSV or .npy file for --predict outputs"
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for library messages",
    )
    return parser.parse_args(argv)


def _load_override(path: Path) -> dict:
    text = path.read_text()
    if path.suffix in {".yml", ".yaml"}:
        import yaml

        return yaml.safe_load(text) or {}
    return json.loads(text)


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def _predict(args: argparse.Namespace) -> None:
    if args.load is None:
        raise SystemExit("--predict requires --load")
    network = Network.load(args.load)
    inputs = np.asarray(read_array(args.predict), dtype=np.float32)
    if inputs.ndim == 1:
        inputs = inputs.reshape(1, -1)
    outputs = np.asarray(network.predict(inputs), dtype=np.float32).reshape(len(inputs), -1)
    active = outputs >= args.cutoff

    payload = {
        "steps": int(outputs.shape[0]),
        "outputs": int(outputs.shape[1]) if outputs.size else network.output_size,
        "active": int(active.sum()),
    }
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        if args.output.suffix.lower() == ".npy":
            np.save(args.output, outputs)
        else:
            np.savetxt(args.output, outputs, delimiter=",", fmt="%.6g")
        payload["output"] = str(args.output)
    else:
        for row in active.astype(int):
            print(",".join(str(v) for v in row))
    print(json.dumps(payload, sort_keys=True))


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    if args.predict:
        _predict(args)
        return

    config_source = "preset"
    config = pipelines.load_preset(args.preset)
    config = json.loads(json.dumps(config))

    if args.config:
        override = _load_override(args.config)
        if {"data", "model", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
            config_source = "config"
        else:
            config = _merge(config, override)

    if args.enable_plots:
        config.setdefault("train", {})["enable_plots"] = True
    if args.seed is not None:
        config.setdefault("train", {})["seed"] = int(args.seed)
    if args.iterations is not None:
        config.setdefault("train", {})["iterations"] = int(args.iterations)
    if args.cutoff != DEFAULT_CUTOFF:
        config.setdefault("train", {})["cutoff"] = float(args.cutoff)
    if args.load is not None:
        config.setdefault("model", {})["load_path"] = str(args.load)
    if args.save is not None:
        config.setdefault("train", {})["save_path"] = str(args.save)

    run_id: str | None = None
    if config_source == "config" and "run_dir" not in config.get("train", {}):
        run_id = pipelines.config_hash(config)
        config.setdefault("train", {})["run_dir"] = str(Path(".artifacts") / run_id)

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    result = pipelines.run_pipeline(config)
    print(_format_result(result, run_id=run_id))


if __name__ == "__main__":
    main()
