"""Run manifests: where a trained network came from and what was saved."""

from __future__ import annotations

import hashlib
import json
import subprocess
import time
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Mapping

import numpy as np

if TYPE_CHECKING:
    from ..networks.network import Network


def git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode().strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


def describe_network(network: "Network", *, origin: str) -> Dict[str, object]:
    """Topology, activations and per-group parameter shapes of ``network``."""

    return {
        "type": type(network).__name__,
        "origin": origin,
        "recurrent": network.recurrent,
        "layers": network.layers,
        "input_size": network.input_size,
        "output_size": network.output_size,
        "units_by_layer": list(network.units_by_layer),
        "hidden_activation": network.hidden_activation.key,
        "output_activation": network.output_activation.key,
        "parameters": network.parameter_count(),
        "shapes": {
            "hidden": [list(w.shape) for w in network.hidden_weights],
            "recurrence": [list(w.shape) for w in network.recurrence_weights],
            "biases": [list(b.shape) for b in network.biases],
        },
    }


def describe_save(path: str | Path) -> Dict[str, object]:
    """Checksum and record count of a text save file."""

    path = Path(path)
    if not path.is_file():
        return {"path": str(path), "exists": False}
    data = path.read_bytes()
    return {
        "path": str(path),
        "exists": True,
        "sha256": hashlib.sha256(data).hexdigest(),
        "bytes": len(data),
        "records": len(data.decode("utf-8").splitlines()),
    }


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    network: Mapping[str, object],
    save_path: str | Path | None = None,
) -> str:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "git_sha": git_sha(),
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "numpy": np.__version__,
        "config": config,
        "network": dict(network),
    }
    if save_path is not None:
        manifest["save"] = describe_save(save_path)
    path.write_text(json.dumps(manifest, indent=2))
    return str(path)
