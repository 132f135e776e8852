"""Input/target sequence sources for training runs."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Mapping

import numpy as np

from ..core.types import Array, SequencePair


def _as_matrix(values, name: str) -> Array:
    arr = np.asarray(values, dtype=np.float32)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise ValueError(f"{name} must be a 2-D (timesteps, features) array, got {arr.shape}")
    return arr


def read_array(path: str | Path, key: str | None = None) -> Array:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".npy":
        return np.load(path)
    if suffix == ".npz":
        with np.load(path) as archive:
            if key is None:
                if len(archive.files) != 1:
                    raise KeyError(f"{path.name} holds {archive.files}; specify a key")
                key = archive.files[0]
            return archive[key]
    if suffix in {".csv", ".txt"}:
        return np.loadtxt(path, delimiter=",", dtype=np.float32, ndmin=2)
    raise ValueError(f"Unsupported sequence file type: {path.suffix}")


def _inline(options: Mapping[str, object]) -> SequencePair:
    return SequencePair(inputs=options["inputs"], targets=options["targets"])  # type: ignore[arg-type]


def _files(options: Mapping[str, object]) -> SequencePair:
    inputs = read_array(options["inputs"], options.get("inputs_key"))  # type: ignore[arg-type]
    targets = read_array(options["targets"], options.get("targets_key"))  # type: ignore[arg-type]
    return SequencePair(inputs=inputs, targets=targets)


_SOURCES: Dict[str, Callable[[Mapping[str, object]], SequencePair]] = {
    "inline": _inline,
    "files": _files,
}


def available() -> list[str]:
    return sorted(_SOURCES)


def load_sequences(data_cfg: Mapping[str, object]) -> SequencePair:
    """Load aligned ``(timesteps, features)`` input and target matrices."""

    name = str(data_cfg.get("name", "inline"))
    try:
        source = _SOURCES[name]
    except KeyError as exc:
        raise KeyError(f"Unknown sequence source: {name}") from exc
    raw = source(data_cfg.get("options", {}))  # type: ignore[arg-type]
    inputs = _as_matrix(raw.inputs, "inputs")
    targets = _as_matrix(raw.targets, "targets")
    if inputs.shape[0] != targets.shape[0]:
        raise ValueError(
            f"Sequence length mismatch: {inputs.shape[0]} inputs vs {targets.shape[0]} targets"
        )
    return SequencePair(inputs=inputs, targets=targets)


__all__ = ["available", "load_sequences", "read_array"]
