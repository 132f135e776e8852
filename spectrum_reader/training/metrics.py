"""Metrics over predicted and target note-activation sequences."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping

import numpy as np

from ..core.types import Array

DEFAULT_CUTOFF = 0.5


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def default_metrics() -> List[str]:
    return ["mse", "mae", "note_accuracy", "f1"]


def _stack(sequence) -> Array:
    return np.asarray([np.asarray(v, dtype=np.float64).reshape(-1) for v in sequence])


def compute_metric(
    name: str,
    predictions: Array,
    targets: Array,
    *,
    cutoff: float = DEFAULT_CUTOFF,
) -> MetricResult:
    key = name.lower()
    preds = _stack(predictions)
    targs = _stack(targets)
    if preds.shape != targs.shape:
        raise ValueError(f"Prediction shape {preds.shape} does not match targets {targs.shape}")
    if key == "mse":
        value = float(np.mean((preds - targs) ** 2))
    elif key == "mae":
        value = float(np.mean(np.abs(preds - targs)))
    elif key == "rmse":
        value = float(np.sqrt(np.mean((preds - targs) ** 2)))
    elif key == "note_accuracy":
        active = preds >= cutoff
        value = float(np.mean(active == (targs >= cutoff)))
    elif key in {"precision", "recall", "f1"}:
        pred_on = preds >= cutoff
        targ_on = targs >= cutoff
        tp = float(np.sum(pred_on & targ_on))
        fp = float(np.sum(pred_on & ~targ_on))
        fn = float(np.sum(~pred_on & targ_on))
        precision = tp / (tp + fp + 1e-9)
        recall = tp / (tp + fn + 1e-9)
        if key == "precision":
            value = float(precision)
        elif key == "recall":
            value = float(recall)
        else:
            value = float(2 * precision * recall / (precision + recall + 1e-9))
    else:
        raise KeyError(f"Unknown metric: {name}")
    return MetricResult(name=key, value=value)


def compute_metrics(
    names: Iterable[str],
    predictions: Array,
    targets: Array,
    *,
    cutoff: float = DEFAULT_CUTOFF,
) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        metric = compute_metric(name, predictions, targets, cutoff=cutoff)
        results[metric.name] = metric.value
    return results


__all__ = ["DEFAULT_CUTOFF", "MetricResult", "default_metrics", "compute_metric", "compute_metrics"]
