"""Iteration loop around :meth:`Network.predict_and_update`."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence

from ..core.types import Array
from ..networks.network import LEARNING_RATE, Network
from .metrics import DEFAULT_CUTOFF, compute_metric, compute_metrics, default_metrics


class Trainer:
    """Repeatedly train a network on one aligned sequence and report metrics."""

    def __init__(
        self,
        network: Network,
        batch_size: int,
        learning_rate: float = LEARNING_RATE,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.network = network
        self.batch_size = int(batch_size)
        self.learning_rate = float(learning_rate)
        self.callbacks = list(callbacks or [])

    def run(
        self,
        inputs: Sequence[Array],
        targets: Sequence[Array],
        iterations: int,
        *,
        metric_names: Sequence[str] | str = (),
        cutoff: float = DEFAULT_CUTOFF,
        eval_every: int = 1,
        checkpoint_path: str | Path | None = None,
    ) -> Mapping[str, float]:
        """Train for ``iterations`` passes and return the last metrics."""

        if len(inputs) != len(targets):
            raise ValueError(f"Got {len(inputs)} inputs but {len(targets)} targets")
        if iterations < 0:
            raise ValueError(f"iterations must be non-negative, got {iterations}")
        if isinstance(metric_names, str):
            if metric_names == "default" or metric_names.strip() == "":
                metric_names = default_metrics()
            else:
                metric_names = [m.strip() for m in metric_names.split(",") if m.strip()]
        if not metric_names:
            metric_names = default_metrics()

        best_loss = float("inf")
        metrics = self._evaluate(inputs, targets, metric_names, cutoff)
        self._emit(0, metrics)
        for iteration in range(1, iterations + 1):
            self.network.predict_and_update(
                inputs, targets, self.batch_size, learning_rate=self.learning_rate
            )
            if iteration % max(1, eval_every) != 0 and iteration != iterations:
                continue
            metrics = self._evaluate(inputs, targets, metric_names, cutoff)
            self._emit(iteration, metrics)
            if checkpoint_path is not None and metrics["loss"] < best_loss - 1e-12:
                best_loss = metrics["loss"]
                self.network.save(checkpoint_path)
        return metrics

    # ------------------------------------------------------------------
    # Internal helpers

    def _evaluate(
        self,
        inputs: Sequence[Array],
        targets: Sequence[Array],
        metric_names: Sequence[str],
        cutoff: float,
    ) -> Mapping[str, float]:
        predictions = self.network.predict(inputs)
        metrics = {
            "loss": compute_metric("mse", predictions, targets).value,
            "update_norm": self.network.last_update_norm,
        }
        metrics.update(compute_metrics(metric_names, predictions, targets, cutoff=cutoff))
        return metrics

    def _emit(self, iteration: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(iteration, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(iteration, metrics)


__all__ = ["Trainer"]
