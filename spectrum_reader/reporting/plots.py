"""Training curves for a run: loss and update size, plus note-level scores."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping

NOTE_SCORES = ("note_accuracy", "f1")


class PlotAdapter:
    """Trainer callback that records evaluations and renders ``curves.png``.

    The upper panel shows the training MSE on a log scale with the norm of the
    last applied update on a twin axis. The lower panel shows whichever note
    scores were evaluated; it is omitted when none were.
    """

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self.iterations: List[int] = []
        self.series: Dict[str, List[float]] = {}

    def on_epoch(self, iteration: int, metrics: Mapping[str, float]) -> None:
        if not self.enable_plots:
            return
        self.iterations.append(int(iteration))
        for name in ("loss", "update_norm", *NOTE_SCORES):
            if name in metrics:
                self.series.setdefault(name, []).append(float(metrics[name]))

    def best_iteration(self) -> int | None:
        losses = self.series.get("loss")
        if not losses:
            return None
        return self.iterations[losses.index(min(losses))]

    def close(self) -> Path | None:
        if not self.enable_plots or "loss" not in self.series:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt

        scores = [name for name in NOTE_SCORES if name in self.series]
        rows = 2 if scores else 1
        fig, axes = plt.subplots(rows, 1, sharex=True, squeeze=False, figsize=(6, 3 * rows))
        loss_ax = axes[0][0]
        loss_ax.plot(self.iterations, self.series["loss"], label="mse")
        loss_ax.set_yscale("log")
        loss_ax.set_ylabel("Mean squared error")
        loss_ax.axvline(self.best_iteration(), color="grey", linestyle=":")
        norms = self.series.get("update_norm")
        if norms:
            norm_ax = loss_ax.twinx()
            norm_ax.plot(self.iterations, norms, color="tab:orange", alpha=0.6)
            norm_ax.set_ylabel("Update norm")
        if scores:
            score_ax = axes[1][0]
            for name in scores:
                score_ax.plot(self.iterations, self.series[name], label=name)
            score_ax.set_ylim(0.0, 1.05)
            score_ax.set_ylabel("Score")
            score_ax.legend(loc="lower right")
        axes[-1][0].set_xlabel("Iteration")

        self.run_dir.mkdir(parents=True, exist_ok=True)
        plot_path = self.run_dir / "curves.png"
        fig.tight_layout()
        fig.savefig(plot_path)
        plt.close(fig)
        return plot_path
