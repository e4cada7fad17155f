"""Plotting helpers for solver runs."""

from __future__ import annotations

from pathlib import Path

import numpy as np

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from core.types import History  # noqa: E402

__all__ = ["plot_objective"]


def plot_objective(
    history: History,
    out_path: Path,
    *,
    title: str | None = None,
    logy: bool = True,
) -> bool:
    """Plot the objective trace against cumulative inner steps.

    Args:
        history: Per middle-loop diagnostics of one run.
        out_path: Output PNG path.
        title: Optional plot title.
        logy: Use a log scale on the objective axis.

    Returns:
        True if a figure was written, False if there was nothing to plot.
    """
    losses = np.asarray(history.losses(), dtype=np.float64)
    steps = np.cumsum([meta.num_inner_steps for _record, meta in history.steps])
    mask = np.isfinite(losses)
    if logy:
        mask &= losses > 0
    if not np.any(mask):
        return False

    out_path.parent.mkdir(parents=True, exist_ok=True)
    plt.figure(figsize=(8, 4.5))
    plt.plot(steps[mask], losses[mask], marker="o", markersize=3, label="objective")

    # Mark communication rounds
    round_steps = [
        int(step) - meta.num_inner_steps
        for step, (_record, meta) in zip(steps, history.steps)
        if meta.num_comm_rounds > 0
    ]
    for x in round_steps:
        plt.axvline(x, color="0.85", linewidth=0.8, zorder=0)

    if logy:
        plt.yscale("log")
    plt.xlabel("inner steps")
    plt.ylabel("objective")
    if title:
        plt.title(title)
    plt.legend()
    plt.tight_layout()
    plt.savefig(out_path, dpi=120)
    plt.close()
    return True
