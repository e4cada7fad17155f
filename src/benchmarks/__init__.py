"""Benchmarks module for experiment runs.

This package provides utilities for running and inspecting CA-SFISTA
experiments:

- runner: CLI for running the solver on a dataset file
- plotting: Objective trace figures
"""

from __future__ import annotations

from benchmarks.plotting import plot_objective
from benchmarks.runner import main as run_experiment

__all__ = [
    # Runner
    "run_experiment",
    # Plotting
    "plot_objective",
]
