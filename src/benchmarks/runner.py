"""Command-line runner for CA-SFISTA LASSO experiments.

Loads a sparse labelled feature file, optionally a known optimal weight
vector, and runs the solver one or more times.

Usage:
    python -m benchmarks.runner --data data.txt --num-features 100
    python -m benchmarks.runner --data data.txt -b 0.5 -k 5 -t 50 -Q 10 --wopt w.txt
    python -m benchmarks.runner --data data.txt --config solver.json --set lam=0.05 --out out/
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import numpy as np

from benchmarks.plotting import plot_objective
from core.logging import log, timed
from experiments.config import SolverConfig, load_solver_config
from optim.ca_sfista import CASFISTASolver, SolverResult
from tasks.svmlight import load_reference_optimum, load_svmlight

__all__ = ["main", "parse_args", "build_config", "summarize"]

_PREFIX = "Runner"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Flags left unset fall back to the config file, then to SolverConfig
    defaults.
    """
    parser = argparse.ArgumentParser(
        description="Run communication-avoiding stochastic FISTA on a LASSO problem",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Inputs
    parser.add_argument("-f", "--data", type=str, required=True, help="Dataset file")
    parser.add_argument(
        "--num-features", "-nf", type=int, default=None, help="Number of features in the dataset"
    )
    parser.add_argument(
        "--wopt", type=str, default=None, help="Optimal weight vector file, one value per line"
    )

    # Configuration
    parser.add_argument("--config", type=str, default=None, help="JSON solver config file")
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a config value (repeatable)",
    )

    # Solver
    parser.add_argument("-b", type=float, default=None, help="Fraction of rows per sample")
    parser.add_argument("-k", type=int, default=None, help="Samples per communication round")
    parser.add_argument("-t", type=int, default=None, help="Outer iterations * k")
    parser.add_argument("-Q", type=int, default=None, help="FISTA iterations per sample")
    parser.add_argument("--gamma", "-g", type=float, default=None, help="Step size")
    parser.add_argument("--lam", "-l", type=float, default=None, help="L1 penalty weight")
    parser.add_argument("--tolerance", type=float, default=None, help="Early-stop relative error")
    parser.add_argument("--num-partitions", type=int, default=None, help="Data partitions")
    parser.add_argument("--seed", type=int, default=None, help="Sampling seed")
    parser.add_argument(
        "--no-objective",
        action="store_true",
        help="Skip the full objective evaluation after every sample",
    )

    # Run control
    parser.add_argument("--repeats", "-r", type=int, default=1, help="Times to repeat optimization")
    parser.add_argument("--out", type=str, default=None, help="Directory for run artifacts")
    parser.add_argument("--plot", action="store_true", help="Write objective.png (needs --out)")
    parser.add_argument("--progress", action="store_true", help="Show a progress bar")
    parser.add_argument("--quiet", action="store_true", help="Suppress per-iteration output")

    args = parser.parse_args(argv)
    if args.repeats < 1:
        parser.error(f"--repeats must be >= 1, got {args.repeats}")
    return args


def build_config(args: argparse.Namespace) -> SolverConfig:
    """Merge config file, --set overrides and explicit flags."""
    config = load_solver_config(
        Path(args.config) if args.config else None, overrides=args.overrides
    )
    flag_values = {
        "b": args.b,
        "k": args.k,
        "t": args.t,
        "Q": args.Q,
        "gamma": args.gamma,
        "lam": args.lam,
        "tolerance": args.tolerance,
        "num_partitions": args.num_partitions,
        "seed": args.seed,
    }
    changes: dict[str, Any] = {k: v for k, v in flag_values.items() if v is not None}
    if args.no_objective:
        changes["log_objective"] = False
    return config.with_updates(**changes)


def summarize(results: Sequence[SolverResult], config: SolverConfig) -> dict[str, Any]:
    """Build a JSON-serializable summary of all repeats."""
    runs: list[dict[str, Any]] = []
    for i, result in enumerate(results):
        history = result.history
        run: dict[str, Any] = {
            "repeat": i,
            "converged": result.converged,
            "rounds": result.rounds,
            "inner_steps": result.inner_steps,
            "nnz": int(np.count_nonzero(result.dense_weights)),
            "l1_norm": float(np.abs(result.dense_weights).sum()),
        }
        if len(history) and np.isfinite(history.last().loss):
            run["final_objective"] = history.last().loss
        if len(history) and "rel_error" in history.last().metrics:
            run["final_rel_error"] = history.last().metrics["rel_error"]
        runs.append(run)
    return {
        "created_at": datetime.now(UTC).isoformat(),
        "config": config.to_dict(),
        "num_repeats": len(results),
        "runs": runs,
    }


def _write_artifacts(
    out_dir: Path,
    summary: dict[str, Any],
    results: Sequence[SolverResult],
    *,
    plot: bool,
) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    with (out_dir / "summary.json").open("w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, sort_keys=True)
    last = results[-1]
    np.savetxt(out_dir / "weights.txt", last.dense_weights.ravel())
    if plot:
        plot_objective(last.history, out_dir / "objective.png", title="CA-SFISTA objective")


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0 for success).
    """
    args = parse_args(argv)
    config = build_config(args)
    verbose = not args.quiet

    observations, labels = load_svmlight(
        args.data, num_features=args.num_features, num_partitions=config.num_partitions
    )
    log(
        f"loaded {observations.num_rows}x{observations.num_cols} observations "
        f"({observations.nnz()} entries)",
        prefix=_PREFIX,
    )
    w_opt = load_reference_optimum(args.wopt)

    solver = CASFISTASolver(**config.solver_kwargs(), verbose=verbose, progress=args.progress)
    seed_seq = np.random.SeedSequence(config.seed)
    results: list[SolverResult] = []
    with timed("Runner Overall", prefix=_PREFIX):
        for child in seed_seq.spawn(args.repeats):
            results.append(
                solver.run(observations, labels, w_opt=w_opt, seed=np.random.default_rng(child))
            )

    summary = summarize(results, config)
    for run in summary["runs"]:
        log(
            f"repeat {run['repeat']}: converged={run['converged']} rounds={run['rounds']} "
            f"nnz={run['nnz']} l1_norm={run['l1_norm']:.6f}",
            prefix=_PREFIX,
        )

    if args.out:
        _write_artifacts(Path(args.out), summary, results, plot=args.plot)
        log(f"artifacts written to {args.out}", prefix=_PREFIX)

    return 0


if __name__ == "__main__":
    sys.exit(main())
