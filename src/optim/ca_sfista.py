"""Communication-avoiding stochastic FISTA (CA-SFISTA) for LASSO.

Solves

    minimize_w  (1/2n) * ||X w - y||^2 + lam * ||w||_1

with three nested loops:

- outer: one communication round per iteration, ceil(t / k) rounds. Each
  round draws k independent row samples of size m = floor(b * n) and brings
  back k local (Gram, correlation) pairs (d x d and d x 1)
- middle: j = 1..k, one sample per iteration, defining the local gradient
  model grad(x) = (G_j / m) x - R_j / m
- inner: q = 1..Q accelerated proximal-gradient (FISTA) steps on that model

Only the outer loop touches the distributed data; the k * Q local steps that
follow a round need no further communication.

Reference: "Avoiding Communication in Proximal Methods for Convex
Optimization Problems", arXiv:1710.08883.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass, field

import numpy as np
from tqdm.auto import tqdm

from core.logging import log, timed
from core.rng import make_rng
from core.types import DenseMatrix, History, StepMeta, StepResult
from distributed.matrix import DistributedMatrix
from distributed.sampling import random_matrix_samples
from optim.prox import soft_threshold
from tasks.lasso import lasso_objective, relative_error

__all__ = [
    "DEFAULT_TOLERANCE",
    "next_momentum",
    "SolverState",
    "Continue",
    "Converged",
    "LoopControl",
    "SolverResult",
    "CASFISTASolver",
    "solve",
]

# Relative error to the reference optimum below which the run stops.
DEFAULT_TOLERANCE = 0.1


def next_momentum(t_prev: float) -> float:
    """FISTA momentum recurrence t_k = (1 + sqrt(1 + 4 t_{k-1}^2)) / 2."""
    return (1.0 + math.sqrt(1.0 + 4.0 * t_prev * t_prev)) / 2.0


@dataclass
class SolverState:
    """Mutable iterate state for one solver run.

    Attributes:
        w: Accepted weights after the last middle-loop iteration (d x 1).
        w_prev: Accepted weights one middle-loop iteration earlier.
        z: Current inner iterate z_q.
        z_prev: Previous inner iterate z_{q-1}.
        t_k: Current momentum coefficient.
        t_prev: Previous momentum coefficient.
        step: Global inner step index (0 before the first step).
    """

    w: DenseMatrix
    w_prev: DenseMatrix
    z: DenseMatrix
    z_prev: DenseMatrix
    t_k: float = 1.0
    t_prev: float = 1.0
    step: int = 0

    @classmethod
    def zeros(cls, dim: int) -> SolverState:
        def _z() -> DenseMatrix:
            return np.zeros((dim, 1), dtype=np.float64)

        return cls(w=_z(), w_prev=_z(), z=_z(), z_prev=_z())


@dataclass(frozen=True)
class Continue:
    """Keep iterating."""


@dataclass(frozen=True)
class Converged:
    """Stop the run: the weights are within tolerance of the reference.

    Attributes:
        weights: Accepted weights (d x 1).
        rel_error: Relative error that triggered the stop.
    """

    weights: DenseMatrix
    rel_error: float


LoopControl = Continue | Converged


@dataclass(frozen=True)
class SolverResult:
    """Outcome of a solver run.

    Attributes:
        weights: Final weights as a distributed d x 1 matrix.
        dense_weights: The same weights as a local (d, 1) array.
        converged: True if the reference-optimum check stopped the run.
        rounds: Communication rounds executed.
        inner_steps: Proximal-gradient steps executed.
        history: Per middle-loop diagnostics.
    """

    weights: DistributedMatrix
    dense_weights: DenseMatrix
    converged: bool
    rounds: int
    inner_steps: int
    history: History = field(default_factory=History)


class CASFISTASolver:
    """Communication-avoiding accelerated proximal-gradient LASSO solver.

    Attributes:
        b: Row sampling fraction per sample, in (0, 1].
        k: Samples per communication round (middle-loop length).
        t: Total middle-loop budget; ceil(t / k) rounds are run.
        Q: FISTA steps per sample.
        gamma: Step size.
        lam: L1 penalty weight.
        tolerance: Relative error to the reference optimum that stops the run.
        num_partitions: Partition count for the returned weights.
        log_objective: Evaluate and log the full objective after every
            middle-loop iteration (one extra distributed pass over X).
        verbose: Print progress and timing lines.
        progress: Show a tqdm bar over communication rounds.

    Example:
        >>> solver = CASFISTASolver(b=0.5, k=5, t=50, Q=10, gamma=0.01, lam=0.1)
        >>> result = solver.run(observations, labels, seed=0)
        >>> w = result.dense_weights
    """

    def __init__(
        self,
        *,
        b: float = 0.2,
        k: int = 10,
        t: int = 100,
        Q: int = 10,
        gamma: float = 0.01,
        lam: float = 0.1,
        tolerance: float = DEFAULT_TOLERANCE,
        num_partitions: int = 4,
        log_objective: bool = True,
        verbose: bool = True,
        progress: bool = False,
    ) -> None:
        """Initialize the solver.

        Raises:
            ValueError: If any hyper-parameter is out of range.
        """
        if not 0.0 < b <= 1.0:
            raise ValueError(f"b must be in (0, 1], got {b}")
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        if t < 1:
            raise ValueError(f"t must be >= 1, got {t}")
        if Q < 1:
            raise ValueError(f"Q must be >= 1, got {Q}")
        if gamma <= 0:
            raise ValueError(f"gamma must be positive, got {gamma}")
        if lam < 0:
            raise ValueError(f"lam must be >= 0, got {lam}")
        if tolerance <= 0:
            raise ValueError(f"tolerance must be positive, got {tolerance}")
        if num_partitions < 1:
            raise ValueError(f"num_partitions must be >= 1, got {num_partitions}")
        self.b = b
        self.k = k
        self.t = t
        self.Q = Q
        self.gamma = gamma
        self.lam = lam
        self.tolerance = tolerance
        self.num_partitions = num_partitions
        self.log_objective = log_objective
        self.verbose = verbose
        self.progress = progress

    @property
    def num_rounds(self) -> int:
        return math.ceil(self.t / self.k)

    def _log(self, msg: str) -> None:
        if self.verbose:
            log(msg, use_tqdm=self.progress)

    def _timed(self, section: str) -> AbstractContextManager[None]:
        if self.verbose:
            return timed(section, use_tqdm=self.progress)
        return nullcontext()

    def _fista_steps(self, state: SolverState, hessian: DenseMatrix, corr: DenseMatrix) -> None:
        """Run Q accelerated proximal-gradient steps on grad(x) = H x - r."""
        shrink = self.gamma * self.lam
        for _ in range(self.Q):
            state.t_k = next_momentum(state.t_prev)
            if state.step == 0:
                v = state.z
            else:
                v = state.z + ((state.t_prev - 1.0) / state.t_k) * (state.z - state.z_prev)
            sarg = v - self.gamma * (hessian @ v - corr)
            state.z_prev = state.z
            state.z = soft_threshold(sarg, shrink)
            state.t_prev = state.t_k
            state.step += 1

    def _check_reference(self, state: SolverState, w_opt: DenseMatrix | None) -> LoopControl:
        if w_opt is None:
            return Continue()
        err = relative_error(state.w, w_opt)
        if err < self.tolerance:
            return Converged(weights=state.w, rel_error=err)
        return Continue()

    def run(
        self,
        observations: DistributedMatrix,
        labels: DistributedMatrix,
        *,
        w_opt: DenseMatrix | None = None,
        seed: int | np.random.Generator | None = None,
    ) -> SolverResult:
        """Minimize the LASSO objective over the given data.

        Args:
            observations: n x d matrix X (read only).
            labels: n x 1 matrix y (read only).
            w_opt: Optional known optimum (d x 1) enabling early stopping.
            seed: Seed or Generator for row sampling.

        Returns:
            SolverResult with the final weights and diagnostics.

        Raises:
            DimensionMismatch: If labels or w_opt have the wrong shape.
            InvalidSampleSize: If floor(b * n) < 1.
        """
        rng = make_rng(seed)
        n, d = observations.shape
        m = float(math.floor(self.b * n))
        state = SolverState.zeros(d)
        history = History()
        rounds_done = 0
        outcome: LoopControl = Continue()

        rounds: Iterable[int] = range(self.num_rounds)
        if self.progress:
            rounds = tqdm(rounds, desc="rounds", leave=False)

        for round_idx in rounds:
            with self._timed("Loop 1"):
                grams, corrs = random_matrix_samples(observations, labels, self.k, self.b, rng)
            rounds_done += 1

            with self._timed("Loop 2"):
                for j in range(self.k):
                    hessian = grams[j] / m
                    corr = corrs[j] / m
                    state.z = state.w
                    self._fista_steps(state, hessian, corr)
                    state.w_prev = state.w
                    state.w = state.z

                    outcome = self._check_reference(state, w_opt)
                    self._record(history, observations, labels, state, w_opt, first=j == 0)
                    if isinstance(outcome, Converged):
                        break
            if isinstance(outcome, Converged):
                self._log(
                    f"converged in round {round_idx + 1}: rel_error={outcome.rel_error:.6f}"
                )
                break

        weights = DistributedMatrix.from_dense(state.w, num_partitions=self.num_partitions)
        return SolverResult(
            weights=weights,
            dense_weights=state.w.copy(),
            converged=isinstance(outcome, Converged),
            rounds=rounds_done,
            inner_steps=state.step,
            history=history,
        )

    def _record(
        self,
        history: History,
        observations: DistributedMatrix,
        labels: DistributedMatrix,
        state: SolverState,
        w_opt: DenseMatrix | None,
        *,
        first: bool,
    ) -> None:
        metrics: dict[str, float] = {"nnz": float(np.count_nonzero(state.w))}
        if w_opt is not None:
            metrics["rel_error"] = relative_error(state.w, w_opt)
        loss = float("nan")
        if self.log_objective:
            loss = lasso_objective(observations, labels, state.w, self.lam)
            self._log(f"objective: {loss:.6f}")
        history.append(
            StepResult(loss=loss, metrics=metrics),
            StepMeta(num_inner_steps=self.Q, num_comm_rounds=1 if first else 0),
        )


def solve(
    observations: DistributedMatrix,
    labels: DistributedMatrix,
    *,
    b: float = 0.2,
    k: int = 10,
    t: int = 100,
    Q: int = 10,
    gamma: float = 0.01,
    lam: float = 0.1,
    w_opt: DenseMatrix | None = None,
    seed: int | np.random.Generator | None = None,
    tolerance: float = DEFAULT_TOLERANCE,
    verbose: bool = True,
) -> DistributedMatrix:
    """Run CA-SFISTA and return the final weights as a d x 1 matrix."""
    solver = CASFISTASolver(
        b=b, k=k, t=t, Q=Q, gamma=gamma, lam=lam, tolerance=tolerance, verbose=verbose
    )
    return solver.run(observations, labels, w_opt=w_opt, seed=seed).weights
