"""Core type definitions for the solver stack.

This module contains:
- Type aliases for dense arrays and matrix indices
- The MatrixEntry triple stored in distributed matrices
- Data containers for recording solver progress
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np

__all__ = [
    "DenseMatrix",
    "Index",
    "MatrixEntry",
    "StepResult",
    "StepMeta",
    "History",
]

# Process-local dense matrix (Gram matrices, weight vectors)
DenseMatrix = np.ndarray

# Row or column index inside a distributed matrix
Index = int


class MatrixEntry(NamedTuple):
    """One explicit cell of a matrix.

    Entries sharing the same (row, col) inside one matrix are additive
    contributions, not conflicts.

    Attributes:
        row: Row index (0-based).
        col: Column index (0-based).
        value: Cell value.
    """

    row: Index
    col: Index
    value: float


@dataclass(frozen=True, slots=True)
class StepResult:
    """Diagnostics recorded after one middle-loop iteration.

    Attributes:
        loss: The LASSO objective (1/2n)||Xw - y||^2 + lambda*||w||_1,
            or NaN when objective logging is disabled.
        metrics: Additional values (e.g., rel_error, nnz).
    """

    loss: float
    metrics: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class StepMeta:
    """Budget accounting for one middle-loop iteration.

    Attributes:
        num_inner_steps: Proximal-gradient steps taken in this iteration.
        num_comm_rounds: Communication rounds started in this iteration
            (1 on the first middle iteration of a round, else 0).
    """

    num_inner_steps: int = 0
    num_comm_rounds: int = 0


@dataclass
class History:
    """Container for solver diagnostics across middle-loop iterations.

    Example:
        >>> history = History()
        >>> history.append(StepResult(loss=1.0), StepMeta(10, 1))
        >>> history.append(StepResult(loss=0.5), StepMeta(10, 0))
        >>> history.total_comm_rounds()
        1
    """

    steps: list[tuple[StepResult, StepMeta]] = field(default_factory=list)

    def __len__(self) -> int:
        """Return the number of recorded iterations."""
        return len(self.steps)

    def append(self, record: StepResult, meta: StepMeta | None = None) -> None:
        """Append a record, with empty metadata unless given."""
        if meta is None:
            meta = StepMeta()
        self.steps.append((record, meta))

    def last(self) -> StepResult:
        """Return the most recent record.

        Raises:
            IndexError: If history is empty.
        """
        return self.steps[-1][0]

    def losses(self) -> list[float]:
        """Return the objective trace in recording order."""
        return [record.loss for record, _meta in self.steps]

    def metric(self, key: str) -> list[float]:
        """Return the trace of one metric.

        Raises:
            KeyError: If a record lacks the metric.
        """
        return [record.metrics[key] for record, _meta in self.steps]

    def min_loss(self) -> float:
        """Return the smallest finite objective value recorded.

        Raises:
            ValueError: If no finite objective was recorded.
        """
        finite = [loss for loss in self.losses() if np.isfinite(loss)]
        if not finite:
            raise ValueError("Cannot compute min_loss without recorded objective values")
        return min(finite)

    def total_inner_steps(self) -> int:
        """Return the total number of proximal-gradient steps."""
        return sum(meta.num_inner_steps for _record, meta in self.steps)

    def total_comm_rounds(self) -> int:
        """Return the total number of communication rounds."""
        return sum(meta.num_comm_rounds for _record, meta in self.steps)
