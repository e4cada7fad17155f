"""LASSO problem helpers.

The objective solved by the CA-SFISTA optimizer is

    F(w) = (1/2n) * ||X w - y||^2 + lam * ||w||_1

where X is an n x d distributed observation matrix and y an n x 1 label
matrix. Everything here touches X only through distributed operations; the
only local arrays are sized by d.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from core.errors import DimensionMismatch
from core.types import DenseMatrix, MatrixEntry
from distributed.matrix import DistributedMatrix

__all__ = [
    "LassoProblem",
    "lasso_objective",
    "relative_error",
    "least_squares_solution",
    "make_sparse_regression",
]


def lasso_objective(
    observations: DistributedMatrix,
    labels: DistributedMatrix,
    w: DenseMatrix,
    lam: float,
) -> float:
    """Evaluate (1/2n)||Xw - y||^2 + lam * ||w||_1 on the cluster.

    Args:
        observations: n x d matrix X.
        labels: n x 1 matrix y.
        w: d x 1 (or length-d) weight array.
        lam: L1 penalty weight.

    Returns:
        The objective value.

    Raises:
        DimensionMismatch: If the operand shapes are incompatible.
    """
    n = observations.num_rows
    w_dist = DistributedMatrix.from_dense(w, num_partitions=observations.num_partitions)
    residual = observations.multiply(w_dist).add(labels, subtract=True)
    return residual.squared_norm() / (2.0 * n) + lam * float(np.abs(w).sum())


def relative_error(w: DenseMatrix, w_opt: DenseMatrix) -> float:
    """Return ||w - w_opt|| / ||w_opt||.

    When w_opt is the zero vector the absolute error ||w|| is returned.

    Raises:
        DimensionMismatch: If the two arrays differ in shape.
    """
    if w.shape != w_opt.shape:
        raise DimensionMismatch(
            f"Reference optimum has shape {w_opt.shape}, weights have shape {w.shape}"
        )
    ref_norm = float(np.linalg.norm(w_opt))
    err = float(np.linalg.norm(w - w_opt))
    if ref_norm == 0.0:
        return err
    return err / ref_norm


def least_squares_solution(
    observations: DistributedMatrix, labels: DistributedMatrix
) -> DenseMatrix:
    """Unregularized least-squares weights from the normal equations.

    X^T X and X^T y are formed on the cluster (d x d and d x 1), then solved
    locally with lstsq so rank-deficient designs return the minimum-norm
    solution.

    Returns:
        d x 1 weight array.
    """
    d = observations.num_cols
    xt = observations.transpose()
    gram = xt.multiply(observations).to_dense(d, d)
    corr = xt.multiply(labels).to_dense(d, 1)
    solution, *_ = np.linalg.lstsq(gram, corr, rcond=None)
    return solution


@dataclass(frozen=True)
class LassoProblem:
    """A LASSO instance over distributed data.

    Attributes:
        observations: n x d matrix X.
        labels: n x 1 matrix y.
        lam: L1 penalty weight.
    """

    observations: DistributedMatrix
    labels: DistributedMatrix
    lam: float

    def __post_init__(self) -> None:
        n = self.observations.num_rows
        if self.labels.shape != (n, 1):
            raise DimensionMismatch(
                f"Labels must be {n}x1, got {self.labels.num_rows}x{self.labels.num_cols}"
            )
        if self.lam < 0:
            raise ValueError(f"lam must be >= 0, got {self.lam}")

    @property
    def num_samples(self) -> int:
        return self.observations.num_rows

    @property
    def dim(self) -> int:
        return self.observations.num_cols

    def objective(self, w: DenseMatrix) -> float:
        return lasso_objective(self.observations, self.labels, w, self.lam)


def make_sparse_regression(
    *,
    n: int,
    d: int,
    nnz: int,
    rng: np.random.Generator,
    density: float = 1.0,
    noise: float = 0.0,
    num_partitions: int = 4,
) -> tuple[DistributedMatrix, DistributedMatrix, DenseMatrix]:
    """Generate a sparse linear model y = X w + noise.

    Args:
        n: Number of observations.
        d: Number of features.
        nnz: Number of non-zero coefficients in the true weights.
        rng: Random number generator for reproducibility.
        density: Probability that a cell of X is stored (0 < density <= 1).
        noise: Standard deviation of Gaussian label noise.
        num_partitions: Partitions for the generated matrices.

    Returns:
        (observations n x d, labels n x 1, true weights d x 1).

    Raises:
        ValueError: If the sizes or density are out of range.
    """
    if n < 1 or d < 1:
        raise ValueError(f"n and d must be >= 1, got n={n}, d={d}")
    if not 0 <= nnz <= d:
        raise ValueError(f"nnz must be in [0, {d}], got {nnz}")
    if not 0.0 < density <= 1.0:
        raise ValueError(f"density must be in (0, 1], got {density}")

    x = rng.standard_normal((n, d))
    x[rng.random((n, d)) >= density] = 0.0

    w_true = np.zeros((d, 1), dtype=np.float64)
    support = rng.choice(d, size=nnz, replace=False)
    w_true[support, 0] = rng.uniform(1.0, 3.0, size=nnz) * rng.choice([-1.0, 1.0], size=nnz)

    y = x @ w_true + noise * rng.standard_normal((n, 1))

    rows, cols = np.nonzero(x)
    entries = [MatrixEntry(int(i), int(j), float(x[i, j])) for i, j in zip(rows, cols)]
    observations = DistributedMatrix.from_entries(entries, n, d, num_partitions=num_partitions)
    labels = DistributedMatrix.from_dense(y, num_partitions=num_partitions)
    return observations, labels, w_true
