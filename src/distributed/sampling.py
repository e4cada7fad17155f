"""Random row sampling of distributed matrices.

Sampling decisions are made on the coordinating process: indices are drawn
locally, then every partition filters its own entries against the sorted
sample and re-indexes surviving rows to their rank in it.
"""

from __future__ import annotations

import math
from functools import reduce

import numpy as np

from core.errors import DimensionMismatch, InvalidSampleSize
from core.types import DenseMatrix
from distributed.matrix import DistributedMatrix

__all__ = [
    "unique_sample",
    "bin_search",
    "select_rows",
    "sample_rows",
    "random_matrix_samples",
]


def unique_sample(low: int, high: int, count: int, rng: np.random.Generator) -> np.ndarray:
    """Draw count distinct integers from [low, high] without replacement.

    Uses a partial Fisher-Yates shuffle: only the first count positions of
    the index range are shuffled, so every count-subset is equally likely.

    Args:
        low: Smallest value in the range.
        high: Largest value in the range (inclusive).
        count: Number of values to draw.
        rng: Random number generator.

    Returns:
        1D int64 array of count distinct values, in draw order.

    Raises:
        InvalidSampleSize: If count < 1 or count exceeds the range size.
    """
    size = high - low + 1
    if count < 1 or count > size:
        raise InvalidSampleSize(
            f"Cannot draw {count} unique values from the range [{low}, {high}]"
        )
    values = np.arange(low, high + 1, dtype=np.int64)
    for i in range(count):
        j = int(rng.integers(i, size))
        values[i], values[j] = values[j], values[i]
    return values[:count].copy()


def bin_search(sorted_values: np.ndarray, value: int) -> int:
    """Return the position of value in an ascending array, or -1."""
    lo, hi = 0, len(sorted_values) - 1
    while lo <= hi:
        mid = (lo + hi) >> 1
        current = sorted_values[mid]
        if current == value:
            return mid
        if value < current:
            hi = mid - 1
        else:
            lo = mid + 1
    return -1


def select_rows(matrix: DistributedMatrix, rows: np.ndarray) -> DistributedMatrix:
    """Keep the given rows and renumber them 0..len(rows)-1 in ascending order.

    Args:
        matrix: Source matrix.
        rows: Distinct row indices to keep (any order).

    Returns:
        A (len(rows) x matrix.num_cols) matrix.
    """
    picked = np.sort(np.asarray(rows, dtype=np.int64))
    chosen = frozenset(int(r) for r in picked)
    kept = matrix.entries.filter(lambda e: e.row in chosen).map(
        lambda e: e._replace(row=bin_search(picked, e.row))
    )
    return DistributedMatrix(kept, len(picked), matrix.num_cols)


def sample_rows(
    matrix: DistributedMatrix, percent: float, rng: np.random.Generator
) -> DistributedMatrix:
    """Take floor(percent * num_rows) random rows as a dense-indexed matrix.

    Args:
        matrix: Source matrix.
        percent: Fraction of rows to keep.
        rng: Random number generator.

    Returns:
        A (pick x matrix.num_cols) matrix whose rows are the sampled rows in
        ascending order of their original index.

    Raises:
        InvalidSampleSize: If the fraction selects no row.
    """
    pick = math.floor(percent * matrix.num_rows)
    if pick < 1:
        raise InvalidSampleSize(
            f"Sample {percent} is too low for matrix with {matrix.num_rows} rows"
        )
    rows = unique_sample(0, matrix.num_rows - 1, pick, rng)
    return select_rows(matrix, rows)


def random_matrix_samples(
    observations: DistributedMatrix,
    labels: DistributedMatrix,
    k: int,
    b: float,
    rng: np.random.Generator,
) -> tuple[list[DenseMatrix], list[DenseMatrix]]:
    """Build k sampled (Gram, correlation) pairs in one communication round.

    For each of the k samples the same m = floor(b * n) rows are taken from
    the observations and the labels. The sampled blocks are shifted into a
    block-diagonal layout so that all k products Xs^T Xs come out of one
    distributed multiply and all k products Xs^T ys out of another.

    Args:
        observations: n x d observation matrix.
        labels: n x 1 label matrix.
        k: Number of independent samples.
        b: Row sampling fraction.
        rng: Random number generator.

    Returns:
        (grams, correlations): k unscaled d x d arrays and k d x 1 arrays.

    Raises:
        DimensionMismatch: If labels is not n x 1.
        InvalidSampleSize: If floor(b * n) < 1.
    """
    n, d = observations.shape
    if labels.shape != (n, 1):
        raise DimensionMismatch(
            f"Labels must be {n}x1 for {n}x{d} observations, got "
            f"{labels.num_rows}x{labels.num_cols}"
        )
    m = math.floor(b * n)
    if m < 1:
        raise InvalidSampleSize(f"Sample {b} is too low for matrix with {n} rows")

    x_parts: list[DistributedMatrix] = []
    xt_parts: list[DistributedMatrix] = []
    y_parts: list[DistributedMatrix] = []
    for s in range(k):
        rows = unique_sample(0, n - 1, m, rng)
        xs = select_rows(observations, rows)
        ys = select_rows(labels, rows)
        x_parts.append(xs.shift(s * m, s * d, num_rows=k * m, num_cols=k * d))
        xt_parts.append(xs.transpose().shift(s * d, s * m, num_rows=k * d, num_cols=k * m))
        y_parts.append(ys.shift(s * m, 0, num_rows=k * m, num_cols=1))

    x_blocks = reduce(DistributedMatrix.union, x_parts)
    xt_blocks = reduce(DistributedMatrix.union, xt_parts)
    y_blocks = reduce(DistributedMatrix.union, y_parts)

    gram_blocks = xt_blocks.multiply(x_blocks)
    corr_blocks = xt_blocks.multiply(y_blocks)

    grams = [_diagonal_block(gram_blocks, s, d, cols=d, col_offset=s * d) for s in range(k)]
    correlations = [_diagonal_block(corr_blocks, s, d, cols=1, col_offset=0) for s in range(k)]
    return grams, correlations


def _diagonal_block(
    stacked: DistributedMatrix, s: int, d: int, *, cols: int, col_offset: int
) -> DenseMatrix:
    """Materialise rows [s*d, (s+1)*d) of a block-stacked product as a (d, cols) array."""
    rows_in_block = DistributedMatrix(
        stacked.entries.filter(lambda e: e.row // d == s), stacked.num_rows, stacked.num_cols
    )
    block = rows_in_block.shift(-s * d, -col_offset, num_rows=d, num_cols=cols)
    return block.to_dense(d, cols)
