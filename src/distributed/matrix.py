"""Distributed entry-triple matrices.

A DistributedMatrix is a declared shape plus an unordered partitioned
collection of MatrixEntry triples. Missing cells are implicit zeros and
duplicate (row, col) entries are additive contributions.

Arithmetic follows the redistribute-and-combine pattern:
- multiply: key both operands by the shared inner index, join, emit partial
  products keyed by the output cell, reduce by key
- add: key both operands by (row, col), union, reduce by key

to_dense / from_dense bridge to process-local numpy arrays. They are meant
for operands sized by the feature dimension, never by the observation count.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from core.errors import DimensionMismatch
from core.protocols import KeyedCollection
from core.types import DenseMatrix, MatrixEntry
from distributed.collection import PartitionedCollection

__all__ = ["DistributedMatrix"]


@dataclass(frozen=True)
class DistributedMatrix:
    """Immutable sparse matrix stored as distributed (row, col, value) triples.

    Attributes:
        entries: Partitioned collection of MatrixEntry. Any KeyedCollection
            works; the constructors below build a PartitionedCollection.
        num_rows: Declared row count (may exceed the largest observed row).
        num_cols: Declared column count.

    Example:
        >>> a = DistributedMatrix.from_dense(np.array([[1.0, 0.0], [0.0, 2.0]]))
        >>> a.multiply(a).to_dense()
        array([[1., 0.],
               [0., 4.]])
    """

    entries: KeyedCollection[MatrixEntry]
    num_rows: int
    num_cols: int

    def __post_init__(self) -> None:
        if self.num_rows < 0 or self.num_cols < 0:
            raise ValueError(
                f"Matrix dimensions must be non-negative, got {self.num_rows}x{self.num_cols}"
            )

    @property
    def shape(self) -> tuple[int, int]:
        return (self.num_rows, self.num_cols)

    @property
    def num_partitions(self) -> int:
        return self.entries.num_partitions

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_entries(
        cls,
        entries: Iterable[MatrixEntry | tuple[int, int, float]],
        num_rows: int,
        num_cols: int,
        *,
        num_partitions: int = 4,
    ) -> DistributedMatrix:
        """Distribute local triples as a matrix of the declared shape.

        Args:
            entries: (row, col, value) triples.
            num_rows: Declared row count.
            num_cols: Declared column count.
            num_partitions: Number of partitions to spread entries over.

        Returns:
            A new DistributedMatrix.

        Raises:
            DimensionMismatch: If an entry lies outside the declared shape.
        """
        checked: list[MatrixEntry] = []
        for row, col, value in entries:
            if not (0 <= row < num_rows and 0 <= col < num_cols):
                raise DimensionMismatch(
                    f"Entry ({row}, {col}) is outside the declared shape {num_rows}x{num_cols}"
                )
            checked.append(MatrixEntry(int(row), int(col), float(value)))
        return cls(PartitionedCollection.parallelize(checked, num_partitions), num_rows, num_cols)

    @classmethod
    def from_dense(cls, matrix: DenseMatrix, *, num_partitions: int = 4) -> DistributedMatrix:
        """Distribute a local dense array; zero cells stay implicit.

        A 1-D array is treated as a column vector.

        Args:
            matrix: 1-D or 2-D array.
            num_partitions: Number of partitions to spread entries over.

        Returns:
            A DistributedMatrix with the array's shape.
        """
        arr = np.asarray(matrix, dtype=np.float64)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        if arr.ndim != 2:
            raise ValueError(f"matrix must be 1D or 2D, got ndim={arr.ndim}")
        rows, cols = np.nonzero(arr)
        entries = [
            MatrixEntry(int(i), int(j), float(arr[i, j])) for i, j in zip(rows, cols)
        ]
        return cls(
            PartitionedCollection.parallelize(entries, num_partitions),
            int(arr.shape[0]),
            int(arr.shape[1]),
        )

    def to_dense(self, rows: int | None = None, cols: int | None = None) -> DenseMatrix:
        """Gather every entry into a zero-initialised local array.

        Duplicate entries are summed. No size check is made: the caller is
        responsible for only materialising feature-sized matrices.

        Args:
            rows: Row count of the result (defaults to num_rows).
            cols: Column count of the result (defaults to num_cols).

        Returns:
            A (rows, cols) float64 array.
        """
        r = self.num_rows if rows is None else rows
        c = self.num_cols if cols is None else cols
        dense = np.zeros((r, c), dtype=np.float64)
        collected = self.entries.collect()
        if collected:
            idx = np.asarray([(e.row, e.col) for e in collected], dtype=np.int64)
            vals = np.asarray([e.value for e in collected], dtype=np.float64)
            np.add.at(dense, (idx[:, 0], idx[:, 1]), vals)
        return dense

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def multiply(self, other: DistributedMatrix) -> DistributedMatrix:
        """Matrix product self @ other.

        Args:
            other: Right operand with other.num_rows == self.num_cols.

        Returns:
            The (self.num_rows x other.num_cols) product. Cells whose partial
            products cancel may be kept as explicit zeros.

        Raises:
            DimensionMismatch: If the inner dimensions differ.
        """
        if self.num_cols != other.num_rows:
            raise DimensionMismatch(
                f"Cannot multiply {self.num_rows}x{self.num_cols} by "
                f"{other.num_rows}x{other.num_cols}: inner dimensions differ"
            )
        left = self.entries.map(lambda e: (e.col, (e.row, e.value)))
        right = other.entries.map(lambda e: (e.row, (e.col, e.value)))
        products = (
            left.join(right)
            .map(lambda kv: ((kv[1][0][0], kv[1][1][0]), kv[1][0][1] * kv[1][1][1]))
            .reduce_by_key(lambda a, b: a + b)
            .map(lambda kv: MatrixEntry(kv[0][0], kv[0][1], kv[1]))
        )
        return DistributedMatrix(products, self.num_rows, other.num_cols)

    def add(self, other: DistributedMatrix, subtract: bool = False) -> DistributedMatrix:
        """Entry-wise sum (or difference) of two equally shaped matrices.

        Args:
            other: Right operand.
            subtract: If True compute self - other.

        Returns:
            A matrix with one entry per (row, col) present in either operand.

        Raises:
            DimensionMismatch: If the declared shapes differ.
        """
        if self.shape != other.shape:
            raise DimensionMismatch(
                f"Cannot add {self.num_rows}x{self.num_cols} and "
                f"{other.num_rows}x{other.num_cols}"
            )
        sign = -1.0 if subtract else 1.0
        left = self.entries.map(lambda e: ((e.row, e.col), e.value))
        right = other.entries.map(lambda e: ((e.row, e.col), sign * e.value))
        summed = (
            left.union(right)
            .reduce_by_key(lambda a, b: a + b, self.num_partitions)
            .map(lambda kv: MatrixEntry(kv[0][0], kv[0][1], kv[1]))
        )
        return DistributedMatrix(summed, self.num_rows, self.num_cols)

    def shift(
        self,
        row_shift: int,
        col_shift: int,
        *,
        num_rows: int | None = None,
        num_cols: int | None = None,
    ) -> DistributedMatrix:
        """Translate every entry by fixed row and column offsets.

        Args:
            row_shift: Offset added to every row index (may be negative).
            col_shift: Offset added to every column index (may be negative).
            num_rows: Declared row count of the result
                (defaults to num_rows + row_shift).
            num_cols: Declared column count of the result
                (defaults to num_cols + col_shift).

        Returns:
            The shifted matrix.

        Raises:
            DimensionMismatch: If a shifted entry falls outside the result's
                declared shape.
        """
        r = self.num_rows + row_shift if num_rows is None else num_rows
        c = self.num_cols + col_shift if num_cols is None else num_cols

        def _move(e: MatrixEntry) -> MatrixEntry:
            row, col = e.row + row_shift, e.col + col_shift
            if not (0 <= row < r and 0 <= col < c):
                raise DimensionMismatch(
                    f"Entry ({e.row}, {e.col}) shifted by ({row_shift}, {col_shift}) "
                    f"is outside the declared shape {r}x{c}"
                )
            return MatrixEntry(row, col, e.value)

        return DistributedMatrix(self.entries.map(_move), r, c)

    def transpose(self) -> DistributedMatrix:
        flipped = self.entries.map(lambda e: MatrixEntry(e.col, e.row, e.value))
        return DistributedMatrix(flipped, self.num_cols, self.num_rows)

    def scale(self, alpha: float) -> DistributedMatrix:
        scaled = self.entries.map(lambda e: MatrixEntry(e.row, e.col, alpha * e.value))
        return DistributedMatrix(scaled, self.num_rows, self.num_cols)

    def union(self, other: DistributedMatrix) -> DistributedMatrix:
        """Stack the entries of two matrices without combining them.

        The result's shape is the element-wise maximum of both shapes. Use
        it to assemble shifted, non-overlapping blocks.
        """
        return DistributedMatrix(
            self.entries.union(other.entries),
            max(self.num_rows, other.num_rows),
            max(self.num_cols, other.num_cols),
        )

    def canonicalize(self) -> DistributedMatrix:
        """Sum duplicate (row, col) entries into a single entry each."""
        merged = (
            self.entries.map(lambda e: ((e.row, e.col), e.value))
            .reduce_by_key(lambda a, b: a + b)
            .map(lambda kv: MatrixEntry(kv[0][0], kv[0][1], kv[1]))
        )
        return DistributedMatrix(merged, self.num_rows, self.num_cols)

    def squared_norm(self) -> float:
        """Squared Frobenius norm, reduced on the partitions."""
        return float(
            self.canonicalize().entries.fold(
                0.0, lambda acc, e: acc + e.value * e.value, lambda a, b: a + b
            )
        )

    def nnz(self) -> int:
        """Number of stored entries (duplicates and explicit zeros included)."""
        return self.entries.count()
