"""Dataset and reference-optimum loaders.

Datasets use the sparse labelled feature format, one observation per line:

    label index:value index:value ...

with 1-based feature indices. They are parsed with scikit-learn and turned
into distributed (observations, labels) matrices with 0-based indices.

A reference optimum file holds one coefficient per line. It only enables
early stopping, so loading failures are reported and swallowed.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
from sklearn.datasets import load_svmlight_file

from core.errors import MalformedInput
from core.logging import warn
from core.types import DenseMatrix, MatrixEntry
from distributed.matrix import DistributedMatrix

__all__ = ["load_svmlight", "load_reference_optimum"]


def load_svmlight(
    path: str | Path,
    *,
    num_features: int | None = None,
    num_partitions: int = 4,
) -> tuple[DistributedMatrix, DistributedMatrix]:
    """Read a sparse labelled feature file into distributed matrices.

    Args:
        path: Input file.
        num_features: Declared feature count d. Defaults to the largest
            index present in the file.
        num_partitions: Partitions for the resulting matrices.

    Returns:
        (observations n x d, labels n x 1).

    Raises:
        FileNotFoundError: If the file does not exist.
        MalformedInput: If a line cannot be parsed or an index exceeds
            num_features.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found: {path}")
    try:
        x, y = load_svmlight_file(
            str(path), n_features=num_features, zero_based=False, dtype=np.float64
        )
    except ValueError as exc:
        raise MalformedInput(f"Cannot parse dataset {path}: {exc}") from exc

    coo = x.tocoo()
    n, d = coo.shape
    entries = [
        MatrixEntry(int(i), int(j), float(v)) for i, j, v in zip(coo.row, coo.col, coo.data)
    ]
    observations = DistributedMatrix.from_entries(entries, n, d, num_partitions=num_partitions)
    label_entries = [MatrixEntry(i, 0, float(label)) for i, label in enumerate(y)]
    labels = DistributedMatrix.from_entries(label_entries, n, 1, num_partitions=num_partitions)
    return observations, labels


def load_reference_optimum(path: str | Path | None) -> DenseMatrix | None:
    """Read a known optimal weight vector, one coefficient per line.

    Args:
        path: Input file, or None.

    Returns:
        A (d, 1) array, or None if path is None or the file cannot be read.
        In the latter case a warning is logged and the caller should run
        without early stopping.
    """
    if path is None:
        return None
    try:
        values = np.loadtxt(Path(path), dtype=np.float64, ndmin=1)
    except (OSError, ValueError) as exc:
        warn(f"Error while reading optimal weight file {path}: {exc}")
        warn("Continuing execution without optimal weights known")
        return None
    if values.ndim != 1 or values.size == 0:
        warn(f"Optimal weight file {path} must hold one value per line")
        warn("Continuing execution without optimal weights known")
        return None
    return values.reshape(-1, 1)
