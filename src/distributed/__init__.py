"""Distributed sparse-matrix components.

This package provides the data-parallel layer the solver runs on:

- Collections: sharded in-memory stand-in for a cluster dataset
  - PartitionedCollection: immutable partitions with explicit shuffles

- Matrices: entry-triple matrices over a partitioned collection
  - DistributedMatrix: multiply, add/subtract, shift, dense bridge

- Sampling: random row subsets of distributed matrices
  - unique_sample: partial Fisher-Yates draw without replacement
  - sample_rows / select_rows: row filtering with rank re-indexing
  - random_matrix_samples: k (Gram, correlation) pairs in one round
"""

from __future__ import annotations

from distributed.collection import PartitionedCollection, hash_partition
from distributed.matrix import DistributedMatrix
from distributed.sampling import (
    bin_search,
    random_matrix_samples,
    sample_rows,
    select_rows,
    unique_sample,
)

__all__ = [
    # Collections
    "PartitionedCollection",
    "hash_partition",
    # Matrices
    "DistributedMatrix",
    # Sampling
    "unique_sample",
    "bin_search",
    "select_rows",
    "sample_rows",
    "random_matrix_samples",
]
