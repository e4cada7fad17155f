"""Sharded in-memory collection with an explicit shuffle step.

PartitionedCollection stands in for a cluster dataset: items live in a fixed
number of partitions, partition-local operations (map, filter) never move
items, and keyed operations (reduce_by_key, join) first shuffle items so that
equal keys land in the same partition, then combine them partition by
partition.

Every operation returns a new collection; partitions are tuples and are
never mutated.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

__all__ = ["PartitionedCollection", "hash_partition"]

T = TypeVar("T")
U = TypeVar("U")


def hash_partition(key: Hashable, num_partitions: int) -> int:
    """Return the partition index that owns a key.

    Integer and tuple-of-integer keys hash deterministically, so the same
    key always maps to the same partition across calls.

    Args:
        key: Hashable shuffle key.
        num_partitions: Number of target partitions (>= 1).

    Returns:
        Partition index in [0, num_partitions).
    """
    return hash(key) % num_partitions


def _check_num_partitions(num_partitions: int) -> None:
    if num_partitions < 1:
        raise ValueError(f"num_partitions must be >= 1, got {num_partitions}")


@dataclass(frozen=True)
class PartitionedCollection(Generic[T]):
    """Immutable collection of items spread over partitions.

    Attributes:
        partitions: One tuple of items per partition.

    Example:
        >>> pairs = PartitionedCollection.parallelize([("a", 1), ("b", 2), ("a", 3)], 2)
        >>> sorted(pairs.reduce_by_key(lambda x, y: x + y).collect())
        [('a', 4), ('b', 2)]
    """

    partitions: tuple[tuple[T, ...], ...]

    def __post_init__(self) -> None:
        _check_num_partitions(len(self.partitions))

    @classmethod
    def parallelize(cls, items: Iterable[T], num_partitions: int = 4) -> PartitionedCollection[T]:
        """Distribute items round-robin over num_partitions partitions.

        Raises:
            ValueError: If num_partitions < 1.
        """
        _check_num_partitions(num_partitions)
        buckets: list[list[T]] = [[] for _ in range(num_partitions)]
        for i, item in enumerate(items):
            buckets[i % num_partitions].append(item)
        return cls(tuple(tuple(b) for b in buckets))

    @classmethod
    def empty(cls, num_partitions: int = 1) -> PartitionedCollection[T]:
        _check_num_partitions(num_partitions)
        return cls(tuple(() for _ in range(num_partitions)))

    @property
    def num_partitions(self) -> int:
        return len(self.partitions)

    # ------------------------------------------------------------------
    # Partition-local operations
    # ------------------------------------------------------------------

    def map_partitions(
        self, fn: Callable[[Sequence[T]], Iterable[U]]
    ) -> PartitionedCollection[U]:
        return PartitionedCollection(tuple(tuple(fn(part)) for part in self.partitions))

    def map(self, fn: Callable[[T], U]) -> PartitionedCollection[U]:
        return self.map_partitions(lambda part: [fn(item) for item in part])

    def filter(self, pred: Callable[[T], bool]) -> PartitionedCollection[T]:
        return self.map_partitions(lambda part: [item for item in part if pred(item)])

    def flat_map(self, fn: Callable[[T], Iterable[U]]) -> PartitionedCollection[U]:
        return self.map_partitions(lambda part: [out for item in part for out in fn(item)])

    def union(self, other: PartitionedCollection[U]) -> PartitionedCollection[T | U]:
        return PartitionedCollection(self.partitions + other.partitions)

    # ------------------------------------------------------------------
    # Shuffles
    # ------------------------------------------------------------------

    def partition_by(
        self, key_fn: Callable[[T], Hashable], num_partitions: int | None = None
    ) -> PartitionedCollection[T]:
        """Move every item to the partition that owns its key.

        Args:
            key_fn: Extracts the shuffle key from an item.
            num_partitions: Target partition count (defaults to the current one).

        Returns:
            A collection where all items with equal keys share a partition.
        """
        n = self.num_partitions if num_partitions is None else num_partitions
        _check_num_partitions(n)
        buckets: list[list[T]] = [[] for _ in range(n)]
        for part in self.partitions:
            for item in part:
                buckets[hash_partition(key_fn(item), n)].append(item)
        return PartitionedCollection(tuple(tuple(b) for b in buckets))

    def reduce_by_key(
        self, fn: Callable[[Any, Any], Any], num_partitions: int | None = None
    ) -> PartitionedCollection[tuple[Any, Any]]:
        """Combine values of (key, value) items that share a key.

        Args:
            fn: Associative, commutative binary combiner.
            num_partitions: Partition count after the shuffle.

        Returns:
            A collection with one (key, combined_value) item per distinct key.
        """
        shuffled = self.partition_by(lambda kv: kv[0], num_partitions)

        def _combine(part: Sequence[tuple[Any, Any]]) -> list[tuple[Any, Any]]:
            acc: dict[Any, Any] = {}
            for key, value in part:
                acc[key] = fn(acc[key], value) if key in acc else value
            return list(acc.items())

        return shuffled.map_partitions(_combine)  # type: ignore[arg-type]

    def join(
        self, other: PartitionedCollection[tuple[Any, Any]], num_partitions: int | None = None
    ) -> PartitionedCollection[tuple[Any, tuple[Any, Any]]]:
        """Inner join two (key, value) collections on their keys.

        Both sides are shuffled with the same partitioner, then each pair of
        co-located partitions is hash-joined independently.

        Args:
            other: Right-hand (key, value) collection.
            num_partitions: Partition count after the shuffle
                (defaults to the larger of the two inputs).

        Returns:
            (key, (left_value, right_value)) for every matching pair.
        """
        n = (
            max(self.num_partitions, other.num_partitions)
            if num_partitions is None
            else num_partitions
        )
        left = self.partition_by(lambda kv: kv[0], n)
        right = other.partition_by(lambda kv: kv[0], n)

        joined: list[tuple[tuple[Any, tuple[Any, Any]], ...]] = []
        for left_part, right_part in zip(left.partitions, right.partitions):
            table: dict[Any, list[Any]] = defaultdict(list)
            for key, value in right_part:
                table[key].append(value)
            out = [
                (key, (lv, rv))
                for key, lv in left_part  # type: ignore[misc]
                for rv in table.get(key, ())
            ]
            joined.append(tuple(out))
        return PartitionedCollection(tuple(joined))

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def collect(self) -> list[T]:
        return [item for part in self.partitions for item in part]

    def count(self) -> int:
        return sum(len(part) for part in self.partitions)

    def fold(self, zero: U, fn: Callable[[U, T], U], combine: Callable[[U, U], U]) -> U:
        """Aggregate items partition by partition, then merge partial results.

        Args:
            zero: Neutral starting value for every partition.
            fn: Folds one item into a partition accumulator.
            combine: Merges two partition accumulators.

        Returns:
            The aggregated value.
        """
        result = zero
        for part in self.partitions:
            acc = zero
            for item in part:
                acc = fn(acc, item)
            result = combine(result, acc)
        return result
