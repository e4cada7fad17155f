"""Protocol definitions for the solver stack.

This module contains Protocol classes defining interfaces for:
- KeyedCollection: the partitioned collection the matrix layer runs on
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Protocol, TypeVar, runtime_checkable

__all__ = ["KeyedCollection", "T_co"]

T_co = TypeVar("T_co", covariant=True)
U = TypeVar("U")


@runtime_checkable
class KeyedCollection(Protocol[T_co]):
    """Protocol for an unordered, partitioned collection of items.

    The distributed matrix layer is written against this interface. Each
    method is one bulk-synchronous step over all partitions: no method
    observes a partially computed result of another.

    Keyed operations (reduce_by_key, join) expect items that are
    (key, value) pairs and imply a shuffle by key.

    Type Parameters:
        T_co: The item type (covariant).
    """

    @property
    def num_partitions(self) -> int:
        """Number of partitions the items are spread over."""
        ...

    def map(self, fn: Callable[[Any], Any]) -> KeyedCollection[Any]:
        """Apply fn to every item, partition-locally."""
        ...

    def filter(self, pred: Callable[[Any], bool]) -> KeyedCollection[Any]:
        """Keep items for which pred holds, partition-locally."""
        ...

    def flat_map(self, fn: Callable[[Any], Iterable[Any]]) -> KeyedCollection[Any]:
        """Apply fn to every item and flatten the results."""
        ...

    def union(self, other: KeyedCollection[Any]) -> KeyedCollection[Any]:
        """Concatenate two collections without a shuffle."""
        ...

    def reduce_by_key(
        self, fn: Callable[[Any, Any], Any], num_partitions: int | None = None
    ) -> KeyedCollection[Any]:
        """Combine the values of (key, value) items sharing a key.

        Args:
            fn: Associative, commutative binary combiner.
            num_partitions: Partition count after the shuffle.

        Returns:
            A collection with exactly one (key, value) item per key.
        """
        ...

    def join(
        self, other: KeyedCollection[Any], num_partitions: int | None = None
    ) -> KeyedCollection[Any]:
        """Inner join of two (key, value) collections.

        Returns:
            (key, (left_value, right_value)) for every matching pair.
        """
        ...

    def collect(self) -> list[Any]:
        """Gather every item to the calling process."""
        ...

    def count(self) -> int:
        """Return the number of items."""
        ...

    def fold(self, zero: U, fn: Callable[[U, Any], U], combine: Callable[[U, U], U]) -> U:
        """Aggregate items per partition, then merge the partial results."""
        ...
