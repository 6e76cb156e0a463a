"""
OrderedIndex abstract base class for key -> row position multimaps.
"""

from abc import abstractmethod

from minirel.interfaces.range_iterable import RangeIterable
from minirel.models.value import Value


class OrderedIndex(RangeIterable):
    """
    Abstract base class for ordered multimaps from a column value to the
    positions of the rows holding it.

    Each key owns a list of positions in insertion order; a position
    appears at most once per key.

    Implementations:
    - BTree: order-N B-tree stored in a node arena
    """

    @abstractmethod
    def insert(self, key: Value, position: int) -> None:
        """
        Add a position under a key. Adding a position twice is a no-op.

        Args:
            key: The indexed column value.
            position: Row position in the owning table.

        Time complexity: O(log N)
        """
        pass

    @abstractmethod
    def search(self, key: Value) -> list[int]:
        """
        Return the positions stored under a key.

        Args:
            key: The key to look up.

        Returns:
            A copy of the position list, empty if the key is absent.

        Time complexity: O(log N)
        """
        pass

    @abstractmethod
    def search_range(self, start: Value | None, end: Value | None) -> list[int]:
        """
        Return the positions of every key in [start, end].

        Args:
            start: Inclusive lower bound, None for unbounded.
            end: Inclusive upper bound, None for unbounded.

        Returns:
            Positions in key order.
        """
        pass

    @abstractmethod
    def delete(self, key: Value, position: int) -> bool:
        """
        Remove a position from a key; the key goes away with its last position.

        Args:
            key: The indexed column value.
            position: Row position to remove.

        Returns:
            True if the position was found and removed, False otherwise.

        Time complexity: O(log N)
        """
        pass

    @abstractmethod
    def size(self) -> int:
        """
        Return the number of distinct keys.

        Time complexity: O(1)
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Drop every key."""
        pass
