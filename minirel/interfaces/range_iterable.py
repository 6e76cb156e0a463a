"""
RangeIterable protocol for data structures that support ordered iteration.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any

from minirel.models.value import Value


class RangeIterable(ABC):
    """
    Protocol for data structures that iterate their keys in sorted order.

    Implementations must support:
    - Full iteration via __iter__
    - Range-bounded iteration via iterator(start, end)
    """

    @abstractmethod
    def __iter__(self) -> Iterator[tuple[Value, Any]]:
        """Return an iterator over all (key, payload) pairs in sorted order."""
        pass

    @abstractmethod
    def iterator(
        self, start: Value | None = None, end: Value | None = None
    ) -> Iterator[tuple[Value, Any]]:
        """
        Return an iterator over (key, payload) pairs in the specified range.

        Args:
            start: Start key (inclusive). If None, starts from the beginning.
            end: End key (inclusive). If None, iterates to the end.

        Returns:
            Iterator yielding (key, payload) tuples in sorted order.
        """
        pass
