"""
Abstract base classes and protocols for the query engine.
"""

from minirel.interfaces.ordered_index import OrderedIndex
from minirel.interfaces.range_iterable import RangeIterable

__all__ = ["OrderedIndex", "RangeIterable"]
