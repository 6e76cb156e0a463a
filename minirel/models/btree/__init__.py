"""
Ordered index implementations for the query engine.
"""

from minirel.models.btree.b_tree import BTree

__all__ = ["BTree"]
