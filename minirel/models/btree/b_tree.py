"""
B-Tree implementation for column indexes.

Keys map to the row positions holding them. Nodes live in an arena and
refer to each other by integer id.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field

from minirel.interfaces.ordered_index import OrderedIndex
from minirel.models.value import Value, compare


@dataclass
class Node:
    """Node in the B-Tree arena."""

    is_leaf: bool = True
    keys: list[Value] = field(default_factory=list)
    positions: list[list[int]] = field(default_factory=list)
    children: list[int] = field(default_factory=list)


def _lower_bound(node: Node, key: Value) -> int:
    """Index of the first key in the node that is >= key."""
    lo, hi = 0, len(node.keys)
    while lo < hi:
        mid = (lo + hi) // 2
        if compare(node.keys[mid], key) < 0:
            lo = mid + 1
        else:
            hi = mid
    return lo


class BTree(OrderedIndex):
    """
    Order-N B-Tree implementation of OrderedIndex.

    Properties maintained:
    1. A node holds at most order - 1 keys
    2. An internal node with k keys has k + 1 children
    3. Keys are unique across the tree; duplicates share one position list
    4. Full children are split before the insert descends into them

    Deletion removes emptied keys but never merges or rebalances underfull
    nodes, so the tree can grow lopsided under heavy deletes. Searches stay
    correct because a key removed from an internal node is replaced by its
    in-order predecessor, or dropped together with its empty left subtree.
    """

    DEFAULT_ORDER = 4
    MIN_ORDER = 3
    MAX_ORDER = 1024

    def __init__(self, order: int = DEFAULT_ORDER) -> None:
        """
        Initialize an empty tree.

        Args:
            order: Maximum number of children per node.
        """
        if order < self.MIN_ORDER or order > self.MAX_ORDER:
            raise ValueError(
                f"B-Tree order must be between {self.MIN_ORDER} and {self.MAX_ORDER}, got {order}"
            )

        self._order = order
        self._nodes: list[Node] = []
        self._free: list[int] = []
        self._root: int = self._new_node(is_leaf=True)
        self._size: int = 0

    @property
    def order(self) -> int:
        return self._order

    def insert(self, key: Value, position: int) -> None:
        """Add a position under a key. O(log N)"""
        root = self._nodes[self._root]
        if len(root.keys) == self._order - 1:
            new_root = self._new_node(is_leaf=False)
            self._nodes[new_root].children.append(self._root)
            self._split_child(new_root, 0)
            self._root = new_root

        node_id = self._root
        while True:
            node = self._nodes[node_id]
            i = _lower_bound(node, key)

            if i < len(node.keys) and compare(key, node.keys[i]) == 0:
                self._add_position(node.positions[i], position)
                return

            if node.is_leaf:
                node.keys.insert(i, key)
                node.positions.insert(i, [position])
                self._size += 1
                return

            if len(self._nodes[node.children[i]].keys) == self._order - 1:
                self._split_child(node_id, i)
                cmp = compare(key, node.keys[i])
                if cmp == 0:
                    self._add_position(node.positions[i], position)
                    return
                if cmp > 0:
                    i += 1

            node_id = node.children[i]

    def search(self, key: Value) -> list[int]:
        """Return positions stored under key. O(log N)"""
        found = self._find(key)
        if found is None:
            return []
        node_id, i = found
        return list(self._nodes[node_id].positions[i])

    def has(self, key: Value) -> bool:
        return self._find(key) is not None

    def search_range(self, start: Value | None, end: Value | None) -> list[int]:
        """Return positions of every key within [start, end]."""
        result = []
        for _, positions in self.iterator(start, end):
            result.extend(positions)
        return result

    def delete(self, key: Value, position: int) -> bool:
        """Remove a position from key, and the key once it has none. O(log N)"""
        found = self._find(key)
        if found is None:
            return False

        node_id, i = found
        slot = self._nodes[node_id].positions[i]
        if position not in slot:
            return False

        slot.remove(position)
        if not slot:
            self._remove_key(node_id, i)
            self._size -= 1
        return True

    def size(self) -> int:
        return self._size

    def __len__(self) -> int:
        return self._size

    def height(self) -> int:
        """Number of levels from the root down to the leftmost leaf."""
        levels = 1
        node = self._nodes[self._root]
        while not node.is_leaf:
            node = self._nodes[node.children[0]]
            levels += 1
        return levels

    def clear(self) -> None:
        self._nodes = []
        self._free = []
        self._root = self._new_node(is_leaf=True)
        self._size = 0

    def entries(self) -> list[tuple[Value, list[int]]]:
        """All (key, positions) pairs in key order."""
        return list(self.iterator())

    def __iter__(self) -> Iterator[tuple[Value, list[int]]]:
        return self.iterator()

    def iterator(
        self, start: Value | None = None, end: Value | None = None
    ) -> Iterator[tuple[Value, list[int]]]:
        return _RangeIterator(self._nodes, self._root, start, end)

    def _new_node(self, is_leaf: bool) -> int:
        """Allocate a node in the arena, reusing released slots first."""
        if self._free:
            node_id = self._free.pop()
            self._nodes[node_id] = Node(is_leaf=is_leaf)
            return node_id
        self._nodes.append(Node(is_leaf=is_leaf))
        return len(self._nodes) - 1

    def _release(self, node_id: int) -> None:
        """Return a subtree's nodes to the free list."""
        stack = [node_id]
        while stack:
            current = stack.pop()
            stack.extend(self._nodes[current].children)
            self._nodes[current] = Node()
            self._free.append(current)

    def _add_position(self, slot: list[int], position: int) -> None:
        if position not in slot:
            slot.append(position)

    def _find(self, key: Value) -> tuple[int, int] | None:
        """Locate (node id, slot index) holding key."""
        node_id = self._root
        while True:
            node = self._nodes[node_id]
            i = _lower_bound(node, key)
            if i < len(node.keys) and compare(key, node.keys[i]) == 0:
                return node_id, i
            if node.is_leaf:
                return None
            node_id = node.children[i]

    def _split_child(self, parent_id: int, index: int) -> None:
        """Split the full child at parent.children[index], promoting its median."""
        sibling_id = self._new_node(is_leaf=self._nodes[self._nodes[parent_id].children[index]].is_leaf)
        parent = self._nodes[parent_id]
        child = self._nodes[parent.children[index]]
        sibling = self._nodes[sibling_id]
        mid = (self._order - 1) // 2

        sibling.keys = child.keys[mid + 1 :]
        sibling.positions = child.positions[mid + 1 :]
        if not child.is_leaf:
            sibling.children = child.children[mid + 1 :]
            child.children = child.children[: mid + 1]

        mid_key = child.keys[mid]
        mid_positions = child.positions[mid]
        child.keys = child.keys[:mid]
        child.positions = child.positions[:mid]

        parent.keys.insert(index, mid_key)
        parent.positions.insert(index, mid_positions)
        parent.children.insert(index + 1, sibling_id)

    def _remove_key(self, node_id: int, i: int) -> None:
        """Remove slot i of a node without rebalancing."""
        node = self._nodes[node_id]
        if node.is_leaf:
            del node.keys[i]
            del node.positions[i]
            return

        predecessor = self._pop_max(node.children[i])
        if predecessor is not None:
            node.keys[i], node.positions[i] = predecessor
            return

        # Left subtree holds no keys; drop it with the slot
        empty_child = node.children.pop(i)
        del node.keys[i]
        del node.positions[i]
        self._release(empty_child)
        self._collapse_root()

    def _pop_max(self, node_id: int) -> tuple[Value, list[int]] | None:
        """Detach and return the largest key in a subtree, if it has any."""
        node = self._nodes[node_id]
        if node.is_leaf:
            if not node.keys:
                return None
            return node.keys.pop(), node.positions.pop()

        found = self._pop_max(node.children[-1])
        if found is not None:
            return found
        if not node.keys:
            return None

        # Rightmost subtree is empty; the last key here is the maximum
        self._release(node.children.pop())
        return node.keys.pop(), node.positions.pop()

    def _collapse_root(self) -> None:
        """Drop key-less internal roots that only forward to one child."""
        while True:
            root = self._nodes[self._root]
            if root.is_leaf or root.keys or len(root.children) != 1:
                return
            old_root = self._root
            self._root = root.children[0]
            root.children = []
            self._release(old_root)


class _RangeIterator(Iterator[tuple[Value, list[int]]]):
    """In-order iterator over B-Tree keys within inclusive bounds."""

    def __init__(
        self, nodes: list[Node], root: int, start: Value | None, end: Value | None
    ) -> None:
        self._nodes = nodes
        self._start = start
        self._end = end
        # Frames of [node id, index of the next key to emit]
        self._stack: list[list[int]] = []

        self._push_left_path(root)

    def __iter__(self) -> Iterator[tuple[Value, list[int]]]:
        return self

    def __next__(self) -> tuple[Value, list[int]]:
        while self._stack:
            frame = self._stack[-1]
            node_id, i = frame
            node = self._nodes[node_id]

            if i >= len(node.keys):
                self._stack.pop()
                continue

            key = node.keys[i]
            if self._end is not None and compare(key, self._end) > 0:
                self._stack.clear()
                raise StopIteration

            frame[1] = i + 1
            if not node.is_leaf:
                self._push_left_path(node.children[i + 1])

            return key, list(node.positions[i])

        raise StopIteration

    def _push_left_path(self, node_id: int) -> None:
        """Push frames down to a leaf, skipping keys below the start bound."""
        while True:
            node = self._nodes[node_id]
            i = 0 if self._start is None else _lower_bound(node, self._start)
            self._stack.append([node_id, i])
            if node.is_leaf:
                return
            node_id = node.children[i]
