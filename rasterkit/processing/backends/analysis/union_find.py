"""
Disjoint-set forest over a fixed-capacity index arena.
"""

import logging

import numpy as np

from rasterkit.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class DisjointSetForest:
    """
    Union-find with union by rank and full path compression.

    Elements are the integers ``0 .. len(forest) - 1``, handed out in order by
    :meth:`make_set`. Parent links and ranks live in preallocated NumPy
    arrays of size ``capacity``.

    Args:
        capacity: Maximum number of elements

    Raises:
        ConfigurationError: If capacity is negative
    """

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ConfigurationError(f"capacity must be non-negative, got {capacity}")
        self._parent = np.arange(capacity, dtype=np.int64)
        self._rank = np.zeros(capacity, dtype=np.uint8)
        self._size = 0

    @property
    def capacity(self) -> int:
        return len(self._parent)

    def __len__(self) -> int:
        return self._size

    def make_set(self) -> int:
        """
        Allocate the next element as a singleton set.

        Raises:
            ConfigurationError: If the forest is full
        """
        if self._size >= len(self._parent):
            raise ConfigurationError(f"DisjointSetForest capacity {len(self._parent)} exceeded")
        element = self._size
        self._parent[element] = element
        self._rank[element] = 0
        self._size += 1
        return element

    def _check(self, element: int) -> int:
        element = int(element)
        if not 0 <= element < self._size:
            raise ConfigurationError(f"Element {element} is not in the forest (size {self._size})")
        return element

    def find(self, element: int) -> int:
        """Root of the set containing ``element``; compresses the path behind it."""
        element = self._check(element)
        parent = self._parent

        root = element
        while parent[root] != root:
            root = parent[root]

        while parent[element] != root:
            parent[element], element = root, parent[element]
        return int(root)

    def union(self, a: int, b: int) -> int:
        """Merge the sets of ``a`` and ``b`` and return the surviving root."""
        root_a = self.find(a)
        root_b = self.find(b)
        if root_a == root_b:
            return root_a

        rank = self._rank
        if rank[root_a] < rank[root_b]:
            root_a, root_b = root_b, root_a
        self._parent[root_b] = root_a
        if rank[root_a] == rank[root_b]:
            rank[root_a] += 1
        return root_a

    def same_set(self, a: int, b: int) -> bool:
        return self.find(a) == self.find(b)

    def roots(self) -> np.ndarray:
        """
        Root of every allocated element, as an int64 array.

        Pointer jumping over the whole parent array; leaves the forest fully
        compressed.
        """
        parent = self._parent[:self._size]
        while True:
            grandparent = parent[parent]
            if np.array_equal(grandparent, parent):
                return parent.copy()
            parent[:] = grandparent
