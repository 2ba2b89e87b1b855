# sum_tree.py
"""
Array-backed complete binary tree over a fixed number of slots.

Every internal node keeps both the sum and the maximum of its subtree, so
total priority, the running maximum and proportional prefix search all
come from the same structure in O(log n). Leaves are padded up to a power
of two; padding leaves stay at 0.0 and are never returned by a search
while any real leaf is positive.
"""
import numpy as np


class SumTree:
    def __init__(self, capacity: int):
        self.capacity = capacity
        size = 1
        while size < capacity:
            size *= 2
        self._size = size
        # node 1 is the root; leaves live at [size, 2 * size)
        self._sums = np.zeros(2 * size, dtype=np.float64)
        self._maxes = np.zeros(2 * size, dtype=np.float64)

    def __len__(self) -> int:
        return self.capacity

    def __getitem__(self, slot: int) -> float:
        return float(self._sums[self._size + slot])

    def __setitem__(self, slot: int, value: float) -> None:
        if not 0 <= slot < self.capacity:
            raise IndexError(f"slot {slot} outside [0, {self.capacity})")
        node = self._size + slot
        self._sums[node] = value
        self._maxes[node] = value
        node //= 2
        while node >= 1:
            left = 2 * node
            # recompute from children so float error never accumulates
            self._sums[node] = self._sums[left] + self._sums[left + 1]
            self._maxes[node] = max(self._maxes[left], self._maxes[left + 1])
            node //= 2

    def total(self) -> float:
        return float(self._sums[1])

    def max(self) -> float:
        return float(self._maxes[1])

    def find_prefix(self, value: float) -> int:
        """
        Return the first slot whose cumulative sum (in slot order) reaches
        or exceeds ``value``.
        """
        node = 1
        sums = self._sums
        while node < self._size:
            left = 2 * node
            if value <= sums[left] or sums[left + 1] <= 0.0:
                node = left
            else:
                value -= sums[left]
                node = left + 1
        return node - self._size

    def leaves(self, count: int) -> np.ndarray:
        """Copy of the first ``count`` leaf values."""
        return self._sums[self._size:self._size + count].copy()

    def clear(self) -> None:
        self._sums.fill(0.0)
        self._maxes.fill(0.0)
