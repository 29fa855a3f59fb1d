"""
Fixed-capacity sample buffer
FIFO with overwrite-oldest semantics
"""

from collections import deque
from typing import Generic, Iterable, List, TypeVar

import numpy as np

T = TypeVar('T')


class RingBuffer(Generic[T]):
    """
    Bounded FIFO buffer.

    Pushing into a full buffer drops the oldest element, so the buffer always
    holds the most recent `capacity` values in arrival order. Readers take a
    snapshot() copy and never see the live container.
    """

    def __init__(self, capacity: int):
        """
        Args:
            capacity: Maximum number of elements kept (must be >= 1)
        """
        if capacity < 1:
            raise ValueError(f"RingBuffer capacity must be >= 1, got {capacity}")
        self._capacity = int(capacity)
        self._items = deque(maxlen=self._capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def push(self, value: T):
        """Append a value, evicting the oldest one when full."""
        self._items.append(value)

    def extend(self, values: Iterable[T]):
        """Push several values in order."""
        self._items.extend(values)

    def snapshot(self) -> List[T]:
        """
        Copy the current contents.

        Returns:
            New list ordered oldest to newest, independent of the buffer.
        """
        return list(self._items)

    def to_array(self) -> np.ndarray:
        """Numeric snapshot as a float64 array."""
        return np.array(self._items, dtype=float)

    def clear(self):
        self._items.clear()

    def is_empty(self) -> bool:
        return len(self._items) == 0

    def is_full(self) -> bool:
        return len(self._items) == self._capacity

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self):
        return f"<RingBuffer(len={len(self._items)}, capacity={self._capacity})>"
