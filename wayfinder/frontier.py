"""Binary-heap priority frontier for shortest-path search."""

import heapq
from typing import Hashable, Optional


class Frontier:
    """Min-heap of (priority, item) with decrease-key.

    Decrease-key pushes a fresh entry and leaves the old one in the heap,
    marked stale; stale entries are dropped when they surface. Equal
    priorities pop in the order they were offered.
    """

    def __init__(self):
        self._heap: list[tuple[float, int, Hashable]] = []
        self._best: dict[Hashable, tuple[float, int]] = {}
        self._seq = 0

    def __len__(self) -> int:
        return len(self._best)

    def __bool__(self) -> bool:
        return bool(self._best)

    def __contains__(self, item) -> bool:
        return item in self._best

    def priority(self, item) -> Optional[float]:
        entry = self._best.get(item)
        return entry[0] if entry else None

    def push(self, item, priority: float):
        """Offer an item; lowers its priority if it is already queued with a higher one"""
        current = self._best.get(item)
        if current is not None and current[0] <= priority:
            return
        self._seq += 1
        self._best[item] = (priority, self._seq)
        heapq.heappush(self._heap, (priority, self._seq, item))

    def decrease_key(self, item, priority: float):
        current = self._best.get(item)
        if current is None:
            raise KeyError(item)
        if priority > current[0]:
            raise ValueError(f"new priority {priority} is above current {current[0]}")
        self.push(item, priority)

    def pop_min(self) -> tuple[Hashable, float]:
        """Remove and return (item, priority) with the lowest priority"""
        while self._heap:
            priority, seq, item = heapq.heappop(self._heap)
            if self._best.get(item) == (priority, seq):
                del self._best[item]
                return item, priority
        raise IndexError("pop from an empty frontier")
