from __future__ import annotations

import heapq
import itertools
from collections.abc import Hashable
from typing import Generic, TypeVar

from .errors import EmptyQueueError

T = TypeVar("T", bound=Hashable)


class MinPriorityQueue(Generic[T]):
    """Binary-heap worklist; equal priorities come out in insertion order."""

    def __init__(self) -> None:
        self._heap: list[tuple[float, int, T]] = []
        self._counter = itertools.count()
        self._members: dict[T, int] = {}

    def insert(self, item: T, priority: float) -> None:
        heapq.heappush(self._heap, (float(priority), next(self._counter), item))
        self._members[item] = self._members.get(item, 0) + 1

    def extract_min(self) -> tuple[T, float]:
        if not self._heap:
            raise EmptyQueueError()
        priority, _seq, item = heapq.heappop(self._heap)
        remaining = self._members.get(item, 0) - 1
        if remaining > 0:
            self._members[item] = remaining
        else:
            self._members.pop(item, None)
        return item, priority

    def is_empty(self) -> bool:
        return not self._heap

    def __len__(self) -> int:
        return len(self._heap)

    def __contains__(self, item: object) -> bool:
        return item in self._members
