from __future__ import annotations

import pytest

from pathfinder.errors import EmptyQueueError
from pathfinder.priority_queue import MinPriorityQueue


def test_extracts_in_priority_order() -> None:
    q: MinPriorityQueue[str] = MinPriorityQueue()
    q.insert("c", 3.0)
    q.insert("a", 1.0)
    q.insert("b", 2.0)

    assert [q.extract_min()[0] for _ in range(3)] == ["a", "b", "c"]
    assert q.is_empty()


def test_equal_priorities_keep_insertion_order() -> None:
    q: MinPriorityQueue[str] = MinPriorityQueue()
    for item in ("x", "y", "z"):
        q.insert(item, 1.0)

    assert [q.extract_min()[0] for _ in range(3)] == ["x", "y", "z"]


def test_extract_from_empty_queue_raises() -> None:
    q: MinPriorityQueue[str] = MinPriorityQueue()
    with pytest.raises(EmptyQueueError) as excinfo:
        q.extract_min()
    assert excinfo.value.reason_code == "empty_queue"


def test_membership_tracks_duplicate_entries() -> None:
    q: MinPriorityQueue[str] = MinPriorityQueue()
    q.insert("a", 5.0)
    q.insert("a", 2.0)
    assert "a" in q
    assert len(q) == 2

    item, priority = q.extract_min()
    assert (item, priority) == ("a", 2.0)
    assert "a" in q

    q.extract_min()
    assert "a" not in q
    assert q.is_empty()
