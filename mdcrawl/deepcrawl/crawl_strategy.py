"""Pluggable frontier disciplines for the CrawlEngine.

Defines the ``CrawlStrategy`` protocol and two built-in implementations:

* **BFSStrategy**: breadth-first (default): FIFO frontier; every node at
  depth *N* is visited before any node at depth *N+1*.
* **BestFirstStrategy**: always pops the highest-priority item, ordered by
  score, then shallower depth, then smaller URL.

A strategy instance owns the pending items of exactly one run. Custom
strategies can be created by implementing the ``CrawlStrategy`` protocol
(structural subtyping, no inheritance required).
"""
from __future__ import annotations

import bisect
from functools import cmp_to_key
from typing import Iterable, List, Optional, Protocol, runtime_checkable

from .crawl_graph import QueueItem


@runtime_checkable
class CrawlStrategy(Protocol):
    """Protocol that determines traversal order for the CrawlEngine."""

    name: str

    def start(self, items: Iterable[QueueItem], seed_url: str, fresh: bool) -> None:
        """Load the initial frontier of a run.

        Args:
            items: Seed item or the sanitized frontier of a resumed run.
            seed_url: Normalized seed URL of the run.
            fresh: True when no results exist yet (nothing resumed).
        """
        ...

    def next(self) -> Optional[QueueItem]:
        """Pop and return the next item, or ``None`` if the frontier is empty."""
        ...

    def enqueue(self, item: QueueItem) -> None:
        """Add a newly discovered item to the frontier."""
        ...

    def compact(self) -> None:
        """Reclaim storage of consumed items (may be a no-op)."""
        ...

    def pending(self) -> List[QueueItem]:
        """Return the not-yet-popped items (live objects, do not mutate)."""
        ...

    def __len__(self) -> int:
        ...


BFS_COMPACT_MIN_HEAD = 1024


class BFSStrategy:
    """Breadth-first strategy over a FIFO list with a moving head pointer.

    ``next()`` advances the head instead of shifting the list. Once the
    head is past ``BFS_COMPACT_MIN_HEAD`` and past half of the backing list,
    the consumed prefix is dropped, so dequeues stay amortized O(1) while
    memory of long runs stays bounded.
    """

    name = "bfs"

    def __init__(self) -> None:
        self._queue: List[QueueItem] = []
        self._head = 0

    def start(self, items: Iterable[QueueItem], seed_url: str, fresh: bool) -> None:
        self._queue = list(items)
        self._head = 0

    def next(self) -> Optional[QueueItem]:
        """Pop the oldest item from the frontier (FIFO)."""
        if self._head >= len(self._queue):
            return None
        item = self._queue[self._head]
        self._head += 1
        return item

    def enqueue(self, item: QueueItem) -> None:
        """Append an item to the tail of the frontier."""
        self._queue.append(item)

    def compact(self) -> None:
        """Discard the consumed prefix when it dominates the backing list."""
        if self._head < BFS_COMPACT_MIN_HEAD or self._head * 2 <= len(self._queue):
            return
        self._queue = self._queue[self._head:]
        self._head = 0

    def pending(self) -> List[QueueItem]:
        if self._head == 0:
            return self._queue
        return self._queue[self._head:]

    def __len__(self) -> int:
        return len(self._queue) - self._head


def compare_priority(a: QueueItem, b: QueueItem) -> int:
    """Order two items from lowest to highest crawl priority.

    Higher score wins; on a score tie the shallower item wins; on a depth
    tie the lexicographically smaller URL wins. Two infinite (or NaN)
    scores count as a tie.
    """
    diff = a.score - b.score
    if diff > 0:
        return 1
    if diff < 0:
        return -1
    if a.depth != b.depth:
        return 1 if a.depth < b.depth else -1
    if a.url != b.url:
        return 1 if a.url < b.url else -1
    return 0


priority_key = cmp_to_key(compare_priority)


class BestFirstStrategy:
    """Best-first strategy over a list kept sorted by ascending priority.

    ``next()`` pops from the tail (highest priority). Inserts use binary
    search to find their slot. On a fresh run the seed is boosted to
    ``+inf`` so it is always crawled first whatever the scorer says.
    """

    name = "best_first"

    def __init__(self) -> None:
        self._frontier: List[QueueItem] = []

    def start(self, items: Iterable[QueueItem], seed_url: str, fresh: bool) -> None:
        self._frontier = list(items)
        if fresh:
            for item in self._frontier:
                if item.url == seed_url:
                    item.score = float("inf")
                    break
        self._frontier.sort(key=priority_key)

    def next(self) -> Optional[QueueItem]:
        """Pop the highest-priority item."""
        if not self._frontier:
            return None
        return self._frontier.pop()

    def enqueue(self, item: QueueItem) -> None:
        """Insert an item at its sorted position (binary search)."""
        bisect.insort_left(self._frontier, item, key=priority_key)

    def compact(self) -> None:
        pass

    def pending(self) -> List[QueueItem]:
        return self._frontier

    def __len__(self) -> int:
        return len(self._frontier)


STRATEGIES = {
    BFSStrategy.name: BFSStrategy,
    BestFirstStrategy.name: BestFirstStrategy,
}
