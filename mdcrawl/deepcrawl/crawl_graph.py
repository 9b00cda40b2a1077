"""CrawlGraph & crawl records for the deep crawler.

Provides the value types that flow through a crawl run (``QueueItem``,
``CrawlNode``, ``CrawlStats``, ``CrawlResult``, ``StateSnapshot``) and the
``CrawlGraph``, which owns the per-run visited set, the append-only result
list and the enqueued-pages counter. The frontier itself belongs to the
traversal strategy (see ``crawl_strategy``).

``CrawlGraph.restore()`` is the checkpoint decoder: it rebuilds run state
from a possibly corrupted or hostile ``StateSnapshot``, keeping what is
valid, clamping what can be clamped and dropping the rest.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from .url_utils import get_host, normalize_url


@dataclass
class QueueItem:
    """A pending URL owned by the frontier.

    Attributes:
        url: Normalized URL to fetch.
        depth: Distance from the seed (seed = 0), within ``[0, max_depth]``.
        score: Relevance assigned by the scorer when discovered.
        parent_url: URL of the page that linked here.
        anchor_text: Trimmed anchor text of the discovering link.
    """

    url: str
    depth: int = 0
    score: float = 0.0
    parent_url: Optional[str] = None
    anchor_text: Optional[str] = None

    def copy(self) -> QueueItem:
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "url": self.url,
            "parent_url": self.parent_url,
            "depth": self.depth,
            "score": self.score,
        }
        if self.anchor_text:
            data["anchor_text"] = self.anchor_text
        return data


@dataclass(frozen=True)
class CrawlNode:
    """Outcome of visiting (or attempting) one page. Immutable once recorded.

    Attributes:
        url: Final URL of the page (the fetcher's, else the queued one).
        depth: Depth the page was crawled at.
        score: Queued score (``0`` when it was not finite).
        success: Whether the page was fetched and admitted.
        parent_url: URL of the page that linked here.
        title: Page title reported by the fetcher.
        markdown: Converted Markdown reported by the fetcher.
        method: Fetch method reported by the fetcher (static, browser...).
        links_discovered: Children enqueued from this page.
        error: Failure description when ``success`` is False.
    """

    url: str
    depth: int
    score: float
    success: bool
    parent_url: Optional[str] = None
    title: Optional[str] = None
    markdown: Optional[str] = None
    method: Optional[str] = None
    links_discovered: int = 0
    error: Optional[str] = None

    def to_dict(self, include_markdown: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "url": self.url,
            "parent_url": self.parent_url,
            "depth": self.depth,
            "score": self.score,
            "success": self.success,
            "title": self.title,
            "method": self.method,
            "links_discovered": self.links_discovered,
            "error": self.error,
        }
        if include_markdown:
            data["markdown"] = self.markdown
        return data


@dataclass(frozen=True)
class CrawlStats:
    """Run statistics derived from the result list."""

    crawled_pages: int = 0
    succeeded_pages: int = 0
    failed_pages: int = 0
    enqueued_pages: int = 0
    visited_pages: int = 0

    @classmethod
    def from_results(
        cls,
        results: List[CrawlNode],
        visited: Set[str],
        enqueued_pages: int,
    ) -> CrawlStats:
        succeeded = sum(1 for node in results if node.success)
        return cls(
            crawled_pages=len(results),
            succeeded_pages=succeeded,
            failed_pages=len(results) - succeeded,
            enqueued_pages=enqueued_pages,
            visited_pages=len(visited),
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "crawled_pages": self.crawled_pages,
            "succeeded_pages": self.succeeded_pages,
            "failed_pages": self.failed_pages,
            "enqueued_pages": self.enqueued_pages,
            "visited_pages": self.visited_pages,
        }


@dataclass
class CrawlResult:
    """Summary of a finished crawl run."""

    results: List[CrawlNode]
    stats: CrawlStats

    def to_dict(self, include_markdown: bool = True) -> Dict[str, Any]:
        return {
            "results": [n.to_dict(include_markdown=include_markdown) for n in self.results],
            "stats": self.stats.to_dict(),
        }


def _as_number(value: Any) -> float:
    """Coerce a JSON number to ``float``; anything else becomes NaN."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return math.nan
    return float(value)


def _as_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


@dataclass
class StateSnapshot:
    """Self-contained crawl state emitted at checkpoints.

    A pure value: it never references live driver structures, so callers
    may serialize, mutate or keep it indefinitely. Consumed at most once,
    as ``initial_state`` of a later run.
    """

    frontier: List[QueueItem] = field(default_factory=list)
    visited: List[str] = field(default_factory=list)
    results: List[CrawlNode] = field(default_factory=list)
    enqueued_pages: float = 0
    completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frontier": [item.to_dict() for item in self.frontier],
            "visited": list(self.visited),
            "results": [node.to_dict() for node in self.results],
            "enqueued_pages": self.enqueued_pages,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: Any) -> StateSnapshot:
        """Build a snapshot from decoded JSON without judging its contents.

        Only the structure is checked here: entries that are not mappings
        are skipped and non-numeric numbers become NaN. URL validation,
        depth clamping and the rest happen in ``CrawlGraph.restore()``.
        """
        if not isinstance(data, Mapping):
            return cls()

        frontier: List[QueueItem] = []
        for entry in _as_list(data.get("frontier")):
            if not isinstance(entry, Mapping):
                continue
            frontier.append(
                QueueItem(
                    url=entry.get("url"),
                    depth=_as_number(entry.get("depth")),
                    score=_as_number(entry.get("score")),
                    parent_url=_as_text(entry.get("parent_url")),
                    anchor_text=_as_text(entry.get("anchor_text")),
                )
            )

        results: List[CrawlNode] = []
        for entry in _as_list(data.get("results")):
            if not isinstance(entry, Mapping):
                continue
            depth = _as_number(entry.get("depth"))
            score = _as_number(entry.get("score"))
            links = _as_number(entry.get("links_discovered"))
            results.append(
                CrawlNode(
                    url=entry.get("url"),
                    depth=int(depth) if math.isfinite(depth) else 0,
                    score=score if math.isfinite(score) else 0.0,
                    success=entry.get("success") is True,
                    parent_url=_as_text(entry.get("parent_url")),
                    title=_as_text(entry.get("title")),
                    markdown=_as_text(entry.get("markdown")),
                    method=_as_text(entry.get("method")),
                    links_discovered=int(links) if math.isfinite(links) else 0,
                    error=_as_text(entry.get("error")),
                )
            )

        visited = _as_list(data.get("visited"))
        return cls(
            frontier=frontier,
            visited=[v for v in visited if isinstance(v, str)],
            results=results,
            enqueued_pages=_as_number(data.get("enqueued_pages")),
            completed=data.get("completed") is True,
        )


def _clamp_depth(value: Any, max_depth: int) -> int:
    depth = _as_number(value)
    if not math.isfinite(depth):
        depth = 0
    return max(0, min(max_depth, math.floor(depth)))


class CrawlGraph:
    """Per-run crawl state: visited set, results and enqueued counter.

    One graph serves exactly one run; nothing here is module-level, so
    independent runs never share state.

    Args:
        seed_url: Normalized seed URL.
        max_depth: Maximum crawl depth (already clamped to ``>= 0``, may be ``inf``).
        max_pages: Page budget (already clamped to ``>= 1``, may be ``inf``).
    """

    def __init__(self, seed_url: str, max_depth: int, max_pages: int) -> None:
        self.seed_url = seed_url
        self.seed_host = get_host(seed_url)
        self.max_depth = max_depth
        self.max_pages = max_pages
        self.visited: Set[str] = set()
        self.results: List[CrawlNode] = []
        self.enqueued_pages = 0

    # ------------------------------------------------------------------
    # Initialization / resume
    # ------------------------------------------------------------------

    def restore(self, initial_state: Optional[StateSnapshot] = None) -> List[QueueItem]:
        """Initialize the graph and return the starting frontier items.

        Without *initial_state* the frontier is just the seed at depth 0.
        With one, every part of the snapshot is sanitized:

        * frontier items with an unparsable URL are dropped; depth is
          floored and clamped to ``[0, max_depth]`` (non-finite -> 0);
          non-finite scores become 0; blank anchor text is dropped;
        * results are truncated to ``max_pages`` and entries with an
          unparsable URL are discarded;
        * visited = valid visited entries + frontier URLs + result URLs
          + the seed;
        * an empty frontier with no results is re-seeded;
        * ``enqueued_pages`` never drops below what the restored state
          actually holds (and is at least 1).
        """
        self.visited = set()
        self.results = []

        if initial_state is None:
            self.visited.add(self.seed_url)
            self.enqueued_pages = 1
            return [QueueItem(url=self.seed_url, depth=0, score=0.0)]

        frontier = self._normalize_frontier(initial_state.frontier)

        for raw in initial_state.visited or ():
            normalized = normalize_url(raw)
            if normalized:
                self.visited.add(normalized)
        for item in frontier:
            self.visited.add(item.url)
        restored = list(initial_state.results or ())
        if len(restored) > self.max_pages:
            restored = restored[: int(self.max_pages)]
        for node in restored:
            normalized = normalize_url(node.url)
            if not normalized:
                continue
            self.results.append(replace(node, url=normalized))
            self.visited.add(normalized)

        self.visited.add(self.seed_url)

        if not frontier and not self.results:
            frontier.append(QueueItem(url=self.seed_url, depth=0, score=0.0))

        provided = _as_number(initial_state.enqueued_pages)
        self.enqueued_pages = max(
            math.floor(provided) if math.isfinite(provided) else 0,
            len(self.visited),
            len(frontier) + len(self.results),
            1,
        )
        return frontier

    def _normalize_frontier(self, items: Optional[Iterable[QueueItem]]) -> List[QueueItem]:
        normalized: List[QueueItem] = []
        for item in items or ():
            url = normalize_url(item.url)
            if not url:
                continue
            parent_url = normalize_url(item.parent_url) if item.parent_url else None
            anchor_text = item.anchor_text.strip() if isinstance(item.anchor_text, str) else ""
            score = _as_number(item.score)
            normalized.append(
                QueueItem(
                    url=url,
                    depth=_clamp_depth(item.depth, self.max_depth),
                    score=score if math.isfinite(score) else 0.0,
                    parent_url=parent_url,
                    anchor_text=anchor_text or None,
                )
            )
        return normalized

    # ------------------------------------------------------------------
    # Mutation helpers
    # ------------------------------------------------------------------

    def is_visited(self, url: str) -> bool:
        """Check whether *url* has ever been enqueued in this run."""
        return url in self.visited

    def claim(self, url: str) -> None:
        """Mark a discovered URL as visited and count it as enqueued."""
        self.visited.add(url)
        self.enqueued_pages += 1

    def record(self, node: CrawlNode) -> None:
        """Append a finished node to the result list."""
        self.results.append(node)

    @property
    def budget_exhausted(self) -> bool:
        return len(self.results) >= self.max_pages

    # ------------------------------------------------------------------
    # Snapshots & stats
    # ------------------------------------------------------------------

    def snapshot(self, frontier: Iterable[QueueItem], completed: bool) -> StateSnapshot:
        """Deep-copy the current state into a ``StateSnapshot``."""
        return StateSnapshot(
            frontier=[item.copy() for item in frontier],
            visited=sorted(self.visited),
            results=[replace(node) for node in self.results],
            enqueued_pages=self.enqueued_pages,
            completed=completed,
        )

    def stats(self) -> CrawlStats:
        return CrawlStats.from_results(self.results, self.visited, self.enqueued_pages)

    def result(self) -> CrawlResult:
        return CrawlResult(results=list(self.results), stats=self.stats())
