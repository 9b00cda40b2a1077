"""CrawlEngine: deep crawl orchestrator.

Coordinates ``CrawlGraph`` (run state), ``CrawlStrategy`` (frontier
order), ``LinkDiscoverer`` (link extraction), ``FilterChain`` (admission),
``UrlScorer`` (relevance) and a caller-provided ``fetch_fn`` (page
retrieval) to perform breadth-first or best-first crawls.

A run is strictly sequential: the fetcher, every filter and scorer call
and the ``on_result`` / ``on_checkpoint`` callbacks are awaited in line
before the loop advances. Cancellation is cooperative through an
``asyncio.Event`` checked at the top of each iteration.
"""
from __future__ import annotations

import inspect
import logging
import math
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Mapping,
    Optional,
    Type,
    Union,
)

from ..exceptions import CrawlAborted, InvalidSeedError
from .crawl_graph import CrawlGraph, CrawlNode, CrawlResult, QueueItem, StateSnapshot
from .crawl_strategy import STRATEGIES, BestFirstStrategy, BFSStrategy, CrawlStrategy
from .filters import FilterChain, UrlFilterContext
from .link_discoverer import LinkDiscoverer
from .scorers import UrlScoreContext, UrlScorer, resolve_score
from .url_utils import is_same_host, normalize_url


FILTERED_ERROR = "Filtered by active filter chain."


@dataclass
class CrawlPage:
    """A fetched page as returned by the page fetcher.

    Attributes:
        url: Final URL after redirects (falls back to the requested URL).
        html: Page HTML used for link discovery.
        title: Page title, if known.
        markdown: Converted Markdown, if the fetcher produced it.
        method: How the page was retrieved (static, browser...).
        content_type: Response content type, seen by page-level filters.
    """

    url: str
    html: str = ""
    title: Optional[str] = None
    markdown: Optional[str] = None
    method: Optional[str] = None
    content_type: Optional[str] = None


@dataclass(frozen=True)
class FetchContext:
    """Context passed to the fetcher along with the URL."""

    depth: int
    parent_url: Optional[str] = None
    signal: Any = None


PageFetcher = Callable[[str, FetchContext], Awaitable[Any]]
ResultCallback = Callable[[CrawlNode], Union[None, Awaitable[None]]]
CheckpointCallback = Callable[[StateSnapshot], Union[None, Awaitable[None]]]
StrategySpec = Union[str, Type[CrawlStrategy], Callable[[], CrawlStrategy]]


def _page_field(page: Any, name: str) -> Any:
    """Read *name* from a fetched page given as an object or a mapping."""
    if isinstance(page, Mapping):
        return page.get(name)
    return getattr(page, name, None)


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _finite_score(score: float) -> float:
    return score if math.isfinite(score) else 0.0


def _error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


def _limit(value: float, low: int) -> Union[int, float]:
    """Clamp a depth or page limit to ``>= low``; ``inf`` means unlimited, NaN means *low*."""
    value = max(low, value)
    return math.floor(value) if math.isfinite(value) else value


class CrawlEngine:
    """Orchestrates deep crawls over a page fetcher.

    Delegates:
      - Page retrieval  -> ``fetch_fn`` callable (provided by the caller)
      - Link discovery  -> ``LinkDiscoverer``
      - Traversal order -> ``CrawlStrategy``

    Args:
        fetch_fn: Async callable ``(url, FetchContext) -> page``. The page
            exposes ``url``, ``html`` and optionally ``title``,
            ``markdown``, ``method`` and ``content_type`` (attributes or
            mapping keys). Raised exceptions become failed nodes.
        strategy: ``"bfs"`` (default), ``"best_first"``, or a factory
            returning a fresh ``CrawlStrategy`` for each run.
        filter_chain: Admission filters for pages and discovered links;
            defaults to an empty (always-allow) chain.
        url_scorer: Relevance scorer; without one every score is ``0``.
        score_threshold: Discovered links scoring below it are dropped.
        include_external: Follow links outside the seed's host.
        checkpoint_every: Emit a checkpoint every N processed pages;
            non-positive or ``None`` emits after every page.
        on_checkpoint: Receives each ``StateSnapshot``; may be async.
        on_result: Receives each finished ``CrawlNode``; may be async.
        link_discoverer: Override the default ``a[href]`` discoverer.
        logger: Optional logger; one is created if not provided.
    """

    def __init__(
        self,
        fetch_fn: PageFetcher,
        strategy: StrategySpec = BFSStrategy.name,
        filter_chain: Optional[FilterChain] = None,
        url_scorer: Optional[UrlScorer] = None,
        score_threshold: Optional[float] = None,
        include_external: bool = False,
        checkpoint_every: Optional[int] = None,
        on_checkpoint: Optional[CheckpointCallback] = None,
        on_result: Optional[ResultCallback] = None,
        link_discoverer: Optional[LinkDiscoverer] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._fetch_fn = fetch_fn
        if isinstance(strategy, str):
            try:
                strategy = STRATEGIES[strategy]
            except KeyError as exc:
                raise ValueError(
                    f"Unknown crawl strategy {strategy!r}; "
                    f"expected one of {sorted(STRATEGIES)}"
                ) from exc
        self._strategy_factory = strategy
        self.filter_chain = filter_chain or FilterChain()
        self.url_scorer = url_scorer
        self.score_threshold = (
            float("-inf") if score_threshold is None else float(score_threshold)
        )
        self.include_external = include_external
        self.checkpoint_every = (
            math.floor(checkpoint_every)
            if checkpoint_every and checkpoint_every > 0
            else 0
        )
        self.on_checkpoint = on_checkpoint
        self.on_result = on_result
        self._discoverer = link_discoverer or LinkDiscoverer()
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(
        self,
        seed_url: str,
        max_depth: int = 1,
        max_pages: int = 10,
        initial_state: Optional[StateSnapshot] = None,
        signal: Any = None,
    ) -> CrawlResult:
        """Execute the crawl and return its results and statistics.

        Args:
            seed_url: Starting URL; must normalize to an http(s) URL.
            max_depth: Maximum crawl depth (0 = only the seed), clamped to
                >= 0; ``math.inf`` means unlimited.
            max_pages: Page budget, clamped to >= 1; ``math.inf`` means
                unlimited.
            initial_state: Snapshot of an earlier run to resume from.
            signal: Optional ``asyncio.Event``; once set the run raises
                ``CrawlAborted`` at the next iteration.

        Returns:
            A ``CrawlResult`` with the result nodes in completion order.

        Raises:
            InvalidSeedError: *seed_url* is not a valid http(s) URL.
            CrawlAborted: *signal* was set before the crawl finished.
        """
        normalized_seed = normalize_url(seed_url)
        if normalized_seed is None:
            raise InvalidSeedError(seed_url)

        graph = CrawlGraph(
            normalized_seed,
            max_depth=_limit(max_depth, 0),
            max_pages=_limit(max_pages, 1),
        )
        frontier = graph.restore(initial_state)
        strategy = self._strategy_factory()
        fresh = initial_state is None or not initial_state.results
        strategy.start(frontier, normalized_seed, fresh)

        if initial_state is not None:
            self.logger.info(
                "Resuming crawl  url=%s frontier=%d results=%d visited=%d",
                normalized_seed, len(strategy), len(graph.results), len(graph.visited),
            )
        self.logger.info(
            "Starting crawl  url=%s strategy=%s depth=%s max_pages=%s",
            normalized_seed, strategy.name, graph.max_depth, graph.max_pages,
        )

        processed = 0
        while len(strategy) > 0 and not graph.budget_exhausted:
            if signal is not None and signal.is_set():
                self.logger.info("Crawl aborted  url=%s processed=%d", normalized_seed, processed)
                raise CrawlAborted()
            item = strategy.next()
            node = await self._process_item(item, graph, strategy, signal)
            graph.record(node)
            processed += 1
            if self.on_result is not None:
                await _resolve(self.on_result(node))
            await self._maybe_checkpoint(graph, strategy, processed, completed=False)
            strategy.compact()

        await self._maybe_checkpoint(graph, strategy, processed, completed=True)

        result = graph.result()
        self.logger.info(
            "Crawl complete  pages=%d failed=%d enqueued=%d",
            result.stats.crawled_pages, result.stats.failed_pages,
            result.stats.enqueued_pages,
        )
        return result

    # ------------------------------------------------------------------
    # Single-item processing
    # ------------------------------------------------------------------

    async def _process_item(
        self,
        item: QueueItem,
        graph: CrawlGraph,
        strategy: CrawlStrategy,
        signal: Any,
    ) -> CrawlNode:
        self.logger.debug("Fetching  url=%s depth=%d", item.url, item.depth)
        score = _finite_score(item.score)
        try:
            page = await self._fetch_fn(
                item.url,
                FetchContext(depth=item.depth, parent_url=item.parent_url, signal=signal),
            )
            page_url = _page_field(page, "url") or item.url
            title = _page_field(page, "title")
            markdown = _page_field(page, "markdown")
            method = _page_field(page, "method")

            allowed = await self.filter_chain.test(
                item.url,
                UrlFilterContext(
                    url=item.url,
                    depth=item.depth,
                    seed_host=graph.seed_host,
                    parent_url=item.parent_url,
                    content_type=_page_field(page, "content_type"),
                ),
            )
            if not allowed:
                self.logger.debug("Filtered  url=%s", item.url)
                return CrawlNode(
                    url=page_url,
                    parent_url=item.parent_url,
                    depth=item.depth,
                    score=score,
                    success=False,
                    title=title,
                    markdown=markdown,
                    method=method,
                    links_discovered=0,
                    error=FILTERED_ERROR,
                )

            discovered = 0
            if item.depth < graph.max_depth and not graph.budget_exhausted:
                discovered = await self._enqueue_children(
                    item, _page_field(page, "html"), graph, strategy
                )

            return CrawlNode(
                url=page_url,
                parent_url=item.parent_url,
                depth=item.depth,
                score=score,
                success=True,
                title=title,
                markdown=markdown,
                method=method,
                links_discovered=discovered,
            )
        except CrawlAborted:
            raise
        except Exception as exc:  # pylint: disable=W0718
            self.logger.warning("Failed  url=%s error=%s", item.url, exc)
            return CrawlNode(
                url=item.url,
                parent_url=item.parent_url,
                depth=item.depth,
                score=score,
                success=False,
                links_discovered=0,
                error=_error_message(exc),
            )

    async def _enqueue_children(
        self,
        item: QueueItem,
        html: Optional[str],
        graph: CrawlGraph,
        strategy: CrawlStrategy,
    ) -> int:
        """Filter, score and enqueue the links of one page; return how many were added."""
        child_depth = item.depth + 1
        seen_in_page: set[str] = set()
        count = 0
        for link in self._discoverer.discover(html, item.url):
            if graph.is_visited(link.url) or link.url in seen_in_page:
                continue
            if not self.include_external and not is_same_host(graph.seed_url, link.url):
                continue
            keep = await self.filter_chain.test(
                link.url,
                UrlFilterContext(
                    url=link.url,
                    depth=child_depth,
                    seed_host=graph.seed_host,
                    parent_url=item.url,
                ),
            )
            if not keep:
                continue
            score = await resolve_score(
                self.url_scorer,
                link.url,
                UrlScoreContext(
                    depth=child_depth,
                    parent_url=item.url,
                    anchor_text=link.anchor_text,
                ),
            )
            if score < self.score_threshold:
                continue
            seen_in_page.add(link.url)
            graph.claim(link.url)
            strategy.enqueue(
                QueueItem(
                    url=link.url,
                    depth=child_depth,
                    score=score,
                    parent_url=item.url,
                    anchor_text=link.anchor_text,
                )
            )
            count += 1

        if count:
            self.logger.debug("Discovered  count=%d from=%s", count, item.url)
        return count

    # ------------------------------------------------------------------
    # Checkpoints
    # ------------------------------------------------------------------

    async def _maybe_checkpoint(
        self,
        graph: CrawlGraph,
        strategy: CrawlStrategy,
        processed: int,
        completed: bool,
    ) -> None:
        if self.on_checkpoint is None:
            return
        interval = self.checkpoint_every
        if not completed and interval > 0 and processed % interval != 0:
            return
        snapshot = graph.snapshot(strategy.pending(), completed)
        await _resolve(self.on_checkpoint(snapshot))


async def run_bfs_crawl(
    seed_url: str,
    fetch_fn: PageFetcher,
    max_depth: int = 1,
    max_pages: int = 10,
    initial_state: Optional[StateSnapshot] = None,
    signal: Any = None,
    **options: Any,
) -> CrawlResult:
    """Breadth-first crawl from *seed_url*; *options* go to ``CrawlEngine``."""
    engine = CrawlEngine(fetch_fn, strategy=BFSStrategy.name, **options)
    return await engine.run(
        seed_url,
        max_depth=max_depth,
        max_pages=max_pages,
        initial_state=initial_state,
        signal=signal,
    )


async def run_best_first_crawl(
    seed_url: str,
    fetch_fn: PageFetcher,
    max_depth: int = 1,
    max_pages: int = 10,
    initial_state: Optional[StateSnapshot] = None,
    signal: Any = None,
    **options: Any,
) -> CrawlResult:
    """Best-first crawl from *seed_url*; *options* go to ``CrawlEngine``."""
    engine = CrawlEngine(fetch_fn, strategy=BestFirstStrategy.name, **options)
    return await engine.run(
        seed_url,
        max_depth=max_depth,
        max_pages=max_pages,
        initial_state=initial_state,
        signal=signal,
    )
