"""DeepCrawlService: runs validated deep crawl jobs.

Turns a ``DeepCrawlRequest`` into a configured ``CrawlEngine`` run, wiring
checkpoint persistence and resume through a ``CheckpointStore``. The page
fetcher is supplied by the caller; this module never fetches on its own.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional, Union

from ..exceptions import CheckpointNotFound
from .checkpoint import CheckpointStore
from .crawl_graph import StateSnapshot
from .crawler import CrawlEngine, PageFetcher, ResultCallback
from .models import DeepCrawlRequest, DeepCrawlResponse


class DeepCrawlService:
    """Executes deep crawl requests against a page fetcher.

    Args:
        fetch_fn: Async page fetcher handed to every ``CrawlEngine``.
        store: Checkpoint store; a default ``CheckpointStore`` is created
            lazily the first time a request carries a ``crawl_id``.
        logger: Optional logger; one is created if not provided.
    """

    def __init__(
        self,
        fetch_fn: PageFetcher,
        store: Optional[CheckpointStore] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._fetch_fn = fetch_fn
        self._store = store
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @property
    def store(self) -> CheckpointStore:
        if self._store is None:
            self._store = CheckpointStore()
        return self._store

    async def crawl(
        self,
        request: Union[DeepCrawlRequest, Mapping[str, Any]],
        on_result: Optional[ResultCallback] = None,
        signal: Any = None,
    ) -> DeepCrawlResponse:
        """Run one deep crawl job.

        Args:
            request: A ``DeepCrawlRequest`` or its raw mapping form.
            on_result: Called with every finished node (e.g. for streaming).
            signal: Optional ``asyncio.Event`` used to abort the run.

        Returns:
            A ``DeepCrawlResponse`` with results and stats.

        Raises:
            pydantic.ValidationError: A raw *request* is invalid.
            CheckpointNotFound: Resume requested but nothing is stored.
            CrawlAborted: *signal* was set during the run.
        """
        if not isinstance(request, DeepCrawlRequest):
            request = DeepCrawlRequest.model_validate(request)

        checkpoint = request.checkpoint
        crawl_id = checkpoint.crawl_id

        initial_state: Optional[StateSnapshot] = None
        if checkpoint.resume:
            initial_state = await self.store.load(crawl_id)
            if initial_state is None:
                raise CheckpointNotFound(crawl_id)

        on_checkpoint = None
        if crawl_id:
            store = self.store
            ttl = checkpoint.ttl_seconds

            async def on_checkpoint(snapshot: StateSnapshot) -> None:
                await store.save(crawl_id, snapshot, ttl=ttl)

        engine = CrawlEngine(
            self._fetch_fn,
            strategy=request.strategy,
            filter_chain=request.build_filter_chain(),
            url_scorer=request.build_scorer(),
            score_threshold=request.scorer.score_threshold,
            include_external=request.include_external,
            checkpoint_every=checkpoint.snapshot_interval,
            on_checkpoint=on_checkpoint,
            on_result=on_result,
        )

        loop = asyncio.get_running_loop()
        start_time = loop.time()
        result = await engine.run(
            request.seed,
            max_depth=request.max_depth,
            max_pages=request.max_pages,
            initial_state=initial_state,
            signal=signal,
        )
        elapsed = loop.time() - start_time

        self.logger.info(
            "Deep crawl finished  crawl_id=%s strategy=%s resumed=%s pages=%d elapsed=%.1fs",
            crawl_id, request.strategy, initial_state is not None,
            result.stats.crawled_pages, elapsed,
        )

        include_markdown = request.output.include_markdown
        return DeepCrawlResponse(
            crawl_id=crawl_id,
            resumed=initial_state is not None,
            strategy=request.strategy,
            results=[
                node.to_dict(include_markdown=include_markdown)
                for node in result.results
            ],
            stats=result.stats.to_dict(),
        )
