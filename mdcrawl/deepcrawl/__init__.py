"""
Deep crawl engine.

Breadth-first and best-first traversal over hyperlinked pages with
composable admission filters, pluggable URL scoring and checkpoint/resume.
"""
from .url_utils import normalize_url, get_host, is_same_host
from .link_discoverer import DiscoveredLink, LinkDiscoverer, extract_links
from .filters import (
    ContentTypeFilter,
    DomainFilter,
    FilterChain,
    UrlFilter,
    UrlFilterContext,
    UrlPatternFilter,
)
from .scorers import (
    CompositeUrlScorer,
    KeywordUrlScorer,
    UrlScoreContext,
    UrlScorer,
)
from .crawl_graph import (
    CrawlGraph,
    CrawlNode,
    CrawlResult,
    CrawlStats,
    QueueItem,
    StateSnapshot,
)
from .crawl_strategy import BestFirstStrategy, BFSStrategy, CrawlStrategy
from .crawler import (
    FILTERED_ERROR,
    CrawlEngine,
    CrawlPage,
    FetchContext,
    run_best_first_crawl,
    run_bfs_crawl,
)


__all__ = (
    "normalize_url",
    "get_host",
    "is_same_host",
    "DiscoveredLink",
    "LinkDiscoverer",
    "extract_links",
    "ContentTypeFilter",
    "DomainFilter",
    "FilterChain",
    "UrlFilter",
    "UrlFilterContext",
    "UrlPatternFilter",
    "CompositeUrlScorer",
    "KeywordUrlScorer",
    "UrlScoreContext",
    "UrlScorer",
    "CrawlGraph",
    "CrawlNode",
    "CrawlResult",
    "CrawlStats",
    "QueueItem",
    "StateSnapshot",
    "BestFirstStrategy",
    "BFSStrategy",
    "CrawlStrategy",
    "FILTERED_ERROR",
    "CrawlEngine",
    "CrawlPage",
    "FetchContext",
    "run_best_first_crawl",
    "run_bfs_crawl",
)
