"""
Deep crawl request models.

Pydantic v2 models validating externally supplied deep-crawl jobs, plus
builders turning a validated request into the engine's ``FilterChain`` and
``UrlScorer``. Limits come from ``mdcrawl.conf``.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from ..conf import (
    DEEPCRAWL_DEFAULT_DEPTH,
    DEEPCRAWL_DEFAULT_PAGES,
    DEEPCRAWL_FILTER_ENTRY_MAX,
    DEEPCRAWL_FILTER_LIST_MAX,
    DEEPCRAWL_MAX_DEPTH,
    DEEPCRAWL_MAX_PAGES,
)
from .checkpoint import CRAWL_ID_PATTERN
from .filters import (
    ContentTypeFilter,
    DomainFilter,
    FilterChain,
    UrlPatternFilter,
)
from .scorers import CompositeUrlScorer, KeywordUrlScorer, UrlScorer
from .url_utils import normalize_url


_DOMAIN_RE = re.compile(
    r"^(?:[a-z][a-z0-9+.-]*://)?"
    r"[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?"
    r"(?:\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)*\.?"
    r"(?::\d{1,5})?/?$",
    re.IGNORECASE,
)


def _strict_int(value: Any, name: str, low: int, high: int) -> int:
    """Accept integral numbers only (``2`` or ``2.0``) within ``[low, high]``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{name} must be an integer")
    value = int(value)
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}")
    return value


def _check_entries(values: List[str], name: str) -> List[str]:
    if len(values) > DEEPCRAWL_FILTER_LIST_MAX:
        raise ValueError(
            f"{name} accepts at most {DEEPCRAWL_FILTER_LIST_MAX} entries"
        )
    for entry in values:
        if len(entry) > DEEPCRAWL_FILTER_ENTRY_MAX:
            raise ValueError(
                f"{name} entries must be at most "
                f"{DEEPCRAWL_FILTER_ENTRY_MAX} characters"
            )
    return values


class CrawlFilters(BaseModel):
    """Admission filters of a deep crawl request.

    Args:
        url_patterns: Wildcard patterns; a URL must match one of them.
        allow_domains: Only these domains (and subdomains) are crawled.
        block_domains: These domains are never crawled.
        content_types: Pages must report one of these content types.
    """

    url_patterns: List[str] = Field(default_factory=list)
    allow_domains: List[str] = Field(default_factory=list)
    block_domains: List[str] = Field(default_factory=list)
    content_types: List[str] = Field(default_factory=list)

    @field_validator("url_patterns", "content_types")
    @classmethod
    def validate_entries(cls, value: List[str], info: ValidationInfo) -> List[str]:
        return _check_entries(value, f"filters.{info.field_name}")

    @field_validator("allow_domains", "block_domains")
    @classmethod
    def validate_domains(cls, value: List[str], info: ValidationInfo) -> List[str]:
        _check_entries(value, f"filters.{info.field_name}")
        for entry in value:
            trimmed = entry.strip()
            if trimmed and not _DOMAIN_RE.match(trimmed):
                raise ValueError(
                    f"filters.{info.field_name} contains an invalid domain: {entry!r}"
                )
        return value

    def build_chain(self, base: Optional[FilterChain] = None) -> FilterChain:
        """Compose pattern, domain and content-type filters onto *base*."""
        chain = base or FilterChain()
        if any(p.strip() for p in self.url_patterns):
            chain = chain.add(UrlPatternFilter(self.url_patterns))
        if self.allow_domains or self.block_domains:
            chain = chain.add(DomainFilter(self.allow_domains, self.block_domains))
        if any(t.strip() for t in self.content_types):
            chain = chain.add(ContentTypeFilter(self.content_types))
        return chain


class CrawlScorerConfig(BaseModel):
    """Keyword relevance scoring of a deep crawl request."""

    keywords: List[str] = Field(default_factory=list)
    weight: float = 1.0
    score_threshold: Optional[float] = None

    @field_validator("keywords")
    @classmethod
    def validate_keywords(cls, value: List[str]) -> List[str]:
        return _check_entries(value, "scorer.keywords")

    def build_scorer(self) -> Optional[UrlScorer]:
        keywords = [k for k in self.keywords if k.strip()]
        if not keywords:
            return None
        return CompositeUrlScorer([KeywordUrlScorer(keywords, self.weight)])


class CheckpointConfig(BaseModel):
    """Checkpoint persistence and resume options.

    Args:
        crawl_id: Storage identifier; checkpoints are only saved with one.
        resume: Resume from the stored snapshot of ``crawl_id``.
        snapshot_interval: Save a snapshot every N processed pages.
        ttl_seconds: Expiration of stored snapshots (store default if unset).
    """

    crawl_id: Optional[str] = None
    resume: bool = False
    snapshot_interval: int = Field(default=1, ge=1)
    ttl_seconds: Optional[int] = Field(default=None, ge=1)

    @field_validator("crawl_id")
    @classmethod
    def validate_crawl_id(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if not CRAWL_ID_PATTERN.fullmatch(value):
            raise ValueError("checkpoint.crawl_id contains unsupported characters")
        return value


class CrawlOutput(BaseModel):
    """Shape of the returned result nodes."""

    include_markdown: bool = False


class DeepCrawlRequest(BaseModel):
    """A validated deep crawl job.

    Numeric limits are bounded by ``DEEPCRAWL_MAX_DEPTH`` and
    ``DEEPCRAWL_MAX_PAGES``; integral floats (``2.0``) are accepted,
    fractional ones are not.
    """

    seed: str
    max_depth: int = DEEPCRAWL_DEFAULT_DEPTH
    max_pages: int = DEEPCRAWL_DEFAULT_PAGES
    strategy: Literal["bfs", "best_first"] = "bfs"
    include_external: bool = False
    filters: CrawlFilters = Field(default_factory=CrawlFilters)
    scorer: CrawlScorerConfig = Field(default_factory=CrawlScorerConfig)
    checkpoint: CheckpointConfig = Field(default_factory=CheckpointConfig)
    output: CrawlOutput = Field(default_factory=CrawlOutput)

    @field_validator("seed")
    @classmethod
    def validate_seed(cls, value: str) -> str:
        if normalize_url(value) is None:
            raise ValueError("seed must be an absolute http(s) URL")
        return value.strip()

    @field_validator("max_depth", mode="before")
    @classmethod
    def validate_max_depth(cls, value: Any) -> int:
        return _strict_int(value, "max_depth", 0, DEEPCRAWL_MAX_DEPTH)

    @field_validator("max_pages", mode="before")
    @classmethod
    def validate_max_pages(cls, value: Any) -> int:
        return _strict_int(value, "max_pages", 1, DEEPCRAWL_MAX_PAGES)

    @model_validator(mode="after")
    def validate_resume(self) -> DeepCrawlRequest:
        if self.checkpoint.resume and not self.checkpoint.crawl_id:
            raise ValueError(
                "checkpoint.crawl_id is required when checkpoint.resume is true"
            )
        return self

    def build_filter_chain(self) -> FilterChain:
        return self.filters.build_chain()

    def build_scorer(self) -> Optional[UrlScorer]:
        return self.scorer.build_scorer()


class DeepCrawlResponse(BaseModel):
    """Outcome of a deep crawl job."""

    crawl_id: Optional[str] = None
    resumed: bool = False
    strategy: str
    results: List[Dict[str, Any]] = Field(default_factory=list)
    stats: Dict[str, int] = Field(default_factory=dict)
