"""Admission filters for the deep crawler.

A ``UrlFilter`` is any callable ``(url, context) -> bool`` (or an
awaitable resolving to ``bool``). Filters are combined in a
:class:`FilterChain`, an immutable ordered list evaluated with
short-circuiting: the first filter returning ``False`` rejects the URL and
later filters are not invoked.

Built-in filters:

* :class:`UrlPatternFilter`: shell-style wildcard patterns (``*``, ``?``).
* :class:`DomainFilter`: allow/block lists of hostnames, block wins.
* :class:`ContentTypeFilter`: substring match on the fetched content type.
"""
from __future__ import annotations

import inspect
import re
from dataclasses import dataclass
from typing import (
    Awaitable,
    Callable,
    Iterable,
    List,
    Optional,
    Pattern,
    Tuple,
    Union,
)
from urllib.parse import urlsplit


@dataclass(frozen=True)
class UrlFilterContext:
    """Information available to a filter when judging a URL.

    Attributes:
        url: The URL under evaluation.
        depth: Depth the URL would be (or was) crawled at.
        parent_url: URL of the page that linked to it, if any.
        seed_host: ``host[:port]`` of the crawl seed.
        content_type: Fetched content type; ``None`` before the fetch.
    """

    url: str
    depth: int
    seed_host: str
    parent_url: Optional[str] = None
    content_type: Optional[str] = None


UrlFilter = Callable[[str, UrlFilterContext], Union[bool, Awaitable[bool]]]


class _Link:
    """Cons cell of the persistent filter list (points to the previous filter)."""

    __slots__ = ("filter", "prev")

    def __init__(self, filter_: UrlFilter, prev: Optional[_Link]) -> None:
        self.filter = filter_
        self.prev = prev


class FilterChain:
    """Ordered, immutable list of URL filters.

    ``add()`` returns a new chain sharing the existing cells with the
    original, so a base chain can be extended per run without copying and
    without ever changing the behaviour of the base chain.

    Args:
        filters: Initial filters, evaluated in the given order.
    """

    __slots__ = ("_tail", "_size", "_ordered")

    def __init__(self, filters: Optional[Iterable[UrlFilter]] = None) -> None:
        tail: Optional[_Link] = None
        size = 0
        for filter_ in filters or ():
            tail = _Link(filter_, tail)
            size += 1
        self._tail = tail
        self._size = size
        self._ordered: Optional[Tuple[UrlFilter, ...]] = None

    @classmethod
    def _from_tail(cls, tail: Optional[_Link], size: int) -> FilterChain:
        chain = cls.__new__(cls)
        chain._tail = tail
        chain._size = size
        chain._ordered = None
        return chain

    def add(self, filter_: UrlFilter) -> FilterChain:
        """Return a new chain with *filter_* appended; ``self`` is untouched."""
        return FilterChain._from_tail(_Link(filter_, self._tail), self._size + 1)

    @property
    def filters(self) -> Tuple[UrlFilter, ...]:
        """Filters in evaluation order."""
        if self._ordered is None:
            items: List[UrlFilter] = []
            cell = self._tail
            while cell is not None:
                items.append(cell.filter)
                cell = cell.prev
            items.reverse()
            self._ordered = tuple(items)
        return self._ordered

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        return f"FilterChain(filters={list(self.filters)!r})"

    async def test(self, url: str, context: UrlFilterContext) -> bool:
        """Evaluate the filters in order, stopping at the first rejection.

        Returns:
            ``True`` if the chain is empty or every filter admits *url*.
        """
        for filter_ in self.filters:
            allowed = filter_(url, context)
            if inspect.isawaitable(allowed):
                allowed = await allowed
            if not allowed:
                return False
        return True


def _wildcard_to_regex(pattern: str) -> Pattern[str]:
    parts = []
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


class UrlPatternFilter:
    """Admit URLs matching any of a list of wildcard patterns.

    Patterns are matched case-insensitively against the whole URL; ``*``
    matches any run of characters and ``?`` exactly one. Blank patterns
    are ignored and an empty pattern list admits everything.
    """

    def __init__(self, patterns: Iterable[str]) -> None:
        cleaned = [p.strip() for p in patterns if isinstance(p, str)]
        self.patterns: List[str] = [p for p in cleaned if p]
        self._compiled = [_wildcard_to_regex(p) for p in self.patterns]

    def __call__(self, url: str, context: UrlFilterContext) -> bool:
        if not self._compiled:
            return True
        return any(regex.fullmatch(url) for regex in self._compiled)

    def __repr__(self) -> str:
        return f"UrlPatternFilter(patterns={self.patterns!r})"


def _normalize_host(host: str) -> str:
    return host.strip().lower().rstrip(".")


def normalize_domain(domain: str) -> str:
    """Reduce a configured domain (``"https://Docs.Example.com:443/x"``) to a hostname."""
    trimmed = domain.strip() if isinstance(domain, str) else ""
    if not trimmed:
        return ""
    candidate = trimmed if "://" in trimmed else f"https://{trimmed}"
    try:
        hostname = urlsplit(candidate).hostname
    except ValueError:
        hostname = None
    if not hostname:
        hostname = trimmed.split("://", 1)[-1].split("/", 1)[0].split(":", 1)[0]
    return _normalize_host(hostname)


def _matches_domain(hostname: str, domain: str) -> bool:
    return hostname == domain or hostname.endswith(f".{domain}")


class DomainFilter:
    """Admit URLs by hostname using allow and block lists.

    A URL is rejected when its host cannot be parsed or matches a blocked
    domain; otherwise it is admitted when the allow list is empty or the
    host matches an allowed domain. A domain entry also matches its
    subdomains. The block list always takes precedence.
    """

    def __init__(
        self,
        allow_domains: Optional[Iterable[str]] = None,
        block_domains: Optional[Iterable[str]] = None,
    ) -> None:
        self.allow_domains = [d for d in map(normalize_domain, allow_domains or ()) if d]
        self.block_domains = [d for d in map(normalize_domain, block_domains or ()) if d]

    def __call__(self, url: str, context: UrlFilterContext) -> bool:
        try:
            hostname = urlsplit(url).hostname
        except (ValueError, TypeError, AttributeError):
            return False
        if not hostname:
            return False
        host = _normalize_host(hostname)
        if any(_matches_domain(host, d) for d in self.block_domains):
            return False
        if not self.allow_domains:
            return True
        return any(_matches_domain(host, d) for d in self.allow_domains)

    def __repr__(self) -> str:
        return (
            f"DomainFilter(allow_domains={self.allow_domains!r}, "
            f"block_domains={self.block_domains!r})"
        )


class ContentTypeFilter:
    """Admit pages whose content type contains an allowed type.

    Matching is a case-insensitive substring test, so ``text/html`` admits
    ``Text/HTML; charset=utf-8``. A missing content type (not fetched yet)
    is admitted, as is everything when no types are configured.
    """

    def __init__(self, allowed_types: Iterable[str]) -> None:
        cleaned = [t.strip().lower() for t in allowed_types if isinstance(t, str)]
        self.allowed_types: List[str] = [t for t in cleaned if t]

    def __call__(self, url: str, context: UrlFilterContext) -> bool:
        if not self.allowed_types or not context.content_type:
            return True
        lower = context.content_type.lower()
        return any(allowed in lower for allowed in self.allowed_types)

    def __repr__(self) -> str:
        return f"ContentTypeFilter(allowed_types={self.allowed_types!r})"
