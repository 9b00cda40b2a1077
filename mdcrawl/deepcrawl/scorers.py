"""URL relevance scorers for best-first crawling.

Custom scorers implement the ``UrlScorer`` protocol (structural subtyping,
no inheritance required): a single ``score(url, context)`` method. A
scorer may return a number or an awaitable resolving to one.
"""
from __future__ import annotations

import inspect
import math
from dataclasses import dataclass
from typing import Awaitable, Iterable, List, Optional, Protocol, Union, runtime_checkable


@dataclass(frozen=True)
class UrlScoreContext:
    """Context handed to a scorer for one candidate link."""

    depth: int
    parent_url: Optional[str] = None
    anchor_text: Optional[str] = None


@runtime_checkable
class UrlScorer(Protocol):
    """Protocol for anything able to rate a candidate URL."""

    def score(
        self, url: str, context: UrlScoreContext
    ) -> Union[float, Awaitable[float]]:
        """Return the relevance of *url*; higher is crawled first."""
        ...


async def resolve_score(
    scorer: Optional[UrlScorer], url: str, context: UrlScoreContext
) -> float:
    """Score *url* with *scorer*, awaiting it when needed; no scorer means ``0``."""
    if scorer is None:
        return 0.0
    value = scorer.score(url, context)
    if inspect.isawaitable(value):
        value = await value
    return float(value)


class KeywordUrlScorer:
    """Count keyword hits in ``"<url> <anchor text>"`` (case-insensitive).

    Args:
        keywords: Keywords to look for; trimmed, lowercased, blanks dropped.
        weight: Multiplier applied to the hit count (non-finite means ``1``).
    """

    def __init__(self, keywords: Iterable[str], weight: float = 1.0) -> None:
        cleaned = [k.strip().lower() for k in keywords if isinstance(k, str)]
        self.keywords: List[str] = [k for k in cleaned if k]
        try:
            weight = float(weight)
        except (TypeError, ValueError):
            weight = 1.0
        self.weight = weight if math.isfinite(weight) else 1.0

    def score(self, url: str, context: UrlScoreContext) -> float:
        if not self.keywords:
            return 0.0
        target = f"{url} {context.anchor_text or ''}".lower()
        hits = sum(1 for keyword in self.keywords if keyword in target)
        return hits * self.weight

    def __repr__(self) -> str:
        return f"KeywordUrlScorer(keywords={self.keywords!r}, weight={self.weight!r})"


class CompositeUrlScorer:
    """Sum the scores of several child scorers."""

    def __init__(self, scorers: Iterable[UrlScorer]) -> None:
        self.scorers: List[UrlScorer] = list(scorers)

    def score(self, url: str, context: UrlScoreContext) -> Union[float, Awaitable[float]]:
        """Sum child scores in order, switching to async at the first awaitable.

        Children are called one at a time, so a failing child leaves no
        pending coroutine behind.
        """
        total = 0.0
        for index, scorer in enumerate(self.scorers):
            value = scorer.score(url, context)
            if inspect.isawaitable(value):
                return self._finish(total, value, self.scorers[index + 1:], url, context)
            total += value
        return total

    @staticmethod
    async def _finish(
        total: float,
        pending: Awaitable[float],
        remaining: List[UrlScorer],
        url: str,
        context: UrlScoreContext,
    ) -> float:
        total += await pending
        for scorer in remaining:
            value = scorer.score(url, context)
            if inspect.isawaitable(value):
                value = await value
            total += value
        return total

    def __repr__(self) -> str:
        return f"CompositeUrlScorer(scorers={self.scorers!r})"
