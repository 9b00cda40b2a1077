"""Test configuration helpers for the mdcrawl codebase."""
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Ensure the project root is importable as ``mdcrawl`` when running tests
# without installing the package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# navconfig resolves its project root (and the ``env/`` directory) from
# SITE_ROOT; point it at this repository so ``env/.env`` is found.
os.environ.setdefault("SITE_ROOT", str(PROJECT_ROOT))

from mdcrawl.deepcrawl.crawler import CrawlPage  # noqa: E402


class SiteFetcher:
    """In-memory fetcher serving a fixed mapping of URL -> HTML.

    Unknown URLs raise ``LookupError``; every call is recorded in ``calls``.
    """

    def __init__(self, site: Dict[str, str], content_types: Optional[Dict[str, str]] = None):
        self.site = site
        self.content_types = content_types or {}
        self.calls: List[str] = []

    async def __call__(self, url, context):
        self.calls.append(url)
        if url not in self.site:
            raise LookupError(f"Not found: {url}")
        title = url.rsplit("/", 1)[-1] or "home"
        return CrawlPage(
            url=url,
            html=self.site[url],
            title=title,
            markdown=f"# {title}",
            method="static",
            content_type=self.content_types.get(url, "text/html; charset=utf-8"),
        )


def _links(*paths: str) -> str:
    return "".join(f'<a href="{path}">{path.strip("/")}</a>' for path in paths)


# a -> {b, c}, b -> {d}, c -> {d, e}
DIAMOND_SITE = {
    "https://example.com/a": _links("/b", "/c"),
    "https://example.com/b": _links("/d"),
    "https://example.com/c": _links("/d", "/e"),
    "https://example.com/d": "<p>D</p>",
    "https://example.com/e": "<p>E</p>",
}


@pytest.fixture
def diamond_fetcher():
    return SiteFetcher(dict(DIAMOND_SITE))


@pytest.fixture
def site_fetcher():
    """Factory fixture building a ``SiteFetcher`` for a custom site."""
    def _make(site: Dict[str, str], content_types: Optional[Dict[str, str]] = None):
        return SiteFetcher(site, content_types)
    return _make
