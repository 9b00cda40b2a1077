"""Link discovery for the deep crawler.

Extracts ``<a href>`` targets from page HTML, resolves them against the
page URL and returns each distinct (normalized URL, trimmed anchor text)
pair once. Repeated URLs are left for the crawler to deduplicate after
admission, so a later anchor still gets scored when an earlier one is
rejected.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from bs4 import BeautifulSoup

from .url_utils import normalize_url


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveredLink:
    """A candidate child link found on a page.

    Attributes:
        url: Normalized absolute URL.
        anchor_text: Trimmed text of the anchor, ``None`` when empty.
    """

    url: str
    anchor_text: Optional[str] = None


class LinkDiscoverer:
    """Discovers links from HTML pages.

    Args:
        follow_selector: CSS selector for elements to extract links from.
    """

    def __init__(self, follow_selector: str = "a[href]") -> None:
        self.follow_selector = follow_selector

    def discover(self, html: Optional[str], base_url: str) -> List[DiscoveredLink]:
        """Extract and normalize links from *html*.

        Bare fragments without ``<html>``/``<body>`` are accepted. Any
        parse failure yields an empty list instead of an exception.

        Args:
            html: Raw HTML content to parse.
            base_url: URL of the page being parsed, used to resolve
                relative links.

        Returns:
            Distinct ``(url, anchor_text)`` pairs in document order; a URL
            linked with different texts yields one entry per text.
            Non-http(s) schemes (``mailto:``, ``javascript:``) and malformed
            hrefs are dropped.
        """
        if not html or not html.strip():
            return []
        try:
            soup = BeautifulSoup(html, "html.parser")
            elements = soup.select(self.follow_selector)
        except Exception as exc:  # pylint: disable=W0718
            logger.debug("Link extraction failed  url=%s error=%s", base_url, exc)
            return []

        links: dict[DiscoveredLink, None] = {}
        for el in elements:
            href = el.get("href")
            if not href or not isinstance(href, str):
                continue
            normalized = normalize_url(href, base_url)
            if normalized is None:
                continue
            text = el.get_text().strip() or None
            links.setdefault(DiscoveredLink(url=normalized, anchor_text=text), None)

        return list(links)


def extract_links(html: Optional[str], base_url: str) -> List[DiscoveredLink]:
    """Extract anchor links from *html* using the default ``a[href]`` selector."""
    return LinkDiscoverer().discover(html, base_url)
