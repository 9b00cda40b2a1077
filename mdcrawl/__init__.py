"""MDCrawl: URL-to-Markdown conversion with deep crawling."""
from .version import (
    __title__,
    __description__,
    __version__,
    __author__,
    __author_email__,
    __license__,
)

__all__ = (
    "__title__",
    "__description__",
    "__version__",
    "__author__",
    "__author_email__",
    "__license__",
)
