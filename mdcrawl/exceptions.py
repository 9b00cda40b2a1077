"""Exceptions raised by the MDCrawl deep-crawl engine."""


class CrawlError(Exception):
    """Base class for every deep-crawl error."""


class InvalidSeedError(CrawlError, ValueError):
    """The seed URL could not be normalized to an http(s) URL."""

    def __init__(self, seed: object) -> None:
        self.seed = seed
        super().__init__(f"Invalid seed URL: {seed!r}")


class CrawlAborted(CrawlError):
    """The crawl was stopped through its cancellation signal.

    Distinct from ordinary page failures, which never escape the driver.
    """

    def __init__(self, message: str = "aborted") -> None:
        super().__init__(message)


class CheckpointError(CrawlError):
    """Checkpoint storage could not honour a request."""


class CheckpointNotFound(CheckpointError):
    """A resume was requested for a crawl id with no stored snapshot."""

    def __init__(self, crawl_id: str) -> None:
        self.crawl_id = crawl_id
        super().__init__(f"No checkpoint stored for crawl_id={crawl_id!r}")
