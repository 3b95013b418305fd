from __future__ import annotations


class CrawlerError(Exception):
    """Base exception for crawl failures."""


class FetchError(CrawlerError):
    """
    Network error, timeout, non-success HTTP status or a challenge page.
    Retryable by the controller up to the configured ceiling.
    """

    def __init__(self, message: str, *, url: str = "", status: int | None = None):
        super().__init__(message)
        self.url = url
        self.status = status


class ParseFailure(CrawlerError):
    """A structured-data block could not be decoded. Recovered where raised."""


class ResolutionFailure(CrawlerError):
    """An href could not be turned into an absolute crawlable URL."""


class RetryExhausted(CrawlerError):
    """A task failed on every allowed attempt. Terminal for that task only."""

    def __init__(self, message: str, *, attempts: int):
        super().__init__(message)
        self.attempts = attempts
