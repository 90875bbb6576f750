"""Error taxonomy for the crawl orchestration layer."""

from __future__ import annotations


class CrawlerError(Exception):
    """Base class for errors raised by maps-crawler."""


class DiscoveryFailed(CrawlerError):
    """Navigation or timeout while collecting listing URLs."""


class ExtractionItemFailed(CrawlerError):
    """A single place page could not be extracted. Absorbed by workers."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{reason}: {url}")
        self.url = url
        self.reason = reason


class OrchestrationFailed(CrawlerError):
    """Fan-in of the extraction workers failed."""


class OverCapacity(CrawlerError):
    """Admission rejected because all slots are taken."""

    def __init__(self, active: int, max_concurrent: int) -> None:
        super().__init__(f"Too many concurrent requests ({active}/{max_concurrent})")
        self.active = active
        self.max_concurrent = max_concurrent


class JobStateError(CrawlerError):
    """A job was asked to leave a terminal state."""


__all__ = [
    "CrawlerError",
    "DiscoveryFailed",
    "ExtractionItemFailed",
    "JobStateError",
    "OrchestrationFailed",
    "OverCapacity",
]
