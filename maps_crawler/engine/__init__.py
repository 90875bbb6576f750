"""Engine components: browser pool → discovery → partition → workers."""

from .browser_pool import BrowserPool, PoolStats
from .dedup import ResultLedger
from .discovery import ListingDiscoverer, parse_listing_urls
from .extractor import PageExtractor, PlacePageExtractor, parse_place_html
from .partition import partition
from .session import BrowserSession, PlaywrightBrowserFactory, RenderSession, SessionFactory
from .worker import ExtractionWorker

__all__ = [
    "BrowserPool",
    "BrowserSession",
    "ExtractionWorker",
    "ListingDiscoverer",
    "PageExtractor",
    "PlacePageExtractor",
    "PlaywrightBrowserFactory",
    "PoolStats",
    "RenderSession",
    "ResultLedger",
    "SessionFactory",
    "parse_listing_urls",
    "parse_place_html",
    "partition",
]
