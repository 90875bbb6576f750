"""Place page extraction: navigation in Playwright, parsing with selectolax."""

from __future__ import annotations

import re
from typing import Any, Protocol
from urllib.parse import urlparse

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from selectolax.lexbor import LexborHTMLParser, LexborNode

from ..config import ExtractionConfig
from ..errors import ExtractionItemFailed
from ..models import Coordinates, PlaceRecord

SELECTORS = {
    "name": "h1.DUwDvf",
    "address": 'button[data-item-id="address"] .fontBodyMedium',
    "website": 'a[data-item-id="authority"]',
    "website_text": 'a[data-item-id="authority"] .fontBodyMedium',
    "phone": 'button[data-item-id*="phone:tel:"] .fontBodyMedium',
    "review_count": 'div[jsaction="pane.reviewChart.moreReviews"] span',
    "review_avg": 'div[jsaction="pane.reviewChart.moreReviews"] div[role="img"]',
    "category": 'button[jsaction="pane.rating.category"]',
}

_AT_COORDS = re.compile(r"@(-?\d+\.\d+),(-?\d+\.\d+)")
_DATA_COORDS = re.compile(r"!3d(-?\d+\.\d+)!4d(-?\d+\.\d+)")
_PHONE_STRIP = re.compile(r"[^\d+\s()-]")
_RATING = re.compile(r"([\d,.]+)")
_DIGITS = re.compile(r"(\d+)")


class PageExtractor(Protocol):
    """Turn one work item into a record, or ``None`` when it is not a place."""

    async def extract(self, page: Any, url: str) -> PlaceRecord | None: ...


class PlacePageExtractor:
    """Navigate a worker page to a place URL and parse the rendered DOM."""

    def __init__(self, config: ExtractionConfig) -> None:
        self.config = config

    async def extract(self, page: Any, url: str) -> PlaceRecord | None:
        try:
            await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.config.navigation_timeout_ms,
            )
        except PlaywrightError as exc:
            raise ExtractionItemFailed(url, "navigation_failed") from exc
        try:
            await page.wait_for_selector(
                SELECTORS["name"],
                state="visible",
                timeout=self.config.name_timeout_ms,
            )
        except PlaywrightTimeoutError:
            return None
        html = await page.content()
        return parse_place_html(html, url)


def _text(root: LexborHTMLParser, selector: str) -> str | None:
    node = root.css_first(selector)
    if node is None:
        return None
    text = node.text(separator=" ", strip=True)
    return text or None


def normalize_phone(phone: str | None) -> str | None:
    if not phone:
        return None
    cleaned = _PHONE_STRIP.sub("", phone).strip()
    return cleaned or None


def parse_rating(label: str | None) -> float | None:
    if not label:
        return None
    match = _RATING.search(label)
    if not match:
        return None
    try:
        return float(match.group(1).replace(",", ".", 1))
    except ValueError:
        return None


def parse_review_count(text: str | None) -> int | None:
    if not text:
        return None
    match = _DIGITS.search(text.replace(",", ""))
    return int(match.group(1)) if match else None


def parse_coordinates(url: str) -> Coordinates | None:
    match = _AT_COORDS.search(url) or _DATA_COORDS.search(url)
    if not match:
        return None
    return Coordinates(lat=float(match.group(1)), lng=float(match.group(2)))


def _website(root: LexborHTMLParser) -> tuple[str | None, str | None]:
    """Return ``(website, domain)`` from the authority link."""

    anchor: LexborNode | None = root.css_first(SELECTORS["website"])
    if anchor is None:
        return None, None
    label = _text(root, SELECTORS["website_text"])
    href = (anchor.attributes.get("href") or "").strip()
    if href.startswith(("http://", "https://")):
        domain = label or urlparse(href).hostname
        return href, domain
    if label:
        return f"https://www.{label}", label
    return None, None


def _review_count(root: LexborHTMLParser) -> int | None:
    for node in root.css(SELECTORS["review_count"]):
        count = parse_review_count(node.text(strip=True))
        if count is not None:
            return count
    return None


def parse_place_html(html: str, url: str) -> PlaceRecord | None:
    """Build a ``PlaceRecord`` from a rendered place page; ``None`` without a name."""

    root = LexborHTMLParser(html)
    name = (_text(root, SELECTORS["name"]) or "").strip()
    if not name:
        return None
    website, domain = _website(root)
    rating_node = root.css_first(SELECTORS["review_avg"])
    rating = parse_rating(rating_node.attributes.get("aria-label")) if rating_node else None
    return PlaceRecord(
        name=name,
        google_maps_url=url,
        address=_text(root, SELECTORS["address"]),
        website=website,
        domain=domain,
        phone=normalize_phone(_text(root, SELECTORS["phone"])),
        rating=rating,
        reviews=_review_count(root),
        category=_text(root, SELECTORS["category"]),
        coordinates=parse_coordinates(url),
    )


__all__ = [
    "PageExtractor",
    "PlacePageExtractor",
    "SELECTORS",
    "normalize_phone",
    "parse_coordinates",
    "parse_place_html",
    "parse_rating",
    "parse_review_count",
]
