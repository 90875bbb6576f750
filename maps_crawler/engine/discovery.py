"""Collect place URLs from a search results page by scrolling until stable."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from urllib.parse import quote, urljoin

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from selectolax.lexbor import LexborHTMLParser

from ..config import DiscoveryConfig
from ..errors import DiscoveryFailed
from ..logging_conf import get_logger
from .session import RenderSession


def parse_listing_urls(html: str, base_url: str, selector: str) -> list[str]:
    """Return absolute listing hrefs in first-seen order without duplicates."""

    parser = LexborHTMLParser(html)
    urls: list[str] = []
    seen: set[str] = set()
    for node in parser.css(selector):
        href = (node.attributes.get("href") or "").strip()
        if not href or href.startswith(("javascript:", "#")):
            continue
        full_url = urljoin(base_url, href)
        if full_url not in seen:
            seen.add(full_url)
            urls.append(full_url)
    return urls


class ListingDiscoverer:
    """Drive one search page until the listing count converges."""

    def __init__(self, config: DiscoveryConfig) -> None:
        self.config = config
        self.logger = get_logger("discovery")

    def search_url(self, query: str) -> str:
        return self.config.search_url_template.format(query=quote(query, safe=""))

    async def discover(self, session: RenderSession, query: str, max_items: int) -> list[str]:
        context = await session.new_context()
        try:
            page = await context.new_page()
            return await self._collect(page, query, max_items)
        finally:
            await context.close()

    async def _collect(self, page: Any, query: str, max_items: int) -> list[str]:
        cfg = self.config
        url = self.search_url(query)
        try:
            await page.goto(url, wait_until="load", timeout=cfg.navigation_timeout_ms)
        except PlaywrightError as exc:
            raise DiscoveryFailed(f"Search page failed to load for {query!r}: {exc}") from exc

        # Client-side rendering needs a fixed head start before anything is queryable
        await page.wait_for_timeout(cfg.settle_delay_ms)
        await self._dismiss_consent(page)

        try:
            await page.wait_for_selector(cfg.listing_selector, timeout=cfg.first_item_timeout_ms)
        except PlaywrightTimeoutError:
            self.logger.info("no_listings", query=query)
            await self._save_debug_snapshot(page, query)
            return []

        previous = 0
        stable = 0
        while stable < cfg.stable_rounds:
            await page.mouse.wheel(0, cfg.scroll_delta)
            try:
                await page.wait_for_load_state("networkidle", timeout=cfg.quiescence_timeout_ms)
            except PlaywrightTimeoutError:
                pass
            current = await page.locator(cfg.listing_selector).count()
            if current >= max_items:
                break
            if current == previous:
                stable += 1
            else:
                stable = 0
                previous = current

        html = await page.content()
        urls = parse_listing_urls(html, page.url, cfg.listing_selector)
        self.logger.debug("listings_parsed", query=query, count=len(urls))
        return urls

    async def _dismiss_consent(self, page: Any) -> None:
        try:
            for selector in self.config.consent_selectors:
                if await page.locator(selector).is_visible():
                    self.logger.info("consent_click", selector=selector)
                    await page.click(selector)
                    await page.wait_for_timeout(self.config.consent_pause_ms)
                    break
        except Exception as exc:  # noqa: BLE001
            self.logger.debug("consent_ignored", error=str(exc))

    async def _save_debug_snapshot(self, page: Any, query: str) -> None:
        debug_dir = self.config.debug_dir
        if debug_dir is None:
            return
        try:
            directory = Path(debug_dir)
            directory.mkdir(parents=True, exist_ok=True)
            title = await page.title()
            await page.screenshot(path=str(directory / "debug_error.png"), full_page=True)
            (directory / "debug_error.html").write_text(await page.content(), encoding="utf-8")
            self.logger.info("debug_snapshot_saved", query=query, title=title, directory=str(directory))
        except (PlaywrightError, OSError) as exc:
            self.logger.warning("debug_snapshot_failed", query=query, error=str(exc))


__all__ = ["ListingDiscoverer", "parse_listing_urls"]
