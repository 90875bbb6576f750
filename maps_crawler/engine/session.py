"""Playwright-backed browser sessions handed out by the pool."""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

from ..config import BrowserConfig
from ..logging_conf import get_logger


class RenderSession(Protocol):
    """Expensive, stateful rendering handle (one browser process)."""

    def is_live(self) -> bool: ...

    async def new_context(self) -> Any: ...

    async def terminate(self) -> None: ...


class SessionFactory(Protocol):
    async def create(self) -> RenderSession: ...


class BrowserSession:
    """Wrap a Playwright ``Browser`` with context defaults and request filtering."""

    def __init__(self, browser: Any, config: BrowserConfig) -> None:
        self._browser = browser
        self._config = config

    def is_live(self) -> bool:
        return bool(self._browser.is_connected())

    async def new_context(self) -> Any:
        width, height = self._config.viewport_size
        context = await self._browser.new_context(
            locale=self._config.locale,
            user_agent=self._config.user_agent,
            viewport={"width": width, "height": height},
            device_scale_factor=1,
            has_touch=False,
            is_mobile=False,
            java_script_enabled=True,
            bypass_csp=True,
            ignore_https_errors=True,
        )
        await context.route("**/*", self._route)
        return context

    async def _route(self, route: Any) -> None:
        request = route.request
        if should_block(request.resource_type, request.url, self._config):
            await route.abort()
        else:
            await route.continue_()

    async def terminate(self) -> None:
        await self._browser.close()


def should_block(resource_type: str, url: str, config: BrowserConfig) -> bool:
    """Return True when a request is not needed to render place data."""

    if resource_type in config.blocked_resource_types:
        return True
    return any(fragment in url for fragment in config.blocked_url_fragments)


class PlaywrightBrowserFactory:
    """Launch Chromium instances on a lazily started Playwright driver."""

    def __init__(self, config: BrowserConfig) -> None:
        self.config = config
        self.logger = get_logger("session")
        self._playwright = None
        self._start_lock = asyncio.Lock()

    async def _ensure_started(self):
        async with self._start_lock:
            if self._playwright is None:
                from playwright.async_api import async_playwright

                self._playwright = await async_playwright().start()
            return self._playwright

    async def create(self) -> BrowserSession:
        playwright = await self._ensure_started()
        args = list(self.config.launch_args)
        args.append(f"--user-agent={self.config.user_agent}")
        browser = await playwright.chromium.launch(headless=self.config.headless, args=args)
        self.logger.info("browser_launched", headless=self.config.headless)
        return BrowserSession(browser, self.config)

    async def aclose(self) -> None:
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None


__all__ = [
    "BrowserSession",
    "PlaywrightBrowserFactory",
    "RenderSession",
    "SessionFactory",
    "should_block",
]
