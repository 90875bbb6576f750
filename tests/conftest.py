"""Shared fixtures: in-memory stand-ins for browser sessions, contexts and pages."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from maps_crawler.config import AppConfig, ConfigLocator, ConfigRepository
from maps_crawler.models import PlaceRecord


class FakeMouse:
    def __init__(self) -> None:
        self.wheels: list[tuple[int, int]] = []

    async def wheel(self, delta_x: int, delta_y: int) -> None:
        self.wheels.append((delta_x, delta_y))


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str) -> None:
        self.page = page
        self.selector = selector

    async def count(self) -> int:
        counts = self.page.listing_counts
        if not counts:
            return 0
        if len(counts) > 1:
            return counts.pop(0)
        return counts[0]

    async def is_visible(self) -> bool:
        return self.selector in self.page.visible_selectors


class FakePage:
    """Records every call; behaviour is driven by plain attributes."""

    def __init__(
        self,
        html: str = "<html></html>",
        html_by_url: dict[str, str] | None = None,
        listing_counts: Iterable[int] = (),
        visible_selectors: Iterable[str] = (),
        goto_error: bool = False,
        selector_timeout: bool = False,
    ) -> None:
        self.html = html
        self.html_by_url = dict(html_by_url or {})
        self.listing_counts = list(listing_counts)
        self.visible_selectors = set(visible_selectors)
        self.goto_error = goto_error
        self.selector_timeout = selector_timeout
        self.url = "about:blank"
        self.mouse = FakeMouse()
        self.visited: list[str] = []
        self.clicked: list[str] = []
        self.waits: list[int] = []

    async def goto(self, url: str, wait_until: str | None = None, timeout: int | None = None) -> None:
        if self.goto_error:
            raise PlaywrightError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        self.url = url
        self.visited.append(url)

    async def wait_for_timeout(self, timeout: int) -> None:
        self.waits.append(timeout)

    async def wait_for_selector(self, selector: str, timeout: int | None = None, state: str | None = None) -> None:
        if self.selector_timeout:
            raise PlaywrightTimeoutError(f"Timeout waiting for {selector}")

    async def wait_for_load_state(self, state: str, timeout: int | None = None) -> None:
        raise PlaywrightTimeoutError("network never went idle")

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    async def click(self, selector: str) -> None:
        self.clicked.append(selector)

    async def content(self) -> str:
        return self.html_by_url.get(self.url, self.html)

    async def title(self) -> str:
        return "Google Maps"

    async def screenshot(self, path: str, full_page: bool = False) -> None:
        Path(path).write_bytes(b"png")


class FakeContext:
    def __init__(self, page_factory: Callable[[], FakePage]) -> None:
        self.page_factory = page_factory
        self.pages: list[FakePage] = []
        self.closed = False

    async def new_page(self) -> FakePage:
        page = self.page_factory()
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


class FakeSession:
    def __init__(self, page_factory: Callable[[], FakePage] | None = None) -> None:
        self.page_factory = page_factory or FakePage
        self.live = True
        self.terminated = False
        self.fail_contexts = False
        self.contexts: list[FakeContext] = []

    def is_live(self) -> bool:
        return self.live

    async def new_context(self) -> FakeContext:
        if self.fail_contexts:
            raise RuntimeError("browser has been closed")
        context = FakeContext(self.page_factory)
        self.contexts.append(context)
        return context

    async def terminate(self) -> None:
        self.terminated = True


class FakeFactory:
    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.sessions: list[FakeSession] = []

    async def create(self) -> FakeSession:
        if self.failures:
            self.failures -= 1
            raise RuntimeError("chromium failed to launch")
        session = FakeSession()
        self.sessions.append(session)
        return session


class MappingExtractor:
    """PageExtractor returning canned outcomes per URL."""

    def __init__(self, outcomes: dict[str, Any]) -> None:
        self.outcomes = outcomes
        self.calls: list[str] = []

    async def extract(self, page: Any, url: str) -> PlaceRecord | None:
        self.calls.append(url)
        outcome = self.outcomes.get(url)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def make_record(name: str, phone: str | None = None, url: str | None = None) -> PlaceRecord:
    return PlaceRecord(
        name=name,
        google_maps_url=url or f"https://www.google.com/maps/place/{name.replace(' ', '+')}",
        phone=phone,
    )


@pytest.fixture
def fake_page() -> type[FakePage]:
    return FakePage


@pytest.fixture
def fake_session() -> type[FakeSession]:
    return FakeSession


@pytest.fixture
def fake_factory() -> FakeFactory:
    return FakeFactory()


@pytest.fixture
def failing_factory() -> Callable[[int], FakeFactory]:
    return lambda failures: FakeFactory(failures=failures)


@pytest.fixture
def mapping_extractor() -> type[MappingExtractor]:
    return MappingExtractor


@pytest.fixture
def record_factory() -> Callable[..., PlaceRecord]:
    return make_record


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigRepository:
    monkeypatch.delenv("MAPS_CRAWLER_HOME", raising=False)
    return ConfigRepository(ConfigLocator(project_root=tmp_path), environ={})
