"""Pydantic models used across the maps-crawler configuration flow."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)

DEFAULT_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--no-first-run",
    "--no-zygote",
    "--disable-blink-features=AutomationControlled",
    "--disable-background-networking",
    "--disable-default-apps",
    "--disable-extensions",
    "--disable-sync",
    "--disable-translate",
    "--metrics-recording-only",
    "--mute-audio",
    "--no-default-browser-check",
    "--window-size=1920,1080",
]


class BrowserConfig(BaseModel):
    """Launch and context options for the headless browser sessions."""

    headless: bool = True
    launch_args: list[str] = Field(default_factory=lambda: list(DEFAULT_LAUNCH_ARGS))
    user_agent: str = DEFAULT_USER_AGENT
    locale: str = "en-GB"
    viewport_size: tuple[int, int] = (1280, 720)
    # Requests aborted by the context router (resource types / URL fragments)
    blocked_resource_types: list[str] = Field(default_factory=lambda: ["image", "media"])
    blocked_url_fragments: list[str] = Field(
        default_factory=lambda: [
            "google-analytics.com",
            "googletagmanager.com",
            "doubleclick.net",
            "facebook.com",
            "twitter.com",
        ]
    )

    @field_validator("viewport_size", mode="before")
    @classmethod
    def _coerce_viewport(cls, value: Any) -> tuple[int, int]:
        if isinstance(value, (list, tuple)) and len(value) == 2:
            width, height = int(value[0]), int(value[1])
            if width <= 0 or height <= 0:
                raise ValueError("viewport_size values must be positive")
            return (width, height)
        raise ValueError("viewport_size expects a two-item list or tuple")


class PoolConfig(BaseModel):
    """Browser pool sizing."""

    max_browsers: int = 3

    @field_validator("max_browsers")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_browsers must be >= 1")
        return value


class DiscoveryConfig(BaseModel):
    """Search-page navigation and scroll convergence settings."""

    search_url_template: str = "https://www.google.com/maps/search/{query}/?hl=en"
    listing_selector: str = 'a[href*="/maps/place/"]'
    navigation_timeout_ms: int = 45000
    settle_delay_ms: int = 3000
    consent_selectors: list[str] = Field(
        default_factory=lambda: [
            'button[aria-label="Accept all"]',
            'button:has-text("Accept all")',
            'button:has-text("Kabul et")',
            'form[action*="/consent"] button:last-child',
        ]
    )
    consent_pause_ms: int = 2000
    first_item_timeout_ms: int = 15000
    scroll_delta: int = 5000
    quiescence_timeout_ms: int = 3000
    stable_rounds: int = 3
    overshoot_factor: int = 2
    debug_dir: Path | None = None

    @model_validator(mode="after")
    def _validate_bounds(self) -> "DiscoveryConfig":
        for name in (
            "navigation_timeout_ms",
            "settle_delay_ms",
            "consent_pause_ms",
            "first_item_timeout_ms",
            "quiescence_timeout_ms",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if self.stable_rounds < 1:
            raise ValueError("stable_rounds must be >= 1")
        if self.overshoot_factor < 1:
            raise ValueError("overshoot_factor must be >= 1")
        if "{query}" not in self.search_url_template:
            raise ValueError("search_url_template must contain a {query} placeholder")
        return self


class ExtractionConfig(BaseModel):
    """Per-place page timeouts."""

    navigation_timeout_ms: int = 15000
    name_timeout_ms: int = 5000
    item_timeout_s: float = 30.0

    @model_validator(mode="after")
    def _validate_bounds(self) -> "ExtractionConfig":
        if self.navigation_timeout_ms < 0 or self.name_timeout_ms < 0:
            raise ValueError("extraction timeouts must be >= 0")
        if self.item_timeout_s <= 0:
            raise ValueError("item_timeout_s must be > 0")
        return self


class ServerConfig(BaseModel):
    """API surface limits and defaults."""

    host: str = "0.0.0.0"
    port: int = 3000
    api_key: str | None = None
    default_workers: int = 3
    max_concurrent_jobs: int = 5
    max_results_cap: int = 100
    max_workers_cap: int = 5
    default_max_results: int = 20
    bulk_default_max_results: int = 10
    bulk_batch_size: int = 3
    bulk_max_queries: int = 20

    @model_validator(mode="after")
    def _validate_limits(self) -> "ServerConfig":
        for name in (
            "default_workers",
            "max_concurrent_jobs",
            "max_results_cap",
            "max_workers_cap",
            "default_max_results",
            "bulk_default_max_results",
            "bulk_batch_size",
            "bulk_max_queries",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        return self


class AppConfig(BaseModel):
    """Root configuration document."""

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    pool: PoolConfig = Field(default_factory=PoolConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


__all__ = [
    "AppConfig",
    "BrowserConfig",
    "DEFAULT_LAUNCH_ARGS",
    "DEFAULT_USER_AGENT",
    "DiscoveryConfig",
    "ExtractionConfig",
    "PoolConfig",
    "ServerConfig",
]
