"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, apply_env_overrides
from .models import (
    AppConfig,
    BrowserConfig,
    DiscoveryConfig,
    ExtractionConfig,
    PoolConfig,
    ServerConfig,
)

__all__ = [
    "AppConfig",
    "BrowserConfig",
    "ConfigLocator",
    "ConfigRepository",
    "DiscoveryConfig",
    "ExtractionConfig",
    "PoolConfig",
    "ServerConfig",
    "apply_env_overrides",
]
