"""Configuration loading helpers for maps-crawler."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml

from .models import AppConfig

CONFIG_FILENAME = "config.yaml"

# Environment variable -> (section, field, caster)
ENV_OVERRIDES: dict[str, tuple[str, str, type]] = {
    "HOST": ("server", "host", str),
    "PORT": ("server", "port", int),
    "API_KEY": ("server", "api_key", str),
    "WORKERS": ("server", "default_workers", int),
    "MAX_CONCURRENT_JOBS": ("server", "max_concurrent_jobs", int),
    "MAX_BROWSERS": ("pool", "max_browsers", int),
    "HEADLESS": ("browser", "headless", bool),
}


def _coerce_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


def apply_env_overrides(payload: dict, environ: Mapping[str, str] | None = None) -> dict:
    """Overlay supported environment variables onto a raw config mapping."""

    environ = os.environ if environ is None else environ
    merged = {key: dict(value) if isinstance(value, dict) else value for key, value in payload.items()}
    for env_name, (section, field, caster) in ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw is None or raw == "":
            continue
        value = _coerce_bool(raw) if caster is bool else caster(raw)
        merged.setdefault(section, {})[field] = value
    return merged


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    outputs_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("MAPS_CRAWLER_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.outputs_dir = (self.data_dir / "outputs").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.outputs_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO, env overrides and schema validation."""

    def __init__(
        self,
        locator: ConfigLocator | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.locator = locator or ConfigLocator()
        self.environ = environ
        self._cache: AppConfig | None = None

    def load(self) -> AppConfig:
        if self._cache is not None:
            return self._cache
        path = self.locator.config_path()
        payload = _read_file(path) if path.exists() else {}
        config = AppConfig.model_validate(apply_env_overrides(payload, self.environ))
        self._cache = config
        return config

    def save(self, config: AppConfig) -> Path:
        path = self.locator.config_path()
        _write_file(path, config.model_dump(mode="json"))
        self._cache = config
        return path

    def reload(self) -> AppConfig:
        self._cache = None
        return self.load()


__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "ENV_OVERRIDES",
    "apply_env_overrides",
]
