"""Exporter Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from ...models import PlaceRecord


class BaseExporter(ABC):
    """Uniform exporter contract for scrape results."""

    @abstractmethod
    def export(self, record: PlaceRecord) -> None:
        """Persist a single record."""

    def export_many(self, records: Iterable[PlaceRecord]) -> None:
        for record in records:
            self.export(record)

    @abstractmethod
    def flush(self) -> None:
        """Flush buffered data to destination."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""

    def __enter__(self) -> "BaseExporter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.flush()
        self.close()


__all__ = ["BaseExporter"]
