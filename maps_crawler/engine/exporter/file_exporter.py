"""File based exporter supporting JSON lines and CSV."""

from __future__ import annotations

import csv
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ...models import PlaceRecord
from .base import BaseExporter

CSV_FIELDS = [
    "name",
    "address",
    "phone",
    "website",
    "domain",
    "rating",
    "reviews",
    "category",
    "lat",
    "lng",
    "googleMapsUrl",
]


def flatten_record(record: PlaceRecord) -> dict[str, Any]:
    """Flatten coordinates into ``lat``/``lng`` columns."""

    row = record.to_dict()
    coordinates = row.pop("coordinates", None) or {}
    row["lat"] = coordinates.get("lat")
    row["lng"] = coordinates.get("lng")
    return row


class FileExporter(BaseExporter):
    """Write records for one query to a local file."""

    def __init__(self, output_dir: Path, query: str, fmt: str, run_tag: str | None = None) -> None:
        if fmt not in ("json", "csv"):
            raise ValueError(f"Unsupported output format: {fmt}")
        self.output_dir = output_dir
        self.query = query
        self.format = fmt
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.run_tag = run_tag or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        slug = re.sub(r"[^0-9A-Za-z_-]+", "_", query.strip()).strip("_") or "query"
        filename = f"{slug}-{self.run_tag}.{self._extension}"
        self.path = self.output_dir / filename
        self._file = self.path.open("a", encoding="utf-8", newline="")
        self._csv_writer: Optional[csv.DictWriter] = None

    @property
    def _extension(self) -> str:
        return "jsonl" if self.format == "json" else "csv"

    def export(self, record: PlaceRecord) -> None:
        if self.format == "json":
            json.dump(record.to_dict(), self._file, ensure_ascii=False)
            self._file.write("\n")
            return
        if self._csv_writer is None:
            self._csv_writer = csv.DictWriter(self._file, fieldnames=CSV_FIELDS)
            self._csv_writer.writeheader()
        self._csv_writer.writerow(flatten_record(record))

    def flush(self) -> None:
        self._file.flush()

    def close(self) -> None:
        self._file.close()


__all__ = ["CSV_FIELDS", "FileExporter", "flatten_record"]
