"""Exporter implementations."""

from .base import BaseExporter
from .file_exporter import CSV_FIELDS, FileExporter, flatten_record

__all__ = ["BaseExporter", "CSV_FIELDS", "FileExporter", "flatten_record"]
