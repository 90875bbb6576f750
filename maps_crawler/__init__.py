"""Google Maps place crawler with pooled headless browsers."""

__version__ = "2.0.0"
