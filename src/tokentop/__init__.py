"""Incremental session-usage ingestion for the tokentop dashboard."""

__version__ = "0.1.0"
