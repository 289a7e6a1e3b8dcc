"""Tabular data source adapters."""

from __future__ import annotations

from .base import TabularSource
from .http import HttpTabularSource, parse_csv_rows, parse_json_rows, sheet_export_url
from .inmemory import InMemoryTabularSource

__all__ = [
    "HttpTabularSource",
    "InMemoryTabularSource",
    "TabularSource",
    "parse_csv_rows",
    "parse_json_rows",
    "sheet_export_url",
]
