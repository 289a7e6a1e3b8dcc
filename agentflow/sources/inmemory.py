"""In-memory data source for testing."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from ..errors import SourceUnavailable
from .base import TabularSource

if TYPE_CHECKING:
    from ..cancellation import CancellationToken


class InMemoryTabularSource(TabularSource):
    """Serve canned rows keyed by URL."""

    def __init__(self, tables: Mapping[str, List[Dict[str, Any]]] | None = None) -> None:
        self._tables: Dict[str, List[Dict[str, Any]]] = dict(tables or {})
        self.requested: List[str] = []

    def add_table(self, url: str, rows: List[Dict[str, Any]]) -> None:
        self._tables[url] = rows

    async def fetch(
        self, url: str, cancellation: Optional["CancellationToken"] = None
    ) -> List[Dict[str, Any]]:
        if cancellation is not None:
            cancellation.raise_if_cancelled()
        self.requested.append(url)
        if url not in self._tables:
            raise SourceUnavailable(f"No data registered for {url}", details={"url": url})
        return copy.deepcopy(self._tables[url])
