"""Base interface for tabular data sources."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from ..cancellation import CancellationToken


class TabularSource(metaclass=abc.ABCMeta):
    """Fetches a remote resource and returns it as a list of rows."""

    @abc.abstractmethod
    async def fetch(
        self, url: str, cancellation: Optional["CancellationToken"] = None
    ) -> List[Dict[str, Any]]:
        """Return the rows found at ``url`` keyed by their raw headers.

        ``cancellation`` is observed while waiting between retries.

        Raises:
            SourceUnavailable: If the resource cannot be fetched or parsed.
            RunCancelled: If ``cancellation`` fires while the source is waiting.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release resources held by the source (no-op by default)."""
        pass
