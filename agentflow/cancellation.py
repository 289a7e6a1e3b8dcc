"""Cooperative cancellation for workflow runs."""

from __future__ import annotations

import asyncio
from typing import Optional

from .errors import RunCancelled


class CancellationToken:
    """Flag shared between a caller and an in-flight run.

    The orchestrator checks it between steps; executors observe it at every
    pause through :meth:`sleep`.
    """

    def __init__(self) -> None:
        self._event: Optional[asyncio.Event] = None
        self._cancelled = False
        self.reason: Optional[str] = None

    def _get_event(self) -> asyncio.Event:
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        return self._event

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: Optional[str] = None) -> None:
        """Request that the run stop at the next suspension point."""
        self._cancelled = True
        self.reason = reason
        if self._event is not None:
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RunCancelled(self.reason or "Run cancelled")

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless cancelled first.

        Raises:
            RunCancelled: If cancellation is requested before or during the wait.
        """
        self.raise_if_cancelled()
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(self._get_event().wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        self.raise_if_cancelled()
