from __future__ import annotations

import asyncio
import random
from typing import Optional

from ..cancellation import CancellationToken

RETRYABLE_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})


def compute_backoff(attempt: int, base: float = 1.5, jitter: float = 0.5) -> float:
    """Compute exponential backoff with jitter."""
    delay = base ** attempt
    return delay + random.uniform(0, jitter)


def is_retryable_status(status_code: int) -> bool:
    """Return ``True`` for HTTP statuses worth another attempt."""
    return status_code in RETRYABLE_STATUS_CODES


async def schedule_retry(
    attempt: int, cancellation: Optional[CancellationToken] = None
) -> None:
    """Sleep for computed backoff delay before retrying."""
    delay = compute_backoff(attempt)
    if cancellation is not None:
        await cancellation.sleep(delay)
    else:
        await asyncio.sleep(delay)
