"""Small helpers shared by adapters and executors."""

from .jsonparse import extract_json_object
from .retry import compute_backoff, is_retryable_status, schedule_retry

__all__ = [
    "compute_backoff",
    "extract_json_object",
    "is_retryable_status",
    "schedule_retry",
]
