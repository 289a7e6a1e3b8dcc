"""Step executors, registered by step kind on import."""

from . import ai_analysis, ai_content, condition, data_source, email_send, wait_delay  # noqa: F401
from .base import EXECUTORS, StepExecutor, get_executor, register_executor

__all__ = ["EXECUTORS", "StepExecutor", "get_executor", "register_executor"]
