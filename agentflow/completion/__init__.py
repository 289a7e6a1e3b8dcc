"""Completion service adapters."""

from __future__ import annotations

from .agent import AgentCompletionService, split_model_name
from .base import CompletionOptions, CompletionService
from .inmemory import ScriptedCompletionService

__all__ = [
    "AgentCompletionService",
    "CompletionOptions",
    "CompletionService",
    "ScriptedCompletionService",
    "split_model_name",
]
