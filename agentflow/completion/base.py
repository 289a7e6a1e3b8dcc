"""Base interface for language-model completion services."""

from __future__ import annotations

import abc
from typing import Optional

from pydantic import BaseModel


class CompletionOptions(BaseModel):
    """Per-request settings passed to a completion service."""

    model: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 2000


class CompletionService(metaclass=abc.ABCMeta):
    """Turns a prompt into completion text."""

    @abc.abstractmethod
    async def complete(self, prompt: str, options: Optional[CompletionOptions] = None) -> str:
        """Return the raw completion text for ``prompt``.

        Raises:
            ConfigurationError: If the service lacks a usable credential.
            ExternalServiceError: If the provider call fails.
        """
        raise NotImplementedError
