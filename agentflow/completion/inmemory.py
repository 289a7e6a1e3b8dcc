"""Scripted completion service for testing."""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Union

from ..errors import ExternalServiceError
from .base import CompletionOptions, CompletionService

Response = Union[str, Exception]


class ScriptedCompletionService(CompletionService):
    """Replay canned responses in order, or compute them from the prompt.

    Exceptions in the script are raised instead of returned. Once the
    script runs out the last entry is repeated.
    """

    def __init__(
        self,
        responses: Union[Iterable[Response], Callable[[str], Response], None] = None,
    ) -> None:
        if callable(responses):
            self._responder: Optional[Callable[[str], Response]] = responses
            self._script: List[Response] = []
        else:
            self._responder = None
            self._script = list(responses or [])
        self.prompts: List[str] = []
        self.options: List[CompletionOptions] = []

    def _next(self, prompt: str) -> Response:
        if self._responder is not None:
            return self._responder(prompt)
        if not self._script:
            raise ExternalServiceError("No scripted completion available")
        if len(self._script) == 1:
            return self._script[0]
        return self._script.pop(0)

    async def complete(self, prompt: str, options: Optional[CompletionOptions] = None) -> str:
        self.prompts.append(prompt)
        self.options.append(options or CompletionOptions())
        response = self._next(prompt)
        if isinstance(response, Exception):
            raise response
        return response
