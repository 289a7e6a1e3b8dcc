"""Completion service backed by a pydantic-ai ``Agent``."""

from __future__ import annotations

import logging
from typing import Optional, Union

from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.settings import ModelSettings

from ..constants import DEFAULT_MODEL
from ..credentials import CredentialStore, EnvCredentialStore
from ..errors import AgentflowError, ConfigurationError, ExternalServiceError
from .base import CompletionOptions, CompletionService

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a careful assistant embedded in an automated workflow. "
    "When asked for JSON, reply with a single JSON object and nothing else."
)


def split_model_name(model_name: str) -> tuple[str, str]:
    """Split ``provider:model`` into its parts, defaulting to OpenAI."""
    provider, sep, name = model_name.partition(":")
    if not sep:
        return "openai", model_name
    return provider.lower(), name


class AgentCompletionService(CompletionService):
    """Run prompts through pydantic-ai.

    ``model`` is either a ``provider:model`` string, in which case the
    provider API key is resolved through ``credentials`` on every request, or
    a ready pydantic-ai ``Model`` instance used as-is.
    """

    def __init__(
        self,
        model: Union[str, Model] = DEFAULT_MODEL,
        credentials: Optional[CredentialStore] = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> None:
        self._model = model
        self._credentials = credentials or EnvCredentialStore()
        self._system_prompt = system_prompt

    def _build_model(self, model_name: str) -> Model:
        provider, name = split_model_name(model_name)
        api_key = self._credentials.get_credential(provider)
        if not api_key:
            raise ConfigurationError(
                f"{provider} API key required for model {model_name}",
                details={"service": provider},
            )
        if provider == "openai":
            from pydantic_ai.models.openai import OpenAIChatModel
            from pydantic_ai.providers.openai import OpenAIProvider

            return OpenAIChatModel(name, provider=OpenAIProvider(api_key=api_key))
        if provider == "anthropic":
            from pydantic_ai.models.anthropic import AnthropicModel
            from pydantic_ai.providers.anthropic import AnthropicProvider

            return AnthropicModel(name, provider=AnthropicProvider(api_key=api_key))
        raise ConfigurationError(
            f"Unsupported model provider: {provider}", details={"model": model_name}
        )

    def _resolve_model(self, override: Optional[str]) -> Model:
        if override:
            return self._build_model(override)
        if isinstance(self._model, str):
            return self._build_model(self._model)
        return self._model

    async def complete(self, prompt: str, options: Optional[CompletionOptions] = None) -> str:
        options = options or CompletionOptions()
        model = self._resolve_model(options.model)
        agent = Agent(model, output_type=str, system_prompt=self._system_prompt)
        settings = ModelSettings(temperature=options.temperature, max_tokens=options.max_tokens)

        logger.debug(f"Requesting completion ({len(prompt)} chars prompt)")
        try:
            result = await agent.run(prompt, model_settings=settings)
        except AgentflowError:
            raise
        except Exception as exc:
            raise ExternalServiceError(f"Completion request failed: {exc}") from exc
        return result.output
