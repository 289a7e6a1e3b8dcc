"""Tests for the completion adapters."""

import pytest
from pydantic_ai.models.function import AgentInfo, FunctionModel
from pydantic_ai.models.test import TestModel as CannedModel

from agentflow.completion import (
    AgentCompletionService,
    CompletionOptions,
    ScriptedCompletionService,
    split_model_name,
)
from agentflow.credentials import InMemoryCredentialStore
from agentflow.errors import ConfigurationError, ExternalServiceError


def test_split_model_name():
    assert split_model_name("anthropic:claude-sonnet-4-0") == ("anthropic", "claude-sonnet-4-0")
    assert split_model_name("gpt-4o") == ("openai", "gpt-4o")


@pytest.mark.asyncio
async def test_agent_service_returns_model_text():
    service = AgentCompletionService(CannedModel(custom_output_text='{"subject": "Hi"}'))
    text = await service.complete("Write something", CompletionOptions(temperature=0.8))
    assert text == '{"subject": "Hi"}'


@pytest.mark.asyncio
async def test_agent_service_requires_provider_credential():
    service = AgentCompletionService("openai:gpt-4o", credentials=InMemoryCredentialStore())
    with pytest.raises(ConfigurationError):
        await service.complete("prompt")


@pytest.mark.asyncio
async def test_agent_service_rejects_unknown_provider():
    credentials = InMemoryCredentialStore({"pigeon": "coo"})
    service = AgentCompletionService("pigeon:fast", credentials=credentials)
    with pytest.raises(ConfigurationError):
        await service.complete("prompt")


@pytest.mark.asyncio
async def test_agent_service_wraps_provider_failures():
    def failing(messages, info: AgentInfo):
        raise RuntimeError("provider exploded")

    service = AgentCompletionService(FunctionModel(failing))
    with pytest.raises(ExternalServiceError):
        await service.complete("prompt")


@pytest.mark.asyncio
async def test_scripted_service_replays_and_repeats_last():
    service = ScriptedCompletionService(["one", "two"])

    assert await service.complete("a") == "one"
    assert await service.complete("b") == "two"
    assert await service.complete("c") == "two"
    assert service.prompts == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_scripted_service_raises_scripted_errors():
    service = ScriptedCompletionService([ExternalServiceError("down"), "ok"])

    with pytest.raises(ExternalServiceError):
        await service.complete("a")
    assert await service.complete("b") == "ok"


@pytest.mark.asyncio
async def test_scripted_service_without_script_fails():
    with pytest.raises(ExternalServiceError):
        await ScriptedCompletionService().complete("a")
