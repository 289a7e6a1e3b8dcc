"""Adapters injected into the orchestrator and its executors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from .completion import AgentCompletionService, CompletionService
from .config import AgentflowConfig, load_config
from .credentials import (
    ChainedCredentialStore,
    CredentialStore,
    EnvCredentialStore,
    InMemoryCredentialStore,
)
from .senders import MessageSender, get_sender
from .sources import HttpTabularSource, TabularSource

SenderFactory = Callable[..., MessageSender]


@dataclass
class EngineServices:
    """Everything an executor may talk to besides the execution context.

    ``sender_factory`` is called as ``factory(provider, api_key, **options)``.
    """

    data_source: TabularSource
    completion: CompletionService
    credentials: CredentialStore
    sender_factory: SenderFactory = get_sender
    config: AgentflowConfig = field(default_factory=AgentflowConfig)

    async def aclose(self) -> None:
        await self.data_source.close()


def build_services(
    config: Optional[AgentflowConfig] = None,
    credentials: Optional[CredentialStore] = None,
    keys: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> EngineServices:
    """Wire the default HTTP and pydantic-ai adapters from ``config``.

    ``keys`` are session credentials consulted before ``credentials``
    (the environment when omitted).
    """

    config = config or load_config()
    credentials = credentials or EnvCredentialStore()
    if keys:
        credentials = ChainedCredentialStore(InMemoryCredentialStore(keys), credentials)
    services = EngineServices(
        data_source=HttpTabularSource(
            timeout=config.engine.source_timeout,
            max_attempts=config.engine.source_max_attempts,
        ),
        completion=AgentCompletionService(config.completion.model, credentials=credentials),
        credentials=credentials,
        config=config,
    )
    for name, value in overrides.items():
        setattr(services, name, value)
    return services
