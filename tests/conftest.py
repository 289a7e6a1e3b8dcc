"""Shared fixtures wiring the engine to in-process adapters."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from agentflow.completion import ScriptedCompletionService
from agentflow.config import AgentflowConfig, EngineConfig
from agentflow.credentials import InMemoryCredentialStore
from agentflow.senders import RecordingSender
from agentflow.services import EngineServices
from agentflow.sources import InMemoryTabularSource

SHEET_URL = "https://example.com/contacts.csv"

CONTACTS = [
    {"email": "a@x.com", "name": "A"},
    {"email": "b@x.com", "name": "B"},
]


def fast_config(**engine: Any) -> AgentflowConfig:
    """Configuration with every executor pause disabled."""
    return AgentflowConfig(engine=EngineConfig(content_delay=0, send_delay=0, **engine))


@pytest.fixture
def make_services():
    """Factory building ``EngineServices`` around in-memory adapters."""

    def _make(
        tables: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        responses: Any = None,
        keys: Optional[Dict[str, str]] = None,
        sender: Optional[RecordingSender] = None,
        config: Optional[AgentflowConfig] = None,
    ) -> EngineServices:
        sender = sender or RecordingSender()
        return EngineServices(
            data_source=InMemoryTabularSource(
                tables if tables is not None else {SHEET_URL: CONTACTS}
            ),
            completion=ScriptedCompletionService(
                responses if responses is not None else ['{"segments": []}']
            ),
            credentials=InMemoryCredentialStore(
                keys if keys is not None else {"resend": "re_test_key"}
            ),
            sender_factory=lambda provider, api_key, **options: sender,
            config=config or fast_config(),
        )

    return _make
