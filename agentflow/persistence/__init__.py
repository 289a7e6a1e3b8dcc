"""Persistence layer for agentflow run history."""

from __future__ import annotations

import os
from typing import Optional

from ..config import AgentflowConfig, load_config
from ..errors import ConfigurationError
from .inmemory import InMemoryRunRepository
from .models import RunInstance, StepRecord
from .repository import RunRepository
from .sqlite import SQLiteRunRepository


def get_repository(
    database_url: Optional[str] = None, config: Optional[AgentflowConfig] = None
) -> RunRepository:
    """Factory function to obtain a run repository.

    The backend is selected from ``database_url`` which can be given
    explicitly, through ``AGENTFLOW_DATABASE_URL`` or ``DATABASE_URL``, or via
    the loaded configuration. Without a database an in-memory repository is
    returned.
    """

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("AGENTFLOW_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or config.database_url
    )

    if not database_url:
        return InMemoryRunRepository()
    if database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        return SQLiteRunRepository(path)
    raise ConfigurationError(f"Unsupported database backend: {database_url}")


__all__ = [
    "InMemoryRunRepository",
    "RunInstance",
    "RunRepository",
    "SQLiteRunRepository",
    "StepRecord",
    "get_repository",
]
