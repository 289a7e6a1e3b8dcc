from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel

from .constants import (
    DEFAULT_ANALYSIS_MAX_TOKENS,
    DEFAULT_ANALYSIS_SAMPLE_SIZE,
    DEFAULT_ANALYSIS_TEMPERATURE,
    DEFAULT_CONTENT_DELAY,
    DEFAULT_CONTENT_MAX_TOKENS,
    DEFAULT_CONTENT_TEMPERATURE,
    DEFAULT_EMAIL_PROVIDER,
    DEFAULT_FROM_EMAIL,
    DEFAULT_MAX_STEPS_PER_RUN,
    DEFAULT_MODEL,
    DEFAULT_SEND_DELAY,
)


class EngineConfig(BaseModel):
    """Orchestrator and executor pacing settings."""

    max_steps_per_run: int = DEFAULT_MAX_STEPS_PER_RUN
    analysis_sample_size: int = DEFAULT_ANALYSIS_SAMPLE_SIZE
    content_delay: float = DEFAULT_CONTENT_DELAY
    send_delay: float = DEFAULT_SEND_DELAY
    source_timeout: float = 30.0
    source_max_attempts: int = 3


class CompletionConfig(BaseModel):
    """Language-model settings."""

    model: str = DEFAULT_MODEL
    analysis_temperature: float = DEFAULT_ANALYSIS_TEMPERATURE
    analysis_max_tokens: int = DEFAULT_ANALYSIS_MAX_TOKENS
    content_temperature: float = DEFAULT_CONTENT_TEMPERATURE
    content_max_tokens: int = DEFAULT_CONTENT_MAX_TOKENS


class EmailConfig(BaseModel):
    """Outbound email defaults."""

    provider: str = DEFAULT_EMAIL_PROVIDER
    from_email: str = DEFAULT_FROM_EMAIL
    mailgun_domain: Optional[str] = None


class AgentflowConfig(BaseModel):
    """Top-level configuration model."""

    engine: EngineConfig = EngineConfig()
    completion: CompletionConfig = CompletionConfig()
    email: EmailConfig = EmailConfig()
    database_url: Optional[str] = None
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> AgentflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to AGENTFLOW_CONFIG env
            variable or 'agentflow.yaml' in the current directory.
    """

    config_path = path or os.getenv("AGENTFLOW_CONFIG", "agentflow.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = AgentflowConfig(**data)
    else:
        config = AgentflowConfig()

    env_db_url = os.getenv("AGENTFLOW_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    env_log_level = os.getenv("AGENTFLOW_LOG_LEVEL")
    if env_log_level:
        config.log_level = env_log_level.upper()
    return config
