"""Tests for configuration loading."""

from agentflow.config import load_config
from agentflow.persistence import InMemoryRunRepository, SQLiteRunRepository, get_repository


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
engine:
  max_steps_per_run: 20
  send_delay: 0
completion:
  model: anthropic:claude-sonnet-4-0
email:
  provider: sendgrid
  from_email: team@example.com
"""
    )
    monkeypatch.setenv("AGENTFLOW_CONFIG", str(config_path))

    config = load_config()
    assert config.engine.max_steps_per_run == 20
    assert config.engine.send_delay == 0
    assert config.engine.content_delay == 0.2
    assert config.completion.model == "anthropic:claude-sonnet-4-0"
    assert config.completion.content_temperature == 0.8
    assert config.email.provider == "sendgrid"
    assert config.email.from_email == "team@example.com"


def test_load_config_defaults_when_file_missing(tmp_path, monkeypatch):
    monkeypatch.delenv("AGENTFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("AGENTFLOW_LOG_LEVEL", raising=False)

    config = load_config(str(tmp_path / "missing.yaml"))
    assert config.engine.analysis_sample_size == 5
    assert config.email.provider == "resend"
    assert config.database_url is None
    assert config.log_level == "INFO"


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("AGENTFLOW_DATABASE_URL", f"sqlite://{tmp_path / 'runs.db'}")
    monkeypatch.setenv("AGENTFLOW_LOG_LEVEL", "debug")

    config = load_config(str(tmp_path / "missing.yaml"))
    assert config.database_url.startswith("sqlite://")
    assert config.log_level == "DEBUG"


def test_get_repository_uses_config(tmp_path, monkeypatch):
    monkeypatch.delenv("AGENTFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    config_path = tmp_path / "config.yaml"
    config_path.write_text(f"database_url: sqlite://{tmp_path / 'runs.db'}\n")
    monkeypatch.setenv("AGENTFLOW_CONFIG", str(config_path))

    assert isinstance(get_repository(), SQLiteRunRepository)


def test_get_repository_defaults_to_memory(tmp_path, monkeypatch):
    monkeypatch.delenv("AGENTFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("AGENTFLOW_CONFIG", str(tmp_path / "missing.yaml"))

    assert isinstance(get_repository(), InMemoryRunRepository)
