import asyncio

import pytest
from typer.testing import CliRunner

import agentflow.cli as cli
from agentflow.cli import app
from agentflow.persistence import InMemoryRunRepository

WORKFLOW = """
name: Gate
steps:
  - id: check
    type: condition
    config:
      condition_logic: "{{threshold}} > 3"
      false_step: stop
  - id: pause
    type: wait_delay
    config:
      duration: 0
  - id: stop
    type: wait_delay
    config:
      duration: 0
"""


@pytest.fixture
def repo(monkeypatch):
    repository = InMemoryRunRepository()
    monkeypatch.setattr(cli, "get_repository", lambda *args, **kwargs: repository)
    return repository


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "agentflow.yaml"
    path.write_text("engine:\n  send_delay: 0\n  content_delay: 0\n")
    return path


def test_run_command_executes_workflow(tmp_path, repo, config_file):
    path = tmp_path / "gate.yaml"
    path.write_text(WORKFLOW)

    runner = CliRunner()
    result = runner.invoke(
        app, ["run", str(path), "--var", "threshold=5", "--config", str(config_file)]
    )

    assert result.exit_code == 0, result.stdout
    assert "check: Executing check" in result.stdout
    assert "completed, 3 steps executed" in result.stdout
    runs = asyncio.run(repo.list_runs())
    assert len(runs) == 1
    assert runs[0].variables["threshold"] == 5


def test_run_command_follows_branch(tmp_path, repo, config_file):
    path = tmp_path / "gate.yaml"
    path.write_text(WORKFLOW)

    result = CliRunner().invoke(
        app, ["run", str(path), "--var", "threshold=1", "--config", str(config_file)]
    )

    assert result.exit_code == 0, result.stdout
    assert "2 steps executed" in result.stdout


def test_run_command_fails_on_step_failure(tmp_path, repo, config_file):
    path = tmp_path / "broken.yaml"
    path.write_text("steps:\n  - id: load\n    type: data_source\n")

    result = CliRunner().invoke(app, ["run", str(path), "--config", str(config_file)])

    assert result.exit_code == 1
    assert "ConfigurationError" in result.stdout


def test_run_command_rejects_bad_vars(tmp_path, repo, config_file):
    path = tmp_path / "gate.yaml"
    path.write_text(WORKFLOW)

    result = CliRunner().invoke(app, ["run", str(path), "--var", "novalue"])

    assert result.exit_code != 0



def test_run_command_rejects_bad_keys(tmp_path, repo, config_file):
    path = tmp_path / "gate.yaml"
    path.write_text(WORKFLOW)

    result = CliRunner().invoke(app, ["run", str(path), "--key", "resend"])

    assert result.exit_code != 0
    assert asyncio.run(repo.list_runs()) == []


def test_run_command_passes_session_keys(tmp_path, repo, config_file, monkeypatch):
    seen = {}
    real_build = cli.build_services

    def capture(config, keys=None):
        seen["keys"] = keys
        return real_build(config, keys=keys)

    monkeypatch.setattr(cli, "build_services", capture)
    path = tmp_path / "gate.yaml"
    path.write_text(WORKFLOW)

    result = CliRunner().invoke(
        app,
        ["run", str(path), "--var", "threshold=5", "--key", "Resend=re_cli", "--config", str(config_file)],
    )

    assert result.exit_code == 0, result.stdout
    assert seen["keys"] == {"resend": "re_cli"}

def test_validate_command(tmp_path):
    good = tmp_path / "good.yaml"
    good.write_text(WORKFLOW)
    bad = tmp_path / "bad.yaml"
    bad.write_text("steps:\n  - id: a\n    type: teleport\n")

    runner = CliRunner()
    ok = runner.invoke(app, ["validate", str(good)])
    assert ok.exit_code == 0
    assert "is valid (3 steps)" in ok.stdout

    failed = runner.invoke(app, ["validate", str(bad)])
    assert failed.exit_code == 1
    assert "unknown step type teleport" in failed.stdout


def test_runs_list_and_show(repo):
    asyncio.run(repo.create_run("run-1", "wf", "Outreach", {"data_count": 2}))
    asyncio.run(repo.mark_step_started("run-1", "load", 1))
    asyncio.run(repo.mark_step_completed("run-1", "load", 1, "completed"))
    asyncio.run(repo.mark_run_completed("run-1"))

    runner = CliRunner()
    listed = runner.invoke(app, ["runs", "list"])
    assert listed.exit_code == 0
    assert "run-1\tOutreach\tcompleted" in listed.stdout

    shown = runner.invoke(app, ["runs", "show", "run-1"])
    assert shown.exit_code == 0
    assert "Run run-1: completed" in shown.stdout
    assert "1. load: completed" in shown.stdout

    missing = runner.invoke(app, ["runs", "show", "nope"])
    assert missing.exit_code == 1
    assert "Run not found" in missing.stdout


def test_runs_list_empty(repo):
    result = CliRunner().invoke(app, ["runs", "list"])
    assert result.exit_code == 0
    assert "No runs found" in result.stdout
