"""Command line interface for running agentflow workflows."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml

from agentflow import Orchestrator, RunCallbacks, build_services, get_repository
from agentflow.config import AgentflowConfig, load_config
from agentflow.contracts import RunResult, RunStatus, StepError, StepResult
from agentflow.errors import AgentflowError
from agentflow.loader import load_workflow, validate_workflow

app = typer.Typer(help="CLI for agentflow workflows")

# Command groups
runs_app = typer.Typer(help="Commands for inspecting run history")

app.add_typer(runs_app, name="runs")


@app.callback()
def main() -> None:
    """agentflow CLI entry point."""
    pass


def _configure(config_path: Optional[Path]) -> AgentflowConfig:
    config = load_config(str(config_path) if config_path else None)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return config


def _parse_vars(pairs: List[str]) -> Dict[str, Any]:
    variables: Dict[str, Any] = {}
    for pair in pairs:
        name, sep, raw = pair.partition("=")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Expected key=value, got {pair!r}", param_hint="--var")
        try:
            value = yaml.safe_load(raw) if raw else ""
        except yaml.YAMLError:
            value = raw
        variables[name.strip()] = value
    return variables


def _parse_keys(pairs: List[str]) -> Dict[str, str]:
    keys: Dict[str, str] = {}
    for pair in pairs:
        service, sep, secret = pair.partition("=")
        if not sep or not service.strip() or not secret.strip():
            raise typer.BadParameter(f"Expected service=key, got {service!r}", param_hint="--key")
        keys[service.strip().lower()] = secret.strip()
    return keys


def _echo_progress(step_id: str, percent: float, message: str) -> None:
    typer.echo(f"[{percent:5.1f}%] {step_id}: {message}")


def _echo_error(step_id: str, error: StepError) -> None:
    typer.secho(f"  {step_id} failed: {error.type}: {error.message}", fg=typer.colors.RED)


def _echo_success(step_id: str, result: StepResult) -> None:
    typer.secho(f"  {step_id} completed", fg=typer.colors.GREEN)


async def _run_workflow(
    path: Path,
    config: AgentflowConfig,
    variables: Dict[str, Any],
    keys: Optional[Dict[str, str]] = None,
) -> RunResult:
    workflow = load_workflow(path)
    services = build_services(config, keys=keys)
    orchestrator = Orchestrator(services, repository=get_repository(config=config))
    try:
        return await orchestrator.run(
            workflow,
            RunCallbacks(
                on_progress=_echo_progress, on_error=_echo_error, on_success=_echo_success
            ),
            variables=variables,
        )
    finally:
        await services.aclose()


@app.command("run")
def run(
    path: Path,
    var: List[str] = typer.Option([], "--var", help="Initial variable as key=value"),
    key: List[str] = typer.Option(
        [], "--key", help="Session API key as service=key, used before the environment"
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Configuration file"),
) -> None:
    """
    Execute a workflow file with the configured adapters.

    Steps run in declared order; condition steps may branch. Progress is
    printed per step, followed by a summary of the run.

    Example:
        agentflow run workflows/outreach.yaml --var campaign=spring
    """
    config = _configure(config_path)
    variables = _parse_vars(var)
    keys = _parse_keys(key)
    try:
        result = asyncio.run(_run_workflow(path, config, variables, keys))
    except AgentflowError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(
        f"Run {result.run_id}: {result.status.value}, "
        f"{result.steps_executed} steps executed"
    )
    if not result.success or result.status != RunStatus.COMPLETED:
        raise typer.Exit(code=1)


@app.command("validate")
def validate(path: Path) -> None:
    """Check a workflow file for structural problems."""
    try:
        workflow = load_workflow(path)
    except AgentflowError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    problems = validate_workflow(workflow)
    if problems:
        for problem in problems:
            typer.secho(f"- {problem}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"Workflow {workflow.name} is valid ({len(workflow.steps)} steps)")


@runs_app.command("list")
def runs_list(
    config_path: Optional[Path] = typer.Option(None, "--config", help="Configuration file"),
) -> None:
    """
    List recorded runs with their status.

    Example:
        agentflow runs list
        # Output: 3f2a...    outreach    completed
    """
    config = _configure(config_path)
    repo = get_repository(config=config)
    runs = asyncio.run(repo.list_runs())
    if not runs:
        typer.echo("No runs found")
        return
    for run in runs:
        typer.echo(f"{run.run_id}\t{run.workflow_name or run.workflow_id or '-'}\t{run.status}")


@runs_app.command("show")
def runs_show(
    run_id: str,
    config_path: Optional[Path] = typer.Option(None, "--config", help="Configuration file"),
) -> None:
    """Show variables and step history for a recorded run."""
    config = _configure(config_path)
    repo = get_repository(config=config)
    run = asyncio.run(repo.get_run(run_id))
    if run is None:
        typer.echo("Run not found")
        raise typer.Exit(code=1)
    typer.echo(f"Run {run.run_id}: {run.status}")
    if run.variables:
        typer.echo(f"Variables: {run.variables}")
    for step in run.steps:
        typer.echo(
            f"- {step.sequence}. {step.step_id}: {step.status}"
            + (
                f" ({step.started_at} -> {step.completed_at})"
                if step.started_at or step.completed_at
                else ""
            )
        )


if __name__ == "__main__":
    app()
