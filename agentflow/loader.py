"""Load workflow definitions from YAML or JSON files."""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Any, List

import yaml
from pydantic import ValidationError

from .contracts import Workflow
from .errors import ConfigurationError
from .executors import EXECUTORS
from .executors.condition import BRANCH_CONFIG_KEYS

_SUFFIXES = {".yaml", ".yml", ".json"}


def _read(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


def load_workflow(path: str | Path) -> Workflow:
    """Read a workflow definition from ``path``.

    Raises:
        ConfigurationError: If the file is missing, unreadable or malformed.
    """
    path = Path(path)
    if path.suffix.lower() not in _SUFFIXES:
        raise ConfigurationError(f"Unsupported workflow file type: {path.suffix or path.name}")
    try:
        data = _read(path)
    except FileNotFoundError:
        raise ConfigurationError(f"Workflow file not found: {path}") from None
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Could not read workflow file {path}: {exc}") from exc
    return parse_workflow(data, source=str(path))


def parse_workflow(data: Any, source: str = "<data>") -> Workflow:
    """Validate a decoded workflow mapping."""
    if not isinstance(data, dict):
        raise ConfigurationError(f"Workflow definition in {source} must be a mapping")
    try:
        return Workflow.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid workflow definition in {source}",
            details={"errors": exc.errors(include_url=False)},
        ) from exc


def validate_workflow(workflow: Workflow) -> List[str]:
    """Return human readable problems found in ``workflow``."""
    problems: List[str] = []
    ids = [step.id for step in workflow.steps]
    known = set(ids)

    for step_id, count in Counter(ids).items():
        if count > 1:
            problems.append(f"Duplicate step id: {step_id}")

    for step in workflow.steps:
        if step.kind not in EXECUTORS:
            problems.append(f"Step {step.id}: unknown step type {step.kind}")
        for keys in BRANCH_CONFIG_KEYS.values():
            for key in keys:
                target = step.config.get(key)
                if target and target not in known:
                    problems.append(f"Step {step.id}: branch target {target} does not exist")

    for connection in workflow.connections:
        for end in (connection.source, connection.target):
            if end not in known:
                problems.append(
                    f"Connection {connection.id or connection.source}: unknown step {end}"
                )
    return problems

