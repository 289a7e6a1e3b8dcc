"""Executor registry and helpers shared by step implementations."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Union

from ..contracts import Step, StepKind, StepResult
from ..errors import ConfigurationError, UnknownStepKind

if TYPE_CHECKING:
    from ..context import ExecutionContext
    from ..services import EngineServices

logger = logging.getLogger(__name__)

StepExecutor = Callable[["Step", "ExecutionContext", "EngineServices"], Awaitable[StepResult]]

# Executors keyed by step kind value
EXECUTORS: Dict[str, StepExecutor] = {}


def register_executor(kind: Union[StepKind, str]) -> Callable[[StepExecutor], StepExecutor]:
    """Decorator adding an executor to ``EXECUTORS`` under ``kind``."""
    key = kind.value if isinstance(kind, StepKind) else kind

    def decorator(func: StepExecutor) -> StepExecutor:
        if key in EXECUTORS:
            logger.warning(f"Replacing executor registered for step kind {key}")
        EXECUTORS[key] = func
        return func

    return decorator


def get_executor(kind: str, registry: Dict[str, StepExecutor] | None = None) -> StepExecutor:
    """Return the executor for ``kind``.

    Raises:
        UnknownStepKind: If no executor is registered for ``kind``.
    """
    executors = EXECUTORS if registry is None else registry
    try:
        return executors[kind]
    except KeyError:
        raise UnknownStepKind(f"Unknown step type: {kind}", details={"kind": kind}) from None


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def option(step: Step, *names: str, default: Any = None) -> Any:
    """Return the first config value present under any of ``names``."""
    for name in names:
        value = step.config.get(name)
        if value is not None and value != "":
            return value
    return default


def number_option(step: Step, name: str, default: float, minimum: float = 0.0) -> float:
    """Read a numeric config value, rejecting garbage with ``ConfigurationError``."""
    value = step.config.get(name, default)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Step {step.id}: {name} must be a number", details={"value": value}
        ) from None
    if number < minimum:
        raise ConfigurationError(f"Step {step.id}: {name} must be >= {minimum}")
    return number
