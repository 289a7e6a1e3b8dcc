"""agentflow: ordered AI workflow orchestration for data, content and outreach."""

from .cancellation import CancellationToken
from .context import ExecutionContext
from .contracts import ExecutionRecord, RunResult, RunStatus, Step, StepKind, StepResult, Workflow
from .errors import (
    AgentflowError,
    AlreadyRunning,
    ConfigurationError,
    ExternalServiceError,
    ParseError,
    SourceUnavailable,
    UnknownStepKind,
)
from .orchestrator import Orchestrator, RunCallbacks
from .persistence import get_repository
from .services import EngineServices, build_services

__version__ = "0.1.0"
__all__ = [
    "AgentflowError",
    "AlreadyRunning",
    "CancellationToken",
    "ConfigurationError",
    "EngineServices",
    "ExecutionContext",
    "ExecutionRecord",
    "ExternalServiceError",
    "Orchestrator",
    "ParseError",
    "RunCallbacks",
    "RunResult",
    "RunStatus",
    "SourceUnavailable",
    "Step",
    "StepKind",
    "StepResult",
    "UnknownStepKind",
    "Workflow",
    "build_services",
    "get_repository",
]
