"""Exception taxonomy for agentflow workflow runs."""

from __future__ import annotations

from typing import Any, Dict, Optional


class AgentflowError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})


class ConfigurationError(AgentflowError):
    """Missing or invalid credential or required configuration field."""


class SourceUnavailable(AgentflowError):
    """A data import could not be fetched or yielded no usable rows."""


class ExternalServiceError(AgentflowError):
    """Network or provider failure while talking to an external service."""


class ParseError(AgentflowError):
    """A model response did not match the expected shape.

    Executors recover from this locally by substituting defaults; it never
    reaches the orchestrator.
    """


class AlreadyRunning(AgentflowError):
    """Raised when ``Orchestrator.run`` is called while another run is active."""


class UnknownStepKind(AgentflowError):
    """The workflow references a step kind with no registered executor."""


class RunCancelled(AgentflowError):
    """Cooperative cancellation was requested while a step was in flight."""


class StepTimeout(AgentflowError):
    """A step exceeded its configured timeout."""
