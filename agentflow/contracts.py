"""Core data contracts for agentflow workflows and runs."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


_TRUE_STRINGS = frozenset({"true", "1", "yes"})


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StepKind(str, Enum):
    """Step kinds the engine knows how to execute."""

    DATA_SOURCE = "data_source"
    AI_ANALYSIS = "ai_analysis"
    AI_CONTENT = "ai_content"
    CONDITION = "condition"
    EMAIL_SEND = "email_send"
    WAIT_DELAY = "wait_delay"


class Step(BaseModel):
    """One unit of work in a workflow.

    ``kind`` is kept as the raw string from the workflow definition so that
    unknown kinds survive loading and are rejected only when dispatched.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    kind: str = Field(alias="type")
    name: str = ""
    description: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)
    inputs: List[str] = Field(default_factory=list)
    outputs: List[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def continue_on_error(self) -> bool:
        """Whether the run proceeds past a failure of this step."""
        value = self.config.get("continueOnError", self.config.get("continue_on_error"))
        if isinstance(value, str):
            return value.strip().lower() in _TRUE_STRINGS
        return value is True or (_is_number(value) and value != 0)

    @property
    def timeout(self) -> Optional[float]:
        """Per-step timeout in seconds, if configured."""
        value = self.config.get("timeout")
        if value is None:
            return None
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid timeout {value!r} on step {self.id}")
            return None
        return seconds if seconds > 0 else None


class Connection(BaseModel):
    """Declared edge between two steps. Informational for ordering."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: Optional[str] = None
    source: str = Field(alias="from")
    target: str = Field(alias="to")
    source_output: Optional[str] = Field(default=None, alias="fromOutput")
    target_input: Optional[str] = Field(default=None, alias="toInput")


class Workflow(BaseModel):
    """A user-authored pipeline executed in declared step order."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: Optional[str] = None
    name: str = "Untitled Workflow"
    description: Optional[str] = None
    variables: Dict[str, Any] = Field(default_factory=dict)
    steps: List[Step] = Field(default_factory=list)
    connections: List[Connection] = Field(default_factory=list)

    def index_of(self, step_id: str) -> Optional[int]:
        """Return the array position of ``step_id`` or ``None``."""
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        return None

    def get_step(self, step_id: str) -> Optional[Step]:
        index = self.index_of(step_id)
        return self.steps[index] if index is not None else None

    def connections_from(self, step_id: str) -> List[Connection]:
        return [c for c in self.connections if c.source == step_id]


class StepResult(BaseModel):
    """Typed output and variable deltas produced by one executor."""

    kind: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    variables: Dict[str, Any] = Field(default_factory=dict)
    next_step_override: Optional[str] = None

    def has_field(self, name: str) -> bool:
        return self.payload.get(name) is not None

    def get(self, name: str, default: Any = None) -> Any:
        return self.payload.get(name, default)


class StepError(BaseModel):
    """Serializable description of a step failure."""

    type: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "StepError":
        return cls(
            type=exc.__class__.__name__,
            message=str(exc) or exc.__class__.__name__,
            details=dict(getattr(exc, "details", {}) or {}),
        )


class ExecutionRecord(BaseModel):
    """Immutable audit entry for one dispatched step."""

    model_config = ConfigDict(frozen=True)

    step_id: str
    step_name: str
    success: bool
    result: Optional[StepResult] = None
    error: Optional[StepError] = None
    timestamp: datetime = Field(default_factory=utcnow)


class RunStatus(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    CANCELLED = "cancelled"


class RunResult(BaseModel):
    """Final report of one orchestrator run."""

    run_id: str
    workflow_id: Optional[str] = None
    status: RunStatus = RunStatus.COMPLETED
    success: bool
    steps_executed: int
    records: List[ExecutionRecord] = Field(default_factory=list)
    final_variables: Dict[str, Any] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    def record_for(self, step_id: str) -> Optional[ExecutionRecord]:
        """Return the most recent record for ``step_id``."""
        for record in reversed(self.records):
            if record.step_id == step_id:
                return record
        return None
