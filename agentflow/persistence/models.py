"""Data models for persisted run history."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class StepRecord(BaseModel):
    """Record of one step dispatch within a run."""

    id: Optional[int] = None
    run_id: str
    step_id: str
    sequence: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    status: Optional[str] = None
    output: Optional[dict[str, Any]] = None
    error: Optional[dict[str, Any]] = None


class RunInstance(BaseModel):
    """Persisted run data."""

    run_id: str
    workflow_id: Optional[str] = None
    workflow_name: Optional[str] = None
    variables: dict[str, Any] = Field(default_factory=dict)
    status: str = "running"
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    steps: list[StepRecord] = Field(default_factory=list)
