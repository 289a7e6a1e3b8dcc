"""Repository abstraction for run history persistence."""

from __future__ import annotations

from typing import Protocol

from .models import RunInstance


class RunRepository(Protocol):
    """Protocol for run history backends."""

    async def create_run(
        self,
        run_id: str,
        workflow_id: str | None = None,
        workflow_name: str | None = None,
        variables: dict | None = None,
    ) -> None:
        """Persist a newly started run."""

    async def mark_step_started(self, run_id: str, step_id: str, sequence: int) -> None:
        """Record the dispatch of a step."""

    async def mark_step_completed(
        self,
        run_id: str,
        step_id: str,
        sequence: int,
        status: str,
        output: dict | None = None,
        error: dict | None = None,
    ) -> None:
        """Record the outcome of a dispatched step."""

    async def update_variables(self, run_id: str, variables: dict) -> None:
        """Persist the current context variables."""

    async def mark_run_completed(self, run_id: str, status: str = "completed") -> None:
        """Mark the run as finished."""

    async def get_run(self, run_id: str) -> RunInstance | None:
        """Retrieve a run by id."""

    async def list_runs(self) -> list[RunInstance]:
        """Return all persisted runs, oldest first."""
