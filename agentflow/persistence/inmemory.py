"""In-memory implementation of the run repository."""

from __future__ import annotations

import copy
from typing import Dict

from ..contracts import utcnow
from .models import RunInstance, StepRecord
from .repository import RunRepository


class InMemoryRunRepository(RunRepository):
    """Keep run history in local memory.

    Used when no database is configured. Data does not survive a restart.
    """

    def __init__(self) -> None:
        self._runs: Dict[str, RunInstance] = {}
        self._step_id = 0

    # ------------------------------------------------------------------
    async def create_run(
        self,
        run_id: str,
        workflow_id: str | None = None,
        workflow_name: str | None = None,
        variables: dict | None = None,
    ) -> None:
        self._runs[run_id] = RunInstance(
            run_id=run_id,
            workflow_id=workflow_id,
            workflow_name=workflow_name,
            variables=copy.deepcopy(variables or {}),
            status="running",
            started_at=utcnow(),
        )

    async def mark_step_started(self, run_id: str, step_id: str, sequence: int) -> None:
        run = self._runs.get(run_id)
        if not run:
            return
        self._step_id += 1
        run.steps.append(
            StepRecord(
                id=self._step_id,
                run_id=run_id,
                step_id=step_id,
                sequence=sequence,
                started_at=utcnow(),
            )
        )

    async def mark_step_completed(
        self,
        run_id: str,
        step_id: str,
        sequence: int,
        status: str,
        output: dict | None = None,
        error: dict | None = None,
    ) -> None:
        run = self._runs.get(run_id)
        if not run:
            return
        for step in run.steps:
            if step.step_id == step_id and step.sequence == sequence:
                step.completed_at = utcnow()
                step.status = status
                step.output = copy.deepcopy(output or {})
                step.error = error
                break

    async def update_variables(self, run_id: str, variables: dict) -> None:
        run = self._runs.get(run_id)
        if run:
            run.variables = copy.deepcopy(variables)

    async def mark_run_completed(self, run_id: str, status: str = "completed") -> None:
        run = self._runs.get(run_id)
        if run:
            run.status = status
            run.finished_at = utcnow()

    async def get_run(self, run_id: str) -> RunInstance | None:
        return self._runs.get(run_id)

    async def list_runs(self) -> list[RunInstance]:
        return list(self._runs.values())
