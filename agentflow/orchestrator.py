"""Workflow orchestration engine."""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .cancellation import CancellationToken
from .context import ExecutionContext
from .contracts import (
    ExecutionRecord,
    RunResult,
    RunStatus,
    Step,
    StepError,
    StepResult,
    Workflow,
    utcnow,
)
from .errors import AlreadyRunning, RunCancelled, StepTimeout
from .executors import StepExecutor, get_executor
from .persistence import RunRepository
from .services import EngineServices

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float, str], Any]
ErrorCallback = Callable[[str, StepError], Any]
SuccessCallback = Callable[[str, StepResult], Any]


@dataclass
class RunCallbacks:
    """Notification hooks invoked while a run progresses.

    Hooks are called synchronously; coroutine hooks are awaited. Anything a
    hook raises is logged and ignored.
    """

    on_progress: Optional[ProgressCallback] = None
    on_error: Optional[ErrorCallback] = None
    on_success: Optional[SuccessCallback] = None


class Orchestrator:
    """Execute workflows one run at a time.

    Steps run in declared order. A step result carrying a
    ``next_step_override`` moves execution to that step instead.
    """

    def __init__(
        self,
        services: EngineServices,
        repository: Optional[RunRepository] = None,
        executors: Optional[Dict[str, StepExecutor]] = None,
    ) -> None:
        self._services = services
        self._repository = repository
        self._executors = executors
        self._lock = asyncio.Lock()
        self._context: Optional[ExecutionContext] = None
        self._records: List[ExecutionRecord] = []
        self.history: List[RunResult] = []

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    @property
    def context(self) -> Optional[ExecutionContext]:
        """Context of the active run, ``None`` when idle."""
        return self._context

    # ------------------------------------------------------------------
    async def run(
        self,
        workflow: Workflow,
        callbacks: Optional[RunCallbacks] = None,
        cancellation: Optional[CancellationToken] = None,
        variables: Optional[Dict[str, Any]] = None,
    ) -> RunResult:
        """Execute ``workflow`` and report every step outcome.

        Step failures are returned as data in the result records.

        Raises:
            AlreadyRunning: If this orchestrator is already executing a run.
        """
        if self._lock.locked():
            raise AlreadyRunning("A workflow is already running")
        async with self._lock:
            try:
                return await self._execute(
                    workflow, callbacks or RunCallbacks(), cancellation, variables
                )
            finally:
                self._context = None

    async def _execute(
        self,
        workflow: Workflow,
        callbacks: RunCallbacks,
        cancellation: Optional[CancellationToken],
        variables: Optional[Dict[str, Any]],
    ) -> RunResult:
        run_id = uuid.uuid4().hex
        started_at = utcnow()
        ctx = ExecutionContext(run_id, workflow=workflow, cancellation=cancellation)
        ctx.set_variable("run_id", run_id)
        ctx.set_variable("started_at", started_at.isoformat())
        ctx.merge_variables(workflow.variables)
        ctx.merge_variables(variables or {})
        self._context = ctx
        self._records = []

        logger.info(f"Run {run_id} started for workflow {workflow.id or workflow.name}")
        await self._persist(
            "create_run", run_id, workflow.id, workflow.name, ctx.snapshot()
        )

        steps = workflow.steps
        total = len(steps)
        max_steps = self._services.config.engine.max_steps_per_run
        status = RunStatus.COMPLETED
        index = 0
        dispatched = 0

        while index < total:
            if ctx.cancellation.cancelled:
                logger.info(f"Run {run_id} cancelled before step {steps[index].id}")
                status = RunStatus.CANCELLED
                break
            if dispatched >= max_steps:
                logger.error(f"Run {run_id} exceeded {max_steps} step dispatches")
                status = RunStatus.ABORTED
                break

            step = steps[index]
            await self._notify(
                callbacks.on_progress,
                step.id,
                index / total * 100,
                f"Executing {step.display_name}",
            )
            dispatched += 1
            await self._persist("mark_step_started", run_id, step.id, dispatched)

            try:
                result = await self._dispatch(step, ctx)
            except Exception as exc:
                error = StepError.from_exception(exc)
                logger.error(f"Step {step.id} failed: {error.type}: {error.message}")
                self._records.append(
                    ExecutionRecord(
                        step_id=step.id, step_name=step.display_name, success=False, error=error
                    )
                )
                await self._persist(
                    "mark_step_completed",
                    run_id,
                    step.id,
                    dispatched,
                    "failed",
                    None,
                    error.model_dump(),
                )
                await self._notify(callbacks.on_error, step.id, error)
                if isinstance(exc, RunCancelled):
                    status = RunStatus.CANCELLED
                    break
                if step.continue_on_error:
                    index += 1
                    continue
                status = RunStatus.ABORTED
                break

            ctx.record_result(step.id, result)
            ctx.merge_variables(result.variables)
            self._records.append(
                ExecutionRecord(
                    step_id=step.id, step_name=step.display_name, success=True, result=result
                )
            )
            await self._persist(
                "mark_step_completed",
                run_id,
                step.id,
                dispatched,
                "completed",
                result.model_dump(),
            )
            await self._persist("update_variables", run_id, ctx.snapshot())
            await self._notify(callbacks.on_success, step.id, result)

            if result.next_step_override:
                target = workflow.index_of(result.next_step_override)
                if target is None:
                    logger.error(
                        f"Step {step.id} branched to unknown step {result.next_step_override}"
                    )
                    status = RunStatus.ABORTED
                    break
                index = target
            else:
                index += 1

        await self._notify(callbacks.on_progress, "workflow", 100, f"Workflow {status.value}")
        result = RunResult(
            run_id=run_id,
            workflow_id=workflow.id,
            status=status,
            success=all(record.success for record in self._records),
            steps_executed=len(self._records),
            records=list(self._records),
            final_variables=ctx.snapshot(),
            started_at=started_at,
            finished_at=utcnow(),
        )
        await self._persist("mark_run_completed", run_id, status.value)
        self.history.append(result)
        logger.info(
            f"Run {run_id} finished with status {status.value} after {result.steps_executed} steps"
        )
        return result

    async def _dispatch(self, step: Step, ctx: ExecutionContext) -> StepResult:
        executor = get_executor(step.kind, self._executors)
        # Executors get a private copy; the workflow definition stays untouched.
        step = step.model_copy(deep=True)
        timeout = step.timeout
        if timeout is None:
            return await executor(step, ctx, self._services)
        try:
            return await asyncio.wait_for(executor(step, ctx, self._services), timeout)
        except asyncio.TimeoutError:
            raise StepTimeout(
                f"Step {step.id} timed out after {timeout}s", details={"timeout": timeout}
            ) from None

    # ------------------------------------------------------------------
    async def _notify(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        try:
            outcome = callback(*args)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception(f"Run callback {getattr(callback, '__name__', callback)} failed")

    async def _persist(self, method: str, *args: Any) -> None:
        if self._repository is None:
            return
        try:
            await getattr(self._repository, method)(*args)
        except Exception:
            logger.exception(f"Run repository call {method} failed")
