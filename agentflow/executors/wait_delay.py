"""Wait step: pause the run for a configured number of milliseconds."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..constants import DEFAULT_WAIT_DURATION_MS
from ..contracts import Step, StepKind, StepResult
from .base import number_option, register_executor, timestamp

if TYPE_CHECKING:
    from ..context import ExecutionContext
    from ..services import EngineServices


@register_executor(StepKind.WAIT_DELAY)
async def execute_wait_delay(
    step: Step, ctx: "ExecutionContext", services: "EngineServices"
) -> StepResult:
    duration = number_option(step, "duration", DEFAULT_WAIT_DURATION_MS)
    await ctx.cancellation.sleep(duration / 1000)
    return StepResult(
        kind=StepKind.WAIT_DELAY.value,
        payload={"wait_completed": True, "duration": duration, "completed_at": timestamp()},
        variables={"wait_completed": True},
    )
