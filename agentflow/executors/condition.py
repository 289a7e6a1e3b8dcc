"""Condition step: evaluate an expression and optionally pick a branch."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from ..conditions import evaluate
from ..constants import FALSE_PATH, TRUE_PATH
from ..contracts import Step, StepKind, StepResult, Workflow
from .base import option, register_executor

if TYPE_CHECKING:
    from ..context import ExecutionContext
    from ..services import EngineServices

logger = logging.getLogger(__name__)

BRANCH_CONFIG_KEYS = {
    True: ("true_step", "true_path", "truePath", "on_true"),
    False: ("false_step", "false_path", "falsePath", "on_false"),
}
_BRANCH_OUTPUT_NAMES = {
    True: {"true_path", "truepath", "true"},
    False: {"false_path", "falsepath", "false"},
}


def branch_target(step: Step, outcome: bool, workflow: Optional[Workflow]) -> Optional[str]:
    """Return the step id wired to ``outcome``, if the workflow names one.

    Explicit config keys win over connections leaving ``step`` through a
    ``true_path``/``false_path`` output.
    """
    target = option(step, *BRANCH_CONFIG_KEYS[outcome])
    if target:
        return str(target)
    if workflow is None:
        return None
    for connection in workflow.connections_from(step.id):
        output = (connection.source_output or "").lower()
        if output in _BRANCH_OUTPUT_NAMES[outcome]:
            return connection.target
    return None


@register_executor(StepKind.CONDITION)
async def execute_condition(
    step: Step, ctx: "ExecutionContext", services: "EngineServices"
) -> StepResult:
    expression = option(step, "condition_logic", "expression", "condition", default="true")
    outcome = evaluate(expression, ctx.variables)
    target = branch_target(step, outcome, ctx.workflow)
    logger.info(f"Step {step.id}: condition {expression!r} -> {outcome}")
    if target:
        logger.debug(f"Step {step.id}: branching to {target}")
    return StepResult(
        kind=StepKind.CONDITION.value,
        payload={
            "condition_result": outcome,
            "next_path": TRUE_PATH if outcome else FALSE_PATH,
            "expression": expression,
        },
        variables={"condition_result": outcome},
        next_step_override=target,
    )
