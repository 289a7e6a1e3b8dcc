"""Shared variable context threaded through a workflow run."""

from __future__ import annotations

import copy
import logging
import re
from typing import Any, Dict, Mapping, Optional

from .cancellation import CancellationToken
from .contracts import StepResult, Workflow

logger = logging.getLogger(__name__)

TEMPLATE_TOKEN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


class ExecutionContext:
    """Variable bag plus ordered log of step results for a single run.

    Variables are last-writer-wins. The result log keeps execution order so
    that consumers can find the most recent producer of a given field.
    """

    def __init__(
        self,
        run_id: str,
        workflow: Optional[Workflow] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> None:
        self.run_id = run_id
        self.workflow = workflow
        self.cancellation = cancellation or CancellationToken()
        self._variables: Dict[str, Any] = {}
        self._results: Dict[str, StepResult] = {}

    # ------------------------------------------------------------------
    # Variables
    def set_variable(self, name: str, value: Any) -> None:
        self._variables[name] = value

    def get_variable(self, name: str, default: Any = None) -> Any:
        return self._variables.get(name, default)

    def has_variable(self, name: str) -> bool:
        return name in self._variables

    def merge_variables(self, delta: Mapping[str, Any]) -> None:
        for name, value in delta.items():
            self.set_variable(name, value)

    @property
    def variables(self) -> Dict[str, Any]:
        return dict(self._variables)

    def snapshot(self) -> Dict[str, Any]:
        """Deep copy of the current variables."""
        return copy.deepcopy(self._variables)

    # ------------------------------------------------------------------
    # Step results
    def record_result(self, step_id: str, result: StepResult) -> None:
        """Append ``result`` as the most recent output of ``step_id``.

        A step that runs again (through a branch) moves to the end of the log.
        """
        self._results.pop(step_id, None)
        self._results[step_id] = result

    def get_step_result(self, step_id: str) -> Optional[StepResult]:
        return self._results.get(step_id)

    @property
    def step_ids(self) -> list[str]:
        return list(self._results)

    def get_upstream_field(self, field_name: str) -> Any:
        """Return ``field_name`` from the most recent result that carries it."""
        for step_id in reversed(self._results):
            result = self._results[step_id]
            if result.has_field(field_name):
                logger.debug(f"Resolved upstream field {field_name!r} from step {step_id}")
                return result.get(field_name)
        return None

    # ------------------------------------------------------------------
    # Templates
    def interpolate(self, template: str, local_vars: Optional[Mapping[str, Any]] = None) -> str:
        """Replace ``{{name}}`` tokens from ``local_vars`` then the context.

        Unresolved tokens are left verbatim.
        """
        local_vars = local_vars or {}

        def _replace(match: re.Match) -> str:
            name = match.group(1)
            value = local_vars.get(name)
            if value is None:
                value = self._variables.get(name)
            if value is None:
                return match.group(0)
            return str(value)

        return TEMPLATE_TOKEN.sub(_replace, template)
