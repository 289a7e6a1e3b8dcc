"""AI analysis step: segment records and score priority with a language model."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..completion import CompletionOptions
from ..constants import (
    DEFAULT_ANALYSIS_PROMPT,
    DEFAULT_IDENTIFIER_FIELD,
    DEFAULT_PRIORITY_REASON,
    DEFAULT_PRIORITY_SCORE,
    DEFAULT_SEGMENT,
    HIGH_PRIORITY_THRESHOLD,
)
from ..contracts import Step, StepKind, StepResult
from ..errors import ConfigurationError, ParseError
from ..utils import extract_json_object
from .base import number_option, option, register_executor

if TYPE_CHECKING:
    from ..context import ExecutionContext
    from ..services import EngineServices

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = """You are an expert data analyst. Analyze the following contact data and provide insights:

Data: {sample}{remainder}

Analysis Request: {instruction}

Provide analysis in this JSON format:
{{
  "segments": [
    {{
      "name": "segment name",
      "criteria": "criteria used",
      "count": number,
      "characteristics": ["trait1", "trait2"]
    }}
  ],
  "insights": ["key insight 1", "key insight 2"],
  "recommendations": ["recommendation 1", "recommendation 2"],
  "priority_contacts": [
    {{
      "{identifier}": "contact {identifier}",
      "reason": "why this contact is priority",
      "score": number_out_of_100,
      "segment": "segment name"
    }}
  ]
}}
"""


class Segment(BaseModel):
    name: str
    criteria: str = ""
    count: Optional[int] = None
    characteristics: List[str] = Field(default_factory=list)


class PriorityRecord(BaseModel):
    """A record the model called out, keyed by whatever identifier it echoed."""

    model_config = ConfigDict(extra="allow")

    score: float = DEFAULT_PRIORITY_SCORE
    reason: str = DEFAULT_PRIORITY_REASON
    segment: Optional[str] = None

    @field_validator("score")
    @classmethod
    def _clamp_score(cls, value: float) -> float:
        return max(0.0, min(100.0, value))

    def key_for(self, identifier_field: str) -> Optional[str]:
        extra = self.model_extra or {}
        for name in (identifier_field, "email", "id"):
            value = extra.get(name)
            if value not in (None, ""):
                return str(value).strip().lower()
        return None


class AnalysisReport(BaseModel):
    segments: List[Segment] = Field(default_factory=list)
    insights: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    priority_records: List[PriorityRecord] = Field(
        default_factory=list,
        validation_alias=AliasChoices("priority_records", "priority_contacts"),
    )


def build_analysis_prompt(
    instruction: str, records: List[Dict[str, Any]], sample_size: int, identifier_field: str
) -> str:
    """Combine ``instruction`` with a bounded sample of ``records``."""
    sample = records[: max(1, sample_size)]
    remaining = len(records) - len(sample)
    remainder = f" ... and {remaining} more contacts" if remaining > 0 else ""
    return ANALYSIS_PROMPT.format(
        sample=json.dumps(sample, default=str),
        remainder=remainder,
        instruction=instruction,
        identifier=identifier_field,
    )


def parse_analysis(text: str) -> AnalysisReport:
    """Parse completion text into an ``AnalysisReport``.

    Raises:
        ParseError: If the text is not a JSON object of the expected shape.
    """
    data = extract_json_object(text)
    try:
        return AnalysisReport.model_validate(data)
    except ValidationError as exc:
        raise ParseError(f"Unexpected analysis shape: {exc.error_count()} errors") from exc


def _score(value: float) -> Any:
    return int(value) if float(value).is_integer() else value


def _segment_for(
    record: Dict[str, Any], priority: Optional[PriorityRecord], segments: List[Segment]
) -> str:
    if priority is not None and priority.segment:
        return priority.segment
    context = str(record.get("context") or "").lower()
    if context:
        for segment in segments:
            criteria = segment.criteria.strip().lower()
            if criteria and criteria in context:
                return segment.name
    return DEFAULT_SEGMENT


def annotate_records(
    records: List[Dict[str, Any]], report: AnalysisReport, identifier_field: str
) -> List[Dict[str, Any]]:
    """Attach priority score, reason and segment to every record."""
    priorities: Dict[str, PriorityRecord] = {}
    for entry in report.priority_records:
        key = entry.key_for(identifier_field)
        if key is not None:
            priorities.setdefault(key, entry)

    annotated = []
    for record in records:
        key = str(record.get(identifier_field) or "").strip().lower()
        priority = priorities.get(key)
        annotated.append(
            {
                **record,
                "analysis": {
                    "priority_score": _score(priority.score) if priority else DEFAULT_PRIORITY_SCORE,
                    "priority_reason": priority.reason if priority else DEFAULT_PRIORITY_REASON,
                    "segment": _segment_for(record, priority, report.segments),
                },
            }
        )
    return annotated


@register_executor(StepKind.AI_ANALYSIS)
async def execute_ai_analysis(
    step: Step, ctx: "ExecutionContext", services: "EngineServices"
) -> StepResult:
    records = ctx.get_upstream_field("records")
    if records is None:
        records = ctx.get_upstream_field("data")
    if not isinstance(records, list):
        raise ConfigurationError("No input data found for AI analysis")

    settings = services.config
    identifier_field = option(step, "identifier_field", default=DEFAULT_IDENTIFIER_FIELD)
    sample_size = int(
        number_option(step, "sample_size", settings.engine.analysis_sample_size, minimum=1)
    )
    instruction = option(step, "analysis_prompt", "prompt", default=DEFAULT_ANALYSIS_PROMPT)
    prompt = build_analysis_prompt(
        ctx.interpolate(instruction), records, sample_size, identifier_field
    )
    options = CompletionOptions(
        model=option(step, "model"),
        temperature=number_option(step, "temperature", settings.completion.analysis_temperature),
        max_tokens=int(number_option(step, "max_tokens", settings.completion.analysis_max_tokens, 1)),
    )

    ctx.cancellation.raise_if_cancelled()
    text = await services.completion.complete(prompt, options)
    try:
        report = parse_analysis(text)
        degraded = False
    except ParseError as exc:
        logger.warning(f"Step {step.id}: analysis not parseable ({exc}); using default annotations")
        report = AnalysisReport()
        degraded = True

    analyzed = annotate_records(records, report, identifier_field)
    high_priority = sum(
        1 for entry in report.priority_records if entry.score > HIGH_PRIORITY_THRESHOLD
    )
    logger.info(
        f"Step {step.id}: analyzed {len(analyzed)} records, "
        f"{len(report.segments)} segments, {high_priority} high priority"
    )
    return StepResult(
        kind=StepKind.AI_ANALYSIS.value,
        payload={
            "analyzed_data": analyzed,
            "segments": [segment.model_dump() for segment in report.segments],
            "insights": report.insights,
            "recommendations": report.recommendations,
            "priority_records": [entry.model_dump() for entry in report.priority_records],
            "degraded": degraded,
        },
        variables={
            "analysis_complete": True,
            "analysis_degraded": degraded,
            "segments_count": len(report.segments),
            "high_priority_count": high_priority,
        },
    )
