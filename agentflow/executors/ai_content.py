"""AI content step: one generated message per annotated record."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError, field_validator

from ..completion import CompletionOptions
from ..constants import (
    DEFAULT_BRAND_VOICE,
    DEFAULT_CONTENT_TEMPLATE,
    DEFAULT_PRIORITY_REASON,
    DEFAULT_PRIORITY_SCORE,
    DEFAULT_SEGMENT,
)
from ..contracts import Step, StepKind, StepResult
from ..errors import ConfigurationError, ParseError, RunCancelled
from ..utils import extract_json_object
from .base import number_option, option, register_executor, timestamp

if TYPE_CHECKING:
    from ..context import ExecutionContext
    from ..services import EngineServices

logger = logging.getLogger(__name__)

FALLBACK_PERSONALIZATION_SCORE = 30

CONTENT_PROMPT = """Create a professional and personalized email for this contact:

Contact Details:
- Name: {name}
- Company: {company}
- Email: {email}
- Context: {context}
- Priority Score: {priority_score}/100
- Segment: {segment}

Brand Voice: {brand_voice}
Content Request: {request}

Create an email that opens with a personalized greeting, references the
contact's company and context naturally, and ends with a clear call to action
matching the {brand_voice} brand voice.

Format as JSON:
{{
  "subject": "subject line",
  "body": "full email body with greeting and signature",
  "preview_text": "email preview text that appears in inbox",
  "cta_primary": "main call to action text",
  "cta_url": "suggested landing page or booking link",
  "personalization_score": number_out_of_100
}}
"""


class GeneratedContent(BaseModel):
    subject: str
    body: str
    preview_text: str = ""
    cta_primary: str = ""
    cta_url: str = ""
    personalization_score: float = 0

    @field_validator("personalization_score")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return max(0.0, min(100.0, value))


def fallback_content(record: Dict[str, Any]) -> GeneratedContent:
    """Generic message used when generation fails for ``record``."""
    name = record.get("name") or "there"
    return GeneratedContent(
        subject=f"A quick note for {record.get('name') or 'you'}",
        body=(
            f"Hi {name},\n\n"
            "I wanted to reach out about how we could help your team.\n\n"
            "Interested in learning more?\n\n"
            "Best regards"
        ),
        preview_text="A quick note from our team",
        cta_primary="Learn More",
        cta_url="#",
        personalization_score=FALLBACK_PERSONALIZATION_SCORE,
    )


def template_variables(record: Dict[str, Any]) -> Dict[str, Any]:
    """Per-record values available to the content template."""
    analysis = record.get("analysis") or {}
    local_vars = {key: value for key, value in record.items() if key != "analysis"}
    local_vars.update(
        {
            "contact_name": record.get("name") or record.get("first_name") or "there",
            "company": record.get("company") or "your company",
            "email": record.get("email"),
            "context": record.get("context") or "",
            "priority_score": analysis.get("priority_score", DEFAULT_PRIORITY_SCORE),
            "priority_reason": analysis.get("priority_reason", DEFAULT_PRIORITY_REASON),
            "segment": analysis.get("segment", DEFAULT_SEGMENT),
        }
    )
    return local_vars


def parse_content(text: str) -> GeneratedContent:
    data = extract_json_object(text)
    try:
        return GeneratedContent.model_validate(data)
    except ValidationError as exc:
        raise ParseError(f"Unexpected content shape: {exc.error_count()} errors") from exc


def _average(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0


@register_executor(StepKind.AI_CONTENT)
async def execute_ai_content(
    step: Step, ctx: "ExecutionContext", services: "EngineServices"
) -> StepResult:
    records: Optional[List[Dict[str, Any]]] = ctx.get_upstream_field("analyzed_data")
    if records is None:
        records = ctx.get_upstream_field("records")
    if not isinstance(records, list):
        raise ConfigurationError("No record data found for content generation")

    settings = services.config
    template = option(step, "template", "content_template", default=DEFAULT_CONTENT_TEMPLATE)
    brand_voice = option(step, "brand_voice", default=DEFAULT_BRAND_VOICE)
    delay = number_option(step, "request_delay", settings.engine.content_delay)
    options = CompletionOptions(
        model=option(step, "model"),
        temperature=number_option(step, "temperature", settings.completion.content_temperature),
        max_tokens=int(number_option(step, "max_tokens", settings.completion.content_max_tokens, 1)),
    )

    content_results: List[Dict[str, Any]] = []
    fallback_count = 0
    for position, record in enumerate(records):
        if position:
            await ctx.cancellation.sleep(delay)
        else:
            ctx.cancellation.raise_if_cancelled()

        local_vars = template_variables(record)
        request = ctx.interpolate(template, local_vars)
        prompt = CONTENT_PROMPT.format(
            name=record.get("name") or "Valued Prospect",
            company=record.get("company") or "their company",
            email=record.get("email"),
            context=record.get("context") or "General inquiry",
            priority_score=local_vars["priority_score"],
            segment=local_vars["segment"],
            brand_voice=brand_voice,
            request=request,
        )
        bundle: Dict[str, Any] = {"record": record, "prompt": request}
        try:
            content = parse_content(await services.completion.complete(prompt, options))
        except (ConfigurationError, RunCancelled):
            raise
        except Exception as exc:
            logger.warning(
                f"Step {step.id}: content generation failed for {record.get('email')}: {exc}"
            )
            content = fallback_content(record)
            bundle["error"] = str(exc)
            fallback_count += 1
        bundle["content"] = content.model_dump()
        bundle["generated_at"] = timestamp()
        content_results.append(bundle)

    scores = [bundle["content"]["personalization_score"] for bundle in content_results]
    logger.info(
        f"Step {step.id}: generated {len(content_results)} messages ({fallback_count} fallbacks)"
    )
    return StepResult(
        kind=StepKind.AI_CONTENT.value,
        payload={
            "content_results": content_results,
            "total_generated": len(content_results),
            "fallback_count": fallback_count,
        },
        variables={
            "content_generated": len(content_results),
            "avg_personalization_score": _average(scores),
        },
    )
