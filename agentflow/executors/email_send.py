"""Email send step: deliver generated content through a provider adapter."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List

from ..contracts import Step, StepKind, StepResult
from ..errors import ConfigurationError, RunCancelled
from ..senders import OutboundMessage, SendOutcome, requires_credential
from .base import number_option, option, register_executor, timestamp

if TYPE_CHECKING:
    from ..context import ExecutionContext
    from ..services import EngineServices

logger = logging.getLogger(__name__)


def build_message(bundle: Dict[str, Any], from_email: str) -> OutboundMessage:
    record = bundle.get("record") or {}
    content = bundle.get("content") or {}
    return OutboundMessage(
        to=str(record.get("email") or ""),
        from_address=from_email,
        subject=str(content.get("subject") or ""),
        body=str(content.get("body") or ""),
        name=str(record.get("name") or "Valued Customer"),
        preview_text=content.get("preview_text"),
    )


@register_executor(StepKind.EMAIL_SEND)
async def execute_email_send(
    step: Step, ctx: "ExecutionContext", services: "EngineServices"
) -> StepResult:
    content_results = ctx.get_upstream_field("content_results")
    if not isinstance(content_results, list):
        raise ConfigurationError("No email content found for sending")

    email_config = services.config.email
    provider = str(option(step, "email_service", "provider", default=email_config.provider)).lower()
    from_email = option(step, "from_email", default=email_config.from_email)
    delay = number_option(step, "send_delay", services.config.engine.send_delay)

    api_key = services.credentials.get_credential(provider)
    if requires_credential(provider) and not api_key:
        raise ConfigurationError(
            f"{provider} API key required for sending emails", details={"service": provider}
        )
    sender = services.sender_factory(
        provider, api_key, domain=option(step, "domain", default=email_config.mailgun_domain)
    )

    send_results: List[Dict[str, Any]] = []
    try:
        for position, bundle in enumerate(content_results):
            if position:
                await ctx.cancellation.sleep(delay)
            else:
                ctx.cancellation.raise_if_cancelled()

            record = bundle.get("record") if isinstance(bundle, dict) else None
            recipient = (record.get("email") if isinstance(record, dict) else None) or "?"
            subject = None
            try:
                message = build_message(bundle, from_email)
                subject = message.subject
                if message.to:
                    outcome = await sender.send(message)
                else:
                    outcome = SendOutcome(success=False, error="Record has no email address")
            except (ConfigurationError, RunCancelled):
                raise
            except Exception as exc:
                outcome = SendOutcome(success=False, error=f"{type(exc).__name__}: {exc}")
            if not outcome.success:
                logger.warning(f"Step {step.id}: send to {recipient} failed: {outcome.error}")
            send_results.append(
                {
                    "record": record,
                    "success": outcome.success,
                    "message_id": outcome.message_id,
                    "subject": subject,
                    "error": outcome.error,
                    "timestamp": timestamp(),
                }
            )
    finally:
        await sender.close()

    success_count = sum(1 for result in send_results if result["success"])
    error_count = len(send_results) - success_count
    success_rate = (success_count / len(send_results) * 100) if send_results else 0
    logger.info(f"Step {step.id}: {success_count} sent, {error_count} failed via {provider}")
    return StepResult(
        kind=StepKind.EMAIL_SEND.value,
        payload={
            "send_results": send_results,
            "success_count": success_count,
            "error_count": error_count,
            "success_rate": success_rate,
            "provider": provider,
        },
        variables={
            "emails_sent": success_count,
            "emails_failed": error_count,
            "send_success_rate": success_rate,
        },
    )
