"""Outbound message providers and factory."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from ..errors import ConfigurationError
from .base import MessageSender, OutboundMessage, SendOutcome
from .http import HttpSender, MailgunSender, ResendSender, SendGridSender
from .inmemory import RecordingSender, SimulatedSender

CREDENTIAL_FREE_PROVIDERS = frozenset({"simulate"})


def requires_credential(provider: str) -> bool:
    return provider.lower() not in CREDENTIAL_FREE_PROVIDERS


def get_sender(
    provider: str,
    api_key: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    **options: Any,
) -> MessageSender:
    """Factory function returning the adapter for ``provider``."""

    provider = provider.lower()
    if provider == "simulate":
        return SimulatedSender()
    if not api_key:
        raise ConfigurationError(
            f"{provider} API key required for sending emails",
            details={"service": provider},
        )
    if provider == "resend":
        return ResendSender(api_key, client=client)
    elif provider == "sendgrid":
        return SendGridSender(api_key, client=client)
    elif provider == "mailgun":
        return MailgunSender(api_key, domain=options.get("domain"), client=client)
    else:
        raise ConfigurationError(
            f"Unsupported email service: {provider}", details={"service": provider}
        )


__all__ = [
    "HttpSender",
    "MailgunSender",
    "MessageSender",
    "OutboundMessage",
    "RecordingSender",
    "ResendSender",
    "SendGridSender",
    "SendOutcome",
    "SimulatedSender",
    "get_sender",
    "requires_credential",
]
