"""Base interface for outbound message providers."""

from __future__ import annotations

import abc
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class OutboundMessage(BaseModel):
    """A single email to deliver."""

    model_config = ConfigDict(populate_by_name=True)

    to: str
    from_address: str = Field(alias="from")
    subject: str
    body: str
    name: Optional[str] = None
    preview_text: Optional[str] = None


class SendOutcome(BaseModel):
    """Result of one delivery attempt."""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class MessageSender(metaclass=abc.ABCMeta):
    """Provider adapter delivering one message per call."""

    provider: str = "unknown"

    @abc.abstractmethod
    async def send(self, message: OutboundMessage) -> SendOutcome:
        """Deliver ``message`` and report the outcome."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release provider resources (no-op by default)."""
        pass
