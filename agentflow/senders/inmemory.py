"""Senders that never leave the process."""

from __future__ import annotations

import logging
import uuid
from typing import Iterable, List, Optional, Set

from .base import MessageSender, OutboundMessage, SendOutcome

logger = logging.getLogger(__name__)


class SimulatedSender(MessageSender):
    """Pretend to deliver every message. Useful for dry runs."""

    provider = "simulate"

    def __init__(self) -> None:
        self.sent: List[OutboundMessage] = []

    async def send(self, message: OutboundMessage) -> SendOutcome:
        self.sent.append(message)
        logger.info(f"Simulated email to {message.to}: {message.subject}")
        return SendOutcome(success=True, message_id=f"sim-{uuid.uuid4().hex[:12]}")


class RecordingSender(MessageSender):
    """Record messages and fail for selected recipients."""

    provider = "recording"

    def __init__(self, fail_for: Optional[Iterable[str]] = None) -> None:
        self.fail_for: Set[str] = set(fail_for or [])
        self.sent: List[OutboundMessage] = []
        self.attempted: List[str] = []

    async def send(self, message: OutboundMessage) -> SendOutcome:
        self.attempted.append(message.to)
        if message.to in self.fail_for:
            return SendOutcome(success=False, error=f"Delivery to {message.to} rejected")
        self.sent.append(message)
        return SendOutcome(success=True, message_id=f"msg-{len(self.sent)}")
