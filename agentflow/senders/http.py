"""HTTP email providers: Resend, SendGrid and Mailgun."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import ConfigurationError
from .base import MessageSender, OutboundMessage, SendOutcome

logger = logging.getLogger(__name__)


class HttpSender(MessageSender):
    """Shared plumbing for providers exposing a JSON/form HTTP API."""

    def __init__(
        self,
        api_key: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        if not api_key:
            raise ConfigurationError(f"{self.provider} API key required for sending emails")
        self._api_key = api_key
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _request(self, message: OutboundMessage) -> httpx.Response:
        raise NotImplementedError

    def _message_id(self, response: httpx.Response) -> Optional[str]:
        try:
            data: Dict[str, Any] = response.json()
        except ValueError:
            return None
        value = data.get("id") if isinstance(data, dict) else None
        return str(value) if value is not None else None

    async def send(self, message: OutboundMessage) -> SendOutcome:
        try:
            response = await self._request(message)
        except httpx.HTTPError as exc:
            logger.warning(f"{self.provider} send to {message.to} failed: {exc}")
            return SendOutcome(success=False, error=f"{self.provider} error: {exc}")

        if not response.is_success:
            error = f"{self.provider} error: HTTP {response.status_code} {response.text[:200]}"
            logger.warning(f"Send to {message.to} rejected: {error}")
            return SendOutcome(success=False, error=error)
        return SendOutcome(success=True, message_id=self._message_id(response))


class ResendSender(HttpSender):
    provider = "resend"
    endpoint = "https://api.resend.com/emails"

    async def _request(self, message: OutboundMessage) -> httpx.Response:
        return await self._get_client().post(
            self.endpoint,
            headers={"Authorization": f"Bearer {self._api_key}"},
            json={
                "from": message.from_address,
                "to": [message.to],
                "subject": message.subject,
                "text": message.body,
            },
        )


class SendGridSender(HttpSender):
    provider = "sendgrid"
    endpoint = "https://api.sendgrid.com/v3/mail/send"

    async def _request(self, message: OutboundMessage) -> httpx.Response:
        recipient: Dict[str, str] = {"email": message.to}
        if message.name:
            recipient["name"] = message.name
        return await self._get_client().post(
            self.endpoint,
            headers={"Authorization": f"Bearer {self._api_key}"},
            json={
                "personalizations": [{"to": [recipient]}],
                "from": {"email": message.from_address},
                "subject": message.subject,
                "content": [{"type": "text/plain", "value": message.body}],
            },
        )

    def _message_id(self, response: httpx.Response) -> Optional[str]:
        return response.headers.get("x-message-id")


class MailgunSender(HttpSender):
    provider = "mailgun"
    base_url = "https://api.mailgun.net/v3"

    def __init__(
        self,
        api_key: str,
        domain: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(api_key, client=client, timeout=timeout)
        if not domain:
            raise ConfigurationError("Mailgun requires a sending domain")
        self.domain = domain

    async def _request(self, message: OutboundMessage) -> httpx.Response:
        return await self._get_client().post(
            f"{self.base_url}/{self.domain}/messages",
            auth=("api", self._api_key),
            data={
                "from": message.from_address,
                "to": message.to,
                "subject": message.subject,
                "text": message.body,
            },
        )
