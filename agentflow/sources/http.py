"""HTTP data source for CSV exports and JSON APIs."""

from __future__ import annotations

import csv
import io
import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from ..cancellation import CancellationToken
from ..errors import ConfigurationError, SourceUnavailable
from ..utils import retry
from .base import TabularSource

logger = logging.getLogger(__name__)

_SHEET_ID = re.compile(r"/spreadsheets/d/([a-zA-Z0-9-_]+)")
_SHEET_GID = re.compile(r"[#&?]gid=(\d+)")
_JSON_LIST_KEYS = ("records", "data", "items", "rows", "results")


def sheet_export_url(url: str) -> str:
    """Rewrite a Google Sheets share URL into its CSV export URL.

    Raises:
        ConfigurationError: If ``url`` does not reference a spreadsheet.
    """
    match = _SHEET_ID.search(url)
    if not match:
        raise ConfigurationError("Invalid Google Sheets URL", details={"url": url})
    gid_match = _SHEET_GID.search(url)
    gid = gid_match.group(1) if gid_match else "0"
    return (
        f"https://docs.google.com/spreadsheets/d/{match.group(1)}"
        f"/export?format=csv&gid={gid}"
    )


def parse_csv_rows(text: str) -> List[Dict[str, Any]]:
    """Parse CSV text into rows keyed by the header line."""
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    rows: List[Dict[str, Any]] = []
    for raw in reader:
        row = {
            (key or "").strip(): (value.strip() if isinstance(value, str) else value)
            for key, value in raw.items()
            if key is not None
        }
        if any(value for value in row.values()):
            rows.append(row)
    return rows


def _flatten(record: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for key, value in record.items():
        name = f"{prefix}_{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(_flatten(value, name))
        else:
            flat[name] = value
    return flat


def parse_json_rows(payload: Any) -> List[Dict[str, Any]]:
    """Turn a decoded JSON document into flat rows."""
    items = payload
    if isinstance(payload, dict):
        items = next(
            (payload[key] for key in _JSON_LIST_KEYS if isinstance(payload.get(key), list)),
            None,
        )
    if not isinstance(items, list):
        raise SourceUnavailable("JSON response does not contain a list of records")
    return [_flatten(item) for item in items if isinstance(item, dict)]


class HttpTabularSource(TabularSource):
    """Fetch tabular data over HTTP using ``httpx``.

    CSV and JSON responses are both understood; the format is chosen from
    the response content type and falls back to sniffing the body.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        max_attempts: int = 3,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._max_attempts = max(1, max_attempts)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _get(
        self, url: str, cancellation: Optional[CancellationToken] = None
    ) -> httpx.Response:
        client = self._get_client()
        for attempt in range(1, self._max_attempts + 1):
            last = attempt == self._max_attempts
            try:
                response = await client.get(url)
            except httpx.HTTPError as exc:
                if last:
                    raise SourceUnavailable(
                        f"Failed to fetch {url}: {exc}", details={"url": url}
                    ) from exc
                logger.warning(f"Fetch of {url} failed ({exc}); retrying")
                await retry.schedule_retry(attempt, cancellation)
                continue

            if response.is_success:
                return response
            if retry.is_retryable_status(response.status_code) and not last:
                logger.warning(f"Fetch of {url} returned {response.status_code}; retrying")
                await retry.schedule_retry(attempt, cancellation)
                continue
            raise SourceUnavailable(
                f"Failed to fetch {url}: HTTP {response.status_code}",
                details={"url": url, "status_code": response.status_code},
            )
        raise SourceUnavailable(f"Failed to fetch {url}", details={"url": url})

    async def fetch(
        self, url: str, cancellation: Optional[CancellationToken] = None
    ) -> List[Dict[str, Any]]:
        logger.debug(f"Fetching tabular data from {url}")
        response = await self._get(url, cancellation)
        content_type = response.headers.get("content-type", "").lower()
        body = response.text
        if "json" in content_type or body.lstrip().startswith(("[", "{")):
            try:
                payload = json.loads(body)
            except json.JSONDecodeError as exc:
                raise SourceUnavailable(f"Invalid JSON from {url}", details={"url": url}) from exc
            return parse_json_rows(payload)
        return parse_csv_rows(body)
