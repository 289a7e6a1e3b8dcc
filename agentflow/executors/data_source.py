"""Data import step."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Dict, List, Tuple

from ..constants import DEFAULT_IDENTIFIER_FIELD
from ..contracts import Step, StepKind, StepResult
from ..errors import ConfigurationError, ExternalServiceError, SourceUnavailable
from ..sources import sheet_export_url
from .base import option, register_executor

if TYPE_CHECKING:
    from ..context import ExecutionContext
    from ..services import EngineServices

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_header(header: Any) -> str:
    """Lower-case a header and collapse inner whitespace to ``_``."""
    text = str(header or "").strip().strip('"').strip()
    return _WHITESPACE.sub("_", text).lower()


def normalize_records(
    rows: List[Dict[str, Any]], identifier_field: str
) -> Tuple[List[Dict[str, Any]], int]:
    """Re-key rows by normalized headers and drop rows missing the identifier.

    Returns the kept records and how many rows were dropped.
    """
    records: List[Dict[str, Any]] = []
    dropped = 0
    for row in rows:
        record: Dict[str, Any] = {}
        for key, value in row.items():
            name = normalize_header(key)
            if name:
                record[name] = value
        identifier = record.get(identifier_field)
        if identifier is None or (isinstance(identifier, str) and not identifier.strip()):
            dropped += 1
            continue
        records.append(record)
    return records, dropped


def resolve_source(step: Step) -> Tuple[str, str]:
    """Return ``(url, label)`` for the source configured on ``step``."""
    sheet_url = option(step, "sheet_url")
    if sheet_url:
        return sheet_export_url(sheet_url), "google_sheets"
    csv_url = option(step, "csv_url", "csv_file")
    if csv_url:
        return csv_url, "csv"
    endpoint = option(step, "api_endpoint", "url")
    if endpoint:
        return endpoint, "api"
    raise ConfigurationError(f"No valid data source configured for step {step.id}")


@register_executor(StepKind.DATA_SOURCE)
async def execute_data_source(
    step: Step, ctx: "ExecutionContext", services: "EngineServices"
) -> StepResult:
    url, label = resolve_source(step)
    identifier_field = normalize_header(
        option(step, "identifier_field", default=DEFAULT_IDENTIFIER_FIELD)
    )

    try:
        rows = await services.data_source.fetch(url, cancellation=ctx.cancellation)
    except ExternalServiceError as exc:
        raise SourceUnavailable(f"Failed to read {label} source: {exc}", details={"url": url}) from exc

    records, dropped = normalize_records(rows, identifier_field)
    if dropped:
        logger.info(f"Step {step.id}: dropped {dropped} rows without {identifier_field!r}")
    if not records:
        raise SourceUnavailable(
            f"{label} source returned no usable rows", details={"url": url, "dropped": dropped}
        )

    count = len(records)
    logger.info(f"Step {step.id}: imported {count} records from {label}")
    return StepResult(
        kind=StepKind.DATA_SOURCE.value,
        payload={"records": records, "count": count, "dropped": dropped, "source": label},
        variables={"data_count": count, "data_source": label},
    )
