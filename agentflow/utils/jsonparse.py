"""Extraction of JSON objects from free-form model output."""

from __future__ import annotations

import json
import re
from typing import Any, Dict

from ..errors import ParseError

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def extract_json_object(text: Any) -> Dict[str, Any]:
    """Parse the first JSON object found in ``text``.

    Models often wrap JSON in markdown fences or surround it with prose, so
    fenced blocks are tried first and then the outermost ``{...}`` span.

    Raises:
        ParseError: If no JSON object can be decoded.
    """
    if not isinstance(text, str) or not text.strip():
        raise ParseError("Empty completion")

    candidates = [match.strip() for match in _FENCE.findall(text)]
    candidates.append(text.strip())
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value
    raise ParseError("Completion is not a JSON object", details={"preview": text[:200]})
