"""Pull the scoring JSON object out of a model reply that may wrap it in prose."""

from __future__ import annotations
import json
import re
from typing import Any

_FENCED = re.compile(r"```(?:json|JSON)?\s*(.*?)\s*```", re.DOTALL)
_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def _candidates(text: str) -> list[str]:
    """Whole reply, any fenced block, then the widest {...} span."""
    found = [text.strip()]
    found.extend(m.group(1) for m in _FENCED.finditer(text))
    m = _OBJECT.search(text)
    if m:
        found.append(m.group(0))
    return found


def extract_object(text: str) -> dict[str, Any]:
    """
    Return the first candidate that parses as a JSON object, else {}.
    Arrays and scalars count as failures: the caller wants named fields.
    """
    if not text:
        return {}
    for candidate in _candidates(text):
        try:
            data = json.loads(candidate)
        except (TypeError, ValueError):
            continue
        if isinstance(data, dict):
            return data
    return {}
