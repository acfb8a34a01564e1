"""
Best-effort recovery of a JSON value from free-form model output.

Models wrap JSON in prose or markdown fences inconsistently, so extraction
tries a fixed sequence of strategies and reports which one succeeded.
Nothing here raises on bad input; callers get an ``Extraction`` and decide
what to fall back to.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

_OPENERS = "{["
_CLOSERS = "}]"
_FENCE = "```"
_JSON_FENCE = "```json"

_MISSING = object()


@dataclass(frozen=True)
class Extraction:
    ok: bool
    value: Any = None
    strategy: Optional[str] = None


FAILED = Extraction(ok=False)


def _loads(candidate: str) -> Any:
    """Return the parsed value or ``_MISSING``."""
    try:
        return json.loads(candidate)
    except (ValueError, TypeError):
        return _MISSING


def _whole_text(text: str) -> Any:
    if text.startswith(tuple(_OPENERS)):
        return _loads(text)
    return _MISSING


def _json_fence(text: str) -> Any:
    start = text.find(_JSON_FENCE)
    if start == -1:
        return _MISSING
    body = text[start + len(_JSON_FENCE):]
    end = body.find(_FENCE)
    if end == -1:
        return _MISSING
    return _loads(body[:end])


def _plain_fence(text: str) -> Any:
    start = text.find(_FENCE)
    if start == -1:
        return _MISSING
    body = text[start + len(_FENCE):]
    end = body.find(_FENCE)
    if end == -1:
        return _MISSING
    inner = body[:end].strip()
    if not inner.startswith(tuple(_OPENERS)):
        return _MISSING
    return _loads(inner)


def _outer_span(text: str) -> Any:
    starts = [i for i in (text.find(c) for c in _OPENERS) if i != -1]
    if not starts:
        return _MISSING
    start = min(starts)
    end = max(text.rfind(c) for c in _CLOSERS)
    if end <= start:
        return _MISSING
    return _loads(text[start:end + 1])


EXTRACTION_STRATEGIES: Tuple[Tuple[str, Callable[[str], Any]], ...] = (
    ("whole_text", _whole_text),
    ("json_fence", _json_fence),
    ("plain_fence", _plain_fence),
    ("outer_span", _outer_span),
)


def extract_json(text: Optional[str]) -> Extraction:
    """Try each strategy in order on the trimmed text; first success wins."""
    if not text:
        return FAILED
    trimmed = text.strip()
    for name, strategy in EXTRACTION_STRATEGIES:
        value = strategy(trimmed)
        if value is not _MISSING:
            return Extraction(ok=True, value=value, strategy=name)
    return FAILED


def extract_json_value(text: Optional[str], default: Any = None) -> Any:
    result = extract_json(text)
    return result.value if result.ok else default


def parse_string_array(text: str) -> Optional[list]:
    """Parse the span between the first ``[`` and the last ``]`` as a list of strings.

    Returns None when the span is not valid JSON or is not a list of
    strings.  Without brackets the whole trimmed text is tried.
    """
    raw = (text or "").strip()
    start = raw.find("[")
    end = raw.rfind("]")
    start = 0 if start == -1 else start
    end = len(raw) if end == -1 else end + 1
    value = _loads(raw[start:end])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        return None
    return value
