from __future__ import annotations

import json
import re
from typing import Any, Callable

from ..errors import ParseError

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
# 'key': and : 'value' pairs written with single quotes.
_SINGLE_QUOTED_KEY = re.compile(r"'([^'\n]*?)'\s*:")
_SINGLE_QUOTED_VALUE = re.compile(r"([:\[,]\s*)'([^'\n]*?)'(?=\s*[,}\]])")

_FULLWIDTH = {"：": ":", "，": ",", "｛": "{", "｝": "}"}
_CURLY_QUOTES = {"“": '"', "”": '"', "‘": "'", "’": "'"}

def extract_braced(text: str) -> str:
    """Return the substring from the first '{' to the last '}'."""
    text = _FENCE.sub("", text or "").strip()
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        raise ParseError("response contains no JSON object")
    return text[start:end + 1]

def _strip_trailing_commas(s: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", s)

def _normalize_quotes(s: str) -> str:
    for k, v in _CURLY_QUOTES.items():
        s = s.replace(k, v)
    return s

def _ascii_punctuation(s: str) -> str:
    for k, v in _FULLWIDTH.items():
        s = s.replace(k, v)
    return s

def _single_to_double(s: str) -> str:
    s = _SINGLE_QUOTED_KEY.sub(r'"\1":', s)
    return _SINGLE_QUOTED_VALUE.sub(r'\1"\2"', s)

# Cumulative; a stage only runs when the text still fails to parse.
REPAIR_STAGES: tuple[Callable[[str], str], ...] = (
    _strip_trailing_commas,
    _normalize_quotes,
    _ascii_punctuation,
    _single_to_double,
)

def parse_report_json(text: str) -> dict[str, Any]:
    candidate = extract_braced(text)
    last_err: json.JSONDecodeError | None = None
    for stage in (None, *REPAIR_STAGES):
        if stage is not None:
            candidate = stage(candidate)
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError as e:
            last_err = e
            continue
        if not isinstance(data, dict):
            raise ParseError(f"expected a JSON object, got {type(data).__name__}")
        return data
    raise ParseError(f"unrepairable JSON: {last_err}")
