"""Loose literal parsing shared by the spec builder and the extractors.

Values in specs and test assertions are written by hand or lifted from
source code, so parsing is forgiving: anything that is not an unambiguous
scalar or a well-formed JSON container stays raw text.
"""

from __future__ import annotations

import json
import re
from typing import Any

INT_RE = re.compile(r"^[-+]?\d+$")
FLOAT_RE = re.compile(r"^[-+]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][-+]?\d+)?$")
QUOTED_RE = re.compile(r"'((?:[^'\\]|\\.)*)'|\"(?:[^\"\\]|\\.)*\"")

KEYWORDS = {
    "true": True,
    "false": False,
    "null": None,
    "none": None,
    "nil": None,
}


def parse_literal(raw: Any) -> Any:
    """Parse ``raw`` as a JSON-like scalar or container, else return it as text.

    Empty input means the value was omitted and yields ``None``.
    """
    if not isinstance(raw, str):
        return raw
    text = raw.strip()
    if not text:
        return None

    if len(text) >= 2 and text[0] == "`" and text[-1] == "`":
        return parse_literal(text[1:-1])

    lowered = text.lower()
    if lowered in KEYWORDS:
        return KEYWORDS[lowered]

    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        try:
            return json.loads(text)
        except ValueError:
            return text[1:-1]

    if len(text) >= 2 and text[0] == "'" and text[-1] == "'":
        return text[1:-1]

    if INT_RE.match(text):
        return int(text)
    if FLOAT_RE.match(text):
        return float(text)

    if text[0] in "{[":
        try:
            return json.loads(text)
        except ValueError:
            pass
        converted = _pythonish_to_json(text)
        if converted is not None:
            return converted

    return text


def _pythonish_to_json(text: str) -> Any:
    """Best-effort parse of a source-language container literal, or None.

    Keywords and trailing commas are rewritten only outside quoted strings.
    """
    pieces = []
    position = 0
    for match in QUOTED_RE.finditer(text):
        pieces.append(_pythonish_code(text[position:match.start()]))
        if match.group(1) is not None:
            pieces.append(json.dumps(match.group(1)))
        else:
            pieces.append(match.group(0))
        position = match.end()
    pieces.append(_pythonish_code(text[position:]))
    try:
        return json.loads("".join(pieces))
    except ValueError:
        return None


def _pythonish_code(code: str) -> str:
    code = re.sub(r"\bTrue\b", "true", code)
    code = re.sub(r"\bFalse\b", "false", code)
    code = re.sub(r"\b(?:None|nil)\b", "null", code)
    return re.sub(r",\s*([\]}])", r"\1", code)


def format_literal(value: Any) -> str:
    """Render a value the way ``parse_literal`` reads it back."""
    return json.dumps(value, ensure_ascii=False)
