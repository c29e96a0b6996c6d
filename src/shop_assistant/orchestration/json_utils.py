"""Best-effort JSON extraction from model output."""

from __future__ import annotations

import json
from typing import Any


def parse_json_payload(text: str) -> Any:
    """Parse the first JSON value found in `text`.

    Strategies, in order:
    1. The whole string.
    2. The inside of a fenced code block.
    3. The first balanced ``{...}`` object, ignoring braces inside strings.

    Raises:
        json.JSONDecodeError: when every strategy fails.
    """
    text = text.strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    if text.startswith("```"):
        lines = text.split("\n")
        if len(lines) > 2:
            try:
                return json.loads("\n".join(lines[1:-1]).strip())
            except json.JSONDecodeError:
                pass

    candidate = _extract_first_json_balanced(text)
    if candidate:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            pass

    raise json.JSONDecodeError(f"No JSON object found in: {text[:100]}", text, 0)


def _extract_first_json_balanced(text: str) -> str:
    start = text.find("{")
    if start == -1:
        return ""

    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        char = text[i]
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return ""
