"""Pull a JSON object out of free-form model output.

Models asked for JSON often wrap it in prose or code fences. These helpers
find the first balanced ``{...}`` span and never raise on bad input.
"""

import json
from typing import Any, Optional


def find_balanced_braces(text: str, start: int = 0) -> Optional[tuple[int, int]]:
    """Locate the first balanced ``{...}`` span at or after ``start``.

    Braces inside JSON string literals are ignored.

    Returns:
        (begin, end) slice bounds, or None if no balanced span exists
    """
    begin = text.find("{", start)
    if begin == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(begin, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return begin, index + 1
    return None


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """Return the first ``{...}`` span in ``text`` that parses as a JSON object."""
    if not text:
        return None

    position = 0
    while True:
        span = find_balanced_braces(text, position)
        if span is None:
            return None
        begin, end = span
        try:
            parsed = json.loads(text[begin:end])
        except json.JSONDecodeError:
            position = begin + 1
            continue
        if isinstance(parsed, dict):
            return parsed
        position = begin + 1
