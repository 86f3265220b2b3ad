"""
JSON Extraction from Model Text

The model is asked for "JSON only" but is not schema-enforced. Replies
arrive wrapped in code fences, prefixed with chatter, or followed by an
explanation. We scan for the first balanced top-level object instead of
trusting the whole reply.
"""

import json
from typing import Any, Optional


class MalformedJSONError(ValueError):
    """An object span was found but it is not valid JSON."""
    pass


def find_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced {...} span in text, or None.

    Braces inside JSON strings are ignored, so '{"description": "a } b"}'
    is returned whole.
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False

        for index in range(start, len(text)):
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
                    return text[start:index + 1]

        # Never closed; try the next opening brace
        start = text.find("{", start + 1)

    return None


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """
    Parse the first JSON object in text.

    Returns:
        The parsed object, or None when the text holds no {...} span

    Raises:
        MalformedJSONError: If a span exists but does not parse to an object
    """
    span = find_json_object(text)
    if span is None:
        return None

    try:
        value = json.loads(span)
    except json.JSONDecodeError as e:
        raise MalformedJSONError(f"Invalid JSON in model reply: {e.msg}") from e

    if not isinstance(value, dict):
        raise MalformedJSONError("Model reply JSON is not an object")
    return value


def extract_json_array(text: str) -> Optional[list[Any]]:
    """
    Parse the outermost [...] span in text, or None when absent or invalid.

    Used for short advisory lists where a malformed reply simply falls back
    to line splitting.
    """
    if not text:
        return None
    start, end = text.find("["), text.rfind("]")
    if start == -1 or end <= start:
        return None
    try:
        value = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, list) else None
