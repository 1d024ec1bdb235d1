"""
Tolerant extraction of a JSON object from free-form model output.

Models often wrap JSON in Markdown fences or surround it with prose. The
single contract here: given such text, return the first decodable JSON
object as a dict, or raise ``ParseFailed``.
"""

import json
import re
from typing import Any, Dict, Optional

_FENCE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)\n?```", re.DOTALL)


class ParseFailed(ValueError):
    """The text did not contain a decodable JSON object."""


def _strip_fences(text: str) -> str:
    match = _FENCE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def _balanced_object_at(text: str, start: int) -> Optional[str]:
    """Return the substring spanning the balanced ``{...}`` opening at ``start``.

    Braces inside JSON strings (including escaped quotes) are ignored.
    """
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
    # Unbalanced, e.g. truncated output
    return None


def extract_json_object(text: Any) -> Dict[str, Any]:
    """Extract and decode the first JSON object in ``text``.

    A balanced span that fails to decode (prose such as ``{0-100}``) is
    skipped and scanning resumes after it.

    Raises:
        ParseFailed: If no balanced object exists or none of them decodes
    """
    if not isinstance(text, str) or not text.strip():
        raise ParseFailed("No text to parse")

    body = _strip_fences(text)
    error: Optional[Exception] = None
    start = body.find("{")
    while start != -1:
        candidate = _balanced_object_at(body, start)
        if candidate is None:
            break
        try:
            parsed = json.loads(candidate)
        except (ValueError, RecursionError) as e:
            error = e
            start = body.find("{", start + len(candidate))
            continue
        return parsed

    if error is not None:
        raise ParseFailed(f"Invalid JSON in response: {error}") from error
    raise ParseFailed("No JSON object found in response")
