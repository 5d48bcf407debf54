"""JSON payload parsing for service responses."""

import json
from typing import Any, Dict, List


def strip_code_fence(content: str) -> str:
    """Remove a surrounding Markdown code fence, if present."""
    content = (content or "").strip()
    if content.startswith("```"):
        lines = content.split("\n")
        content = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:])
    return content.strip()


def parse_json_payload(content: str) -> Any:
    """
    Parse a service response as JSON.

    Raises:
        ValueError: If the content is not valid JSON
    """
    return json.loads(strip_code_fence(content))


def salvage_json_array(content: str) -> List[Dict[str, Any]]:
    """
    Recover the complete leading objects of a truncated top-level JSON array.

    Strategy:
      1. Skip to the first '['.
      2. Decode one object at a time with raw_decode, skipping separators.
      3. Stop at the first object that does not decode (the cut-off tail).
    Non-object items are ignored. Returns an empty list if nothing is recoverable.
    """
    text = strip_code_fence(content)
    start = text.find("[")
    if start == -1:
        return []

    decoder = json.JSONDecoder()
    items: List[Dict[str, Any]] = []
    pos = start + 1
    length = len(text)
    while pos < length:
        while pos < length and text[pos] in " \t\r\n,":
            pos += 1
        if pos >= length or text[pos] == "]":
            break
        try:
            obj, pos = decoder.raw_decode(text, pos)
        except json.JSONDecodeError:
            break
        if isinstance(obj, dict):
            items.append(obj)
    return items


__all__ = ["strip_code_fence", "parse_json_payload", "salvage_json_array"]
