"""JSON parsing utilities for LLM responses."""

import json
import re
from typing import Any, Dict

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


def parse_llm_json(text: str) -> Dict[str, Any]:
    """
    Parse a JSON object from an LLM reply, tolerating a markdown code fence.

    Args:
        text: Raw model output, either bare JSON or JSON inside a ``` block.

    Returns:
        Parsed JSON object.

    Raises:
        json.JSONDecodeError: If no JSON object can be recovered.
    """
    cleaned = text.strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        match = _FENCED_BLOCK.search(cleaned)
        if not match:
            raise
        try:
            parsed = json.loads(match.group(1).strip())
        except json.JSONDecodeError as inner:
            preview = cleaned[:100] + "..." if len(cleaned) > 100 else cleaned
            raise json.JSONDecodeError(
                f"Failed to parse LLM JSON. Preview: {preview}", inner.doc, inner.pos
            ) from exc

    if not isinstance(parsed, dict):
        raise json.JSONDecodeError("Expected a JSON object", cleaned, 0)
    return parsed
