"""
Shared text parsing utilities for LLM response extraction.

LLMs asked for JSON frequently wrap it in markdown fences or add a
sentence before it. These helpers recover the JSON object.
"""

import json
import re
from typing import Any, Optional


_FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n?(.*?)```", re.DOTALL | re.IGNORECASE)


def strip_code_fences(content: str) -> str:
    """
    Remove a surrounding markdown code fence if present.

    Args:
        content: Raw LLM output

    Returns:
        The fenced body, or the stripped input if no fence is found
    """
    match = _FENCE_PATTERN.search(content)
    if match:
        return match.group(1).strip()
    return content.strip()


def parse_json_object(content: str) -> Optional[dict[str, Any]]:
    """
    Parse a JSON object out of an LLM response.

    Tries the fence-stripped text first, then the outermost {...} span.

    Args:
        content: Raw LLM output

    Returns:
        The parsed dict, or None if no JSON object could be recovered
    """
    if not content:
        return None

    cleaned = strip_code_fences(content)
    try:
        parsed = json.loads(cleaned)
        return parsed if isinstance(parsed, dict) else None
    except json.JSONDecodeError:
        pass

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        return None

    try:
        parsed = json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def contains_any(text: str, terms: list[str]) -> bool:
    """Case-insensitive check whether any term occurs in text."""
    lowered = text.lower()
    return any(term and term.lower() in lowered for term in terms)


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    """Cut text at `limit` characters and append the suffix."""
    return text[:limit] + suffix
