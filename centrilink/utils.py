"""Utility helpers used across ``centrilink`` modules."""

import json
from typing import Any


def get_short_error_info(e: BaseException) -> str:
    """
    Get a short error information from an exception.

    Args:
        e (Exception): The exception to get the error information from.

    Returns:
        str: A short error information.
    """
    return f"{type(e).__name__}: {str(e)}"


def compact_json(value: Any) -> str:
    """Serialize without whitespace; unknown types fall back to ``str``."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def json_size(value: Any) -> int:
    """Approximate wire size in bytes of ``value`` encoded as compact JSON."""
    return len(compact_json(value).encode("utf-8"))


def sample(value: Any, limit: int = 400) -> str:
    """A bounded text sample of ``value`` for log entries."""
    text = value if isinstance(value, str) else compact_json(value)
    if len(text) <= limit:
        return text
    return text[:limit]
