"""Common utility functions."""

import json
from datetime import datetime, timezone
from typing import Any


def format_error(error: Exception) -> str:
    """
    Format an exception for display.

    Args:
        error: The exception to format.

    Returns:
        Human-readable error string.
    """
    error_type = type(error).__name__
    return f"{error_type}: {str(error)}"


def parse_key_value(items: list[str]) -> dict[str, Any]:
    """
    Parse `key=value` pairs into a dict.

    Values that parse as JSON (numbers, booleans, lists, ...) are decoded,
    anything else is kept as a string.

    Args:
        items: Raw `key=value` strings.

    Returns:
        The parsed mapping.
    """
    data: dict[str, Any] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected key=value, got '{item}'")
        try:
            data[key] = json.loads(value)
        except json.JSONDecodeError:
            data[key] = value
    return data


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse an ISO-8601 timestamp as sent by the admin API.

    Accepts a trailing `Z`; naive values are taken as UTC. Empty values
    return None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
