"""Utility helpers."""

from schedkit.utils.helpers import format_error, parse_key_value, parse_timestamp

__all__ = ["format_error", "parse_key_value", "parse_timestamp"]
