"""Cron translation module."""

from schedkit.cron.translator import describe, generate, next_runs, parse
from schedkit.cron.types import CronExpression, CronField, FieldKind, Frequency, RecurrenceSpec, TimeOfDay

__all__ = [
    "CronExpression",
    "CronField",
    "FieldKind",
    "Frequency",
    "RecurrenceSpec",
    "TimeOfDay",
    "describe",
    "generate",
    "next_runs",
    "parse",
]
