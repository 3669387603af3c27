"""Cron and recurrence type definitions."""

from dataclasses import dataclass, field
from enum import Enum

from schedkit.errors import InvalidCronExpression

FIELD_NAMES = ("minute", "hour", "day_of_month", "month", "day_of_week")
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


class Frequency(Enum):
    """Recurrence shapes a schedule can take."""

    EVERY_MINUTE = "every_minute"
    EVERY_N_MINUTES = "every_n_minutes"
    EVERY_N_HOURS = "every_n_hours"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class FieldKind(Enum):
    """Shape of a single cron field."""

    ANY = "any"         # *
    STEP = "step"       # */N
    VALUE = "value"     # literal integer
    OTHER = "other"     # lists, ranges, names, ...


@dataclass(frozen=True)
class CronField:
    """One parsed cron field. `value` is N for STEP and the integer for VALUE."""

    raw: str
    kind: FieldKind
    value: int | None = None

    @classmethod
    def parse(cls, raw: str) -> "CronField":
        if raw == "*":
            return cls(raw, FieldKind.ANY)
        if raw.startswith("*/"):
            step = raw[2:]
            if step.isascii() and step.isdigit() and int(step) > 0:
                return cls(raw, FieldKind.STEP, int(step))
            return cls(raw, FieldKind.OTHER)
        if raw.isascii() and raw.isdigit():
            return cls(raw, FieldKind.VALUE, int(raw))
        return cls(raw, FieldKind.OTHER)

    @property
    def is_any(self) -> bool:
        return self.kind is FieldKind.ANY

    def is_value(self, low: int, high: int) -> bool:
        """True if the field is a literal within [low, high]."""
        return self.kind is FieldKind.VALUE and low <= self.value <= high

    def is_step(self, low: int, high: int) -> bool:
        """True if the field is `*/N` with N within [low, high]."""
        return self.kind is FieldKind.STEP and low <= self.value <= high


@dataclass(frozen=True)
class CronExpression:
    """A five-field cron expression: minute hour day-of-month month day-of-week."""

    source: str
    minute: CronField
    hour: CronField
    day_of_month: CronField
    month: CronField
    day_of_week: CronField

    @classmethod
    def parse(cls, expression: str) -> "CronExpression":
        """
        Split a cron string into its five fields.

        Args:
            expression: Raw cron string.

        Returns:
            The parsed expression, keeping the original string in `source`.

        Raises:
            InvalidCronExpression: If the string does not have exactly five fields.
        """
        parts = expression.split()
        if len(parts) != len(FIELD_NAMES):
            raise InvalidCronExpression(expression)
        return cls(expression, *(CronField.parse(part) for part in parts))

    @property
    def fields(self) -> tuple[CronField, ...]:
        return (self.minute, self.hour, self.day_of_month, self.month, self.day_of_week)

    def __str__(self) -> str:
        return " ".join(f.raw for f in self.fields)


@dataclass(frozen=True)
class TimeOfDay:
    """Wall-clock time in UTC, 24h."""

    hour: int = 0
    minute: int = 0

    @classmethod
    def parse(cls, value: str) -> "TimeOfDay":
        """Parse `HH:MM`."""
        try:
            hour, minute = (int(part) for part in value.split(":"))
        except ValueError:
            raise ValueError(f"Invalid time of day '{value}', expected HH:MM") from None
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError(f"Time of day out of range: '{value}'")
        return cls(hour, minute)

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass
class RecurrenceSpec:
    """
    Structured recurrence description.

    Only the attributes relevant to `frequency` are interpreted:
    `time_of_day` for daily/weekly/monthly, `interval` for the every-N shapes,
    `day_of_week` (0 = Sunday) for weekly, `day_of_month` for monthly and
    `custom_expression` for custom.
    """

    frequency: Frequency
    time_of_day: TimeOfDay = field(default_factory=TimeOfDay)
    interval: int | None = 1
    day_of_week: int = 0
    day_of_month: int = 1
    custom_expression: str = ""
