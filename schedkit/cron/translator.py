"""Translation between cron expressions and structured recurrences."""

from collections.abc import Callable
from datetime import datetime, timezone

from croniter import croniter
from loguru import logger

from schedkit.cron.types import DAY_NAMES, CronExpression, Frequency, RecurrenceSpec, TimeOfDay
from schedkit.errors import InvalidCronExpression, InvalidRecurrence

Matcher = Callable[[CronExpression], RecurrenceSpec | None]


def _time_of(cron: CronExpression) -> TimeOfDay | None:
    if cron.minute.is_value(0, 59) and cron.hour.is_value(0, 23):
        return TimeOfDay(hour=cron.hour.value, minute=cron.minute.value)
    return None


def _match_every_minute(cron: CronExpression) -> RecurrenceSpec | None:
    if all(f.is_any for f in cron.fields):
        return RecurrenceSpec(Frequency.EVERY_MINUTE)
    return None


def _match_every_n_minutes(cron: CronExpression) -> RecurrenceSpec | None:
    if cron.minute.is_step(1, 59) and all(f.is_any for f in cron.fields[1:]):
        return RecurrenceSpec(Frequency.EVERY_N_MINUTES, interval=cron.minute.value)
    return None


def _match_every_n_hours(cron: CronExpression) -> RecurrenceSpec | None:
    if (
        cron.minute.is_value(0, 0)
        and cron.hour.is_step(1, 23)
        and all(f.is_any for f in cron.fields[2:])
    ):
        return RecurrenceSpec(Frequency.EVERY_N_HOURS, interval=cron.hour.value)
    return None


def _match_daily(cron: CronExpression) -> RecurrenceSpec | None:
    time_of_day = _time_of(cron)
    if time_of_day and all(f.is_any for f in cron.fields[2:]):
        return RecurrenceSpec(Frequency.DAILY, time_of_day=time_of_day)
    return None


def _match_weekly(cron: CronExpression) -> RecurrenceSpec | None:
    time_of_day = _time_of(cron)
    if (
        time_of_day
        and cron.day_of_week.is_value(0, 6)
        and cron.day_of_month.is_any
        and cron.month.is_any
    ):
        return RecurrenceSpec(
            Frequency.WEEKLY, time_of_day=time_of_day, day_of_week=cron.day_of_week.value
        )
    return None


def _match_monthly(cron: CronExpression) -> RecurrenceSpec | None:
    time_of_day = _time_of(cron)
    if (
        time_of_day
        and cron.day_of_month.is_value(1, 31)
        and cron.day_of_week.is_any
        and cron.month.is_any
    ):
        return RecurrenceSpec(
            Frequency.MONTHLY, time_of_day=time_of_day, day_of_month=cron.day_of_month.value
        )
    return None


# Order matters: every-minute and the every-N shapes also have "*" in both
# day fields, so they must be tried before the daily shape.
MATCHERS: tuple[Matcher, ...] = (
    _match_every_minute,
    _match_every_n_minutes,
    _match_every_n_hours,
    _match_daily,
    _match_weekly,
    _match_monthly,
)


def parse(expression: str) -> RecurrenceSpec:
    """
    Classify a cron string as a structured recurrence.

    Args:
        expression: Five-field cron string.

    Returns:
        The first matching structured recurrence, or a custom recurrence that
        carries the original string verbatim.

    Raises:
        InvalidCronExpression: If the string does not have exactly five fields.
    """
    cron = CronExpression.parse(expression)
    for matcher in MATCHERS:
        spec = matcher(cron)
        if spec is not None:
            return spec
    return RecurrenceSpec(Frequency.CUSTOM, custom_expression=expression)


def _interval(spec: RecurrenceSpec, high: int) -> int:
    interval = spec.interval if spec.interval and spec.interval > 0 else 1
    if interval > high:
        raise InvalidRecurrence(f"Interval {interval} out of range 1-{high} for {spec.frequency.value}")
    return interval


def _time(spec: RecurrenceSpec) -> tuple[int, int]:
    tod = spec.time_of_day
    if not (0 <= tod.hour <= 23 and 0 <= tod.minute <= 59):
        raise InvalidRecurrence(f"Time of day out of range: {tod.hour}:{tod.minute}")
    return tod.minute, tod.hour


def generate(spec: RecurrenceSpec) -> str:
    """
    Render a structured recurrence as a cron string.

    Args:
        spec: The recurrence to render.

    Returns:
        Cron string without zero padding; custom expressions are returned unchanged.

    Raises:
        InvalidRecurrence: If a field relevant to the frequency is out of range.
    """
    freq = spec.frequency

    if freq is Frequency.EVERY_MINUTE:
        return "* * * * *"
    if freq is Frequency.EVERY_N_MINUTES:
        return f"*/{_interval(spec, 59)} * * * *"
    if freq is Frequency.EVERY_N_HOURS:
        return f"0 */{_interval(spec, 23)} * * *"
    if freq is Frequency.DAILY:
        minute, hour = _time(spec)
        return f"{minute} {hour} * * *"
    if freq is Frequency.WEEKLY:
        minute, hour = _time(spec)
        if not 0 <= spec.day_of_week <= 6:
            raise InvalidRecurrence(f"Day of week {spec.day_of_week} out of range 0-6")
        return f"{minute} {hour} * * {spec.day_of_week}"
    if freq is Frequency.MONTHLY:
        minute, hour = _time(spec)
        if not 1 <= spec.day_of_month <= 31:
            raise InvalidRecurrence(f"Day of month {spec.day_of_month} out of range 1-31")
        return f"{minute} {hour} {spec.day_of_month} * *"
    return spec.custom_expression


def describe(expression: str) -> str:
    """Render a cron string as a short English sentence."""
    spec = parse(expression)
    freq = spec.frequency

    if freq is Frequency.EVERY_MINUTE:
        return "Every minute"
    if freq is Frequency.EVERY_N_MINUTES:
        return f"Every {spec.interval} minute(s)"
    if freq is Frequency.EVERY_N_HOURS:
        return f"Every {spec.interval} hour(s)"
    if freq is Frequency.DAILY:
        return f"Daily at {spec.time_of_day} UTC"
    if freq is Frequency.WEEKLY:
        return f"Weekly on {DAY_NAMES[spec.day_of_week]} at {spec.time_of_day} UTC"
    if freq is Frequency.MONTHLY:
        return f"Monthly on day {spec.day_of_month} at {spec.time_of_day} UTC"
    return "Custom schedule"


def next_runs(expression: str, start: datetime | None = None, count: int = 5) -> list[datetime]:
    """
    Compute upcoming fire times for a cron string.

    Args:
        expression: Five-field cron string.
        start: Reference time; naive values are taken as UTC. Defaults to now.
        count: Number of fire times to return.

    Returns:
        Timezone-aware UTC datetimes in ascending order.
    """
    CronExpression.parse(expression)

    base = start or datetime.now(timezone.utc)
    if base.tzinfo is None:
        base = base.replace(tzinfo=timezone.utc)

    try:
        itr = croniter(expression, base)
        runs = [itr.get_next(datetime) for _ in range(count)]
    except (ValueError, KeyError) as e:
        logger.debug(f"croniter rejected '{expression}': {e}")
        raise InvalidCronExpression(expression, str(e)) from e
    return runs
