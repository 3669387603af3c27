"""Tests for the cron translator."""

from datetime import datetime, timezone

import pytest
from freezegun import freeze_time

from schedkit.cron import (
    CronExpression,
    Frequency,
    RecurrenceSpec,
    TimeOfDay,
    describe,
    generate,
    next_runs,
    parse,
)
from schedkit.errors import InvalidCronExpression, InvalidRecurrence


@pytest.mark.parametrize(
    "expression",
    [
        "* * * * *",
        "*/15 * * * *",
        "0 */6 * * *",
        "30 2 * * *",
        "0 9 * * 1",
        "0 0 15 * *",
    ],
)
def test_canonical_expressions_round_trip(expression):
    """Structured shapes render back to the exact same string."""
    assert generate(parse(expression)) == expression


def test_parse_structured_shapes():
    """Each canonical shape maps to its frequency and fields."""
    assert parse("* * * * *").frequency is Frequency.EVERY_MINUTE

    spec = parse("*/15 * * * *")
    assert spec.frequency is Frequency.EVERY_N_MINUTES
    assert spec.interval == 15

    spec = parse("0 */6 * * *")
    assert spec.frequency is Frequency.EVERY_N_HOURS
    assert spec.interval == 6

    spec = parse("30 2 * * *")
    assert spec.frequency is Frequency.DAILY
    assert spec.time_of_day == TimeOfDay(hour=2, minute=30)

    spec = parse("0 9 * * 1")
    assert spec.frequency is Frequency.WEEKLY
    assert spec.day_of_week == 1
    assert spec.time_of_day == TimeOfDay(hour=9, minute=0)

    spec = parse("0 0 15 * *")
    assert spec.frequency is Frequency.MONTHLY
    assert spec.day_of_month == 15


def test_parse_list_falls_back_to_custom():
    """A list of minutes has no structured shape and is kept verbatim."""
    spec = parse("15,45 * * * *")
    assert spec.frequency is Frequency.CUSTOM
    assert spec.custom_expression == "15,45 * * * *"
    assert generate(spec) == "15,45 * * * *"


@pytest.mark.parametrize(
    "expression",
    [
        "0 24 * * *",      # hour out of range
        "60 1 * * *",      # minute out of range
        "0 9 * * 7",       # day of week out of range
        "0 9 32 * *",      # day of month out of range
        "0 9 1 * 1",       # both day fields set
        "0 9 * 6 *",       # month restricted
        "*/0 * * * *",     # zero step
        "*/60 * * * *",    # step too large for minutes
        "*/5 */2 * * *",   # step in both fields
        "0 * * * *",       # hourly at minute 0
        "1-5 * * * *",     # range
        "0 9 * * MON",     # named day
    ],
)
def test_unrepresentable_expressions_are_custom(expression):
    """Anything outside the structured shapes round-trips as custom."""
    spec = parse(expression)
    assert spec.frequency is Frequency.CUSTOM
    assert generate(spec) == expression


@pytest.mark.parametrize("expression", ["1 2 3", "", "* * * * * *"])
def test_parse_rejects_wrong_field_count(expression):
    """Only five-field strings are accepted."""
    with pytest.raises(InvalidCronExpression) as exc_info:
        parse(expression)
    assert exc_info.value.expression == expression


def test_invalid_cron_is_value_error():
    """Callers catching ValueError also see invalid cron strings."""
    with pytest.raises(ValueError):
        parse("1 2 3")


def test_parse_tolerates_extra_whitespace():
    """Fields may be separated by runs of whitespace."""
    spec = parse("  0   2 * *  * ")
    assert spec.frequency is Frequency.DAILY
    assert str(CronExpression.parse("  0   2 * *  * ")) == "0 2 * * *"


def test_generate_interval_defaults():
    """A missing or non-positive interval is treated as 1."""
    assert generate(RecurrenceSpec(Frequency.EVERY_N_MINUTES, interval=0)) == "*/1 * * * *"
    assert generate(RecurrenceSpec(Frequency.EVERY_N_MINUTES, interval=None)) == "*/1 * * * *"
    assert generate(RecurrenceSpec(Frequency.EVERY_N_HOURS, interval=-3)) == "0 */1 * * *"


def test_generate_does_not_pad():
    """Numbers are rendered without zero padding."""
    spec = RecurrenceSpec(Frequency.DAILY, time_of_day=TimeOfDay(hour=2, minute=5))
    assert generate(spec) == "5 2 * * *"


@pytest.mark.parametrize(
    "spec",
    [
        RecurrenceSpec(Frequency.EVERY_N_MINUTES, interval=60),
        RecurrenceSpec(Frequency.EVERY_N_HOURS, interval=24),
        RecurrenceSpec(Frequency.DAILY, time_of_day=TimeOfDay(hour=24, minute=0)),
        RecurrenceSpec(Frequency.WEEKLY, day_of_week=7),
        RecurrenceSpec(Frequency.MONTHLY, day_of_month=0),
        RecurrenceSpec(Frequency.MONTHLY, day_of_month=32),
    ],
)
def test_generate_rejects_out_of_range(spec):
    """Out-of-range fields raise instead of producing an invalid cron string."""
    with pytest.raises(InvalidRecurrence):
        generate(spec)


def test_generate_ignores_irrelevant_fields():
    """Fields unrelated to the frequency do not affect the output."""
    spec = RecurrenceSpec(
        Frequency.EVERY_MINUTE,
        time_of_day=TimeOfDay(hour=5, minute=5),
        day_of_week=3,
        day_of_month=20,
        custom_expression="1 1 1 1 1",
    )
    assert generate(spec) == "* * * * *"


@pytest.mark.parametrize(
    "expression,expected",
    [
        ("* * * * *", "Every minute"),
        ("*/5 * * * *", "Every 5 minute(s)"),
        ("0 */3 * * *", "Every 3 hour(s)"),
        ("0 2 * * *", "Daily at 02:00 UTC"),
        ("30 14 * * 5", "Weekly on Friday at 14:30 UTC"),
        ("0 9 * * 0", "Weekly on Sunday at 09:00 UTC"),
        ("0 0 1 * *", "Monthly on day 1 at 00:00 UTC"),
        ("15,45 * * * *", "Custom schedule"),
    ],
)
def test_describe(expression, expected):
    """Descriptions follow the fixed English templates."""
    assert describe(expression) == expected


def test_describe_rejects_invalid():
    """Describing a malformed string raises like parse does."""
    with pytest.raises(InvalidCronExpression):
        describe("every day")


def test_time_of_day_parse():
    """HH:MM strings are parsed and validated."""
    assert TimeOfDay.parse("09:30") == TimeOfDay(hour=9, minute=30)
    assert str(TimeOfDay.parse("7:05")) == "07:05"
    with pytest.raises(ValueError):
        TimeOfDay.parse("25:00")
    with pytest.raises(ValueError):
        TimeOfDay.parse("noon")


def test_next_runs_from_fixed_start():
    """Upcoming fire times are computed from the given start."""
    start = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    runs = next_runs("0 2 * * *", start=start, count=3)

    assert runs == [
        datetime(2024, 1, 2, 2, 0, tzinfo=timezone.utc),
        datetime(2024, 1, 3, 2, 0, tzinfo=timezone.utc),
        datetime(2024, 1, 4, 2, 0, tzinfo=timezone.utc),
    ]
    assert all(run.tzinfo is not None for run in runs)


def test_next_runs_naive_start_is_utc():
    """A naive start is interpreted as UTC."""
    runs = next_runs("*/15 * * * *", start=datetime(2024, 1, 1, 12, 7), count=2)
    assert runs == [
        datetime(2024, 1, 1, 12, 15, tzinfo=timezone.utc),
        datetime(2024, 1, 1, 12, 30, tzinfo=timezone.utc),
    ]


@freeze_time("2024-03-10 08:00:00")
def test_next_runs_defaults_to_now():
    """Without a start the current time is used."""
    assert next_runs("0 9 * * *", count=1) == [datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)]


def test_next_runs_custom_expression():
    """Custom expressions are scheduled too."""
    start = datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)
    runs = next_runs("15,45 * * * *", start=start, count=2)
    assert [run.minute for run in runs] == [15, 45]


def test_next_runs_rejects_unschedulable():
    """Five fields that cron cannot evaluate raise InvalidCronExpression."""
    with pytest.raises(InvalidCronExpression):
        next_runs("61 * * * *", start=datetime(2024, 1, 1, tzinfo=timezone.utc))
    with pytest.raises(InvalidCronExpression):
        next_runs("1 2 3")
