"""
Reporting period resolution.

Named periods are a lookup table, not scattered literals. A period covers
whole calendar days in the reporting timezone, both ends inclusive.
"""

from datetime import date, timedelta

from core.exceptions import ValidationError
from core.models import Period

PERIOD_DAYS: dict[str, int] = {
    "7days": 7,
    "30days": 30,
    "90days": 90,
    "1year": 365,
}

CUSTOM_PERIOD = "custom"


def resolve_period(
    today: date,
    period: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    default_period: str = "30days",
) -> Period:
    """
    Resolve a named period and optional explicit bounds to a concrete window.

    - A named period resolves to [today - N days, today].
    - Explicit start and end together override the named period.
    - A single explicit bound replaces only its side; the other side comes
      from the named period.

    Raises:
        ValidationError: Unknown period name, or start after end.
    """
    name = period or default_period
    if name not in PERIOD_DAYS:
        raise ValidationError(
            f"Unknown period '{name}'. Valid periods: {', '.join(PERIOD_DAYS)}"
        )

    named_start = today - timedelta(days=PERIOD_DAYS[name])
    start = start_date or named_start
    end = end_date or today

    if start > end:
        raise ValidationError(f"Period start {start} is after end {end}")

    label = CUSTOM_PERIOD if (start_date or end_date) else name
    return Period(label=label, start_date=start, end_date=end)


def iter_days(period: Period):
    """Every calendar day in the period, ascending."""
    day = period.start_date
    while day <= period.end_date:
        yield day
        day += timedelta(days=1)
