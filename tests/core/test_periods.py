"""Tests for reporting period resolution."""

from datetime import date

import pytest

from core.exceptions import ValidationError
from core.models import Period
from core.periods import PERIOD_DAYS, iter_days, resolve_period

TODAY = date(2026, 10, 19)


class TestResolvePeriod:

    @pytest.mark.parametrize("name,days", list(PERIOD_DAYS.items()))
    def test_named_period_ends_today(self, name, days):
        period = resolve_period(TODAY, period=name)

        assert period.label == name
        assert period.end_date == TODAY
        assert (TODAY - period.start_date).days == days

    def test_default_period_used_when_none_named(self):
        period = resolve_period(TODAY, default_period="7days")

        assert period.label == "7days"
        assert period.start_date == date(2026, 10, 12)

    def test_explicit_bounds_override(self):
        period = resolve_period(TODAY, period="1year", start_date=date(2026, 1, 1), end_date=date(2026, 1, 31))

        assert period == Period(label="custom", start_date=date(2026, 1, 1), end_date=date(2026, 1, 31))

    def test_single_bound_keeps_other_side(self):
        period = resolve_period(TODAY, period="30days", start_date=date(2026, 10, 1))

        assert period.start_date == date(2026, 10, 1)
        assert period.end_date == TODAY
        assert period.label == "custom"

    def test_unknown_name_is_rejected(self):
        with pytest.raises(ValidationError, match="Unknown period"):
            resolve_period(TODAY, period="fortnight")

    def test_inverted_bounds_rejected(self):
        with pytest.raises(ValidationError):
            resolve_period(TODAY, start_date=date(2026, 10, 20), end_date=date(2026, 10, 1))


def test_iter_days_covers_both_ends():
    period = Period(label="custom", start_date=date(2026, 2, 27), end_date=date(2026, 3, 2))

    assert list(iter_days(period)) == [
        date(2026, 2, 27), date(2026, 2, 28), date(2026, 3, 1), date(2026, 3, 2),
    ]
