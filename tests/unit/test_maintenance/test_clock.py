# tests/unit/test_maintenance/test_clock.py
"""Unit tests for calendar arithmetic helpers."""

from datetime import datetime

from app.utils.clock import subtract_months, subtract_years, utcnow


class TestSubtractMonths:
    """Tests for subtract_months()."""

    def test_same_day_previous_year(self):
        assert subtract_months(datetime(2026, 6, 15, 2, 30), 12) == datetime(2025, 6, 15, 2, 30)

    def test_crosses_year_boundary(self):
        assert subtract_months(datetime(2026, 2, 10), 3) == datetime(2025, 11, 10)

    def test_clamps_to_month_end(self):
        assert subtract_months(datetime(2026, 3, 31), 1) == datetime(2026, 2, 28)

    def test_clamps_to_leap_day(self):
        assert subtract_months(datetime(2028, 3, 31), 1) == datetime(2028, 2, 29)

    def test_negative_moves_forward(self):
        assert subtract_months(datetime(2026, 12, 15), -1) == datetime(2027, 1, 15)


class TestSubtractYears:
    """Tests for subtract_years()."""

    def test_whole_years(self):
        assert subtract_years(datetime(2026, 6, 15), 7) == datetime(2019, 6, 15)

    def test_leap_day(self):
        assert subtract_years(datetime(2028, 2, 29), 1) == datetime(2027, 2, 28)


def test_utcnow_is_naive():
    assert utcnow().tzinfo is None
