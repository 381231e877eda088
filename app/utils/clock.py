# app/utils/clock.py
"""
Time helpers for the maintenance engine.

All persisted timestamps are naive UTC. Calendar arithmetic clamps to the
end of the month, so 31 March minus one month is 28/29 February.
"""

import calendar
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current time as naive UTC, matching how the database columns are stored."""
    return datetime.now(UTC).replace(tzinfo=None)


def subtract_months(moment: datetime, months: int) -> datetime:
    """Move `moment` back by whole calendar months (negative values move forward)."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def subtract_years(moment: datetime, years: int) -> datetime:
    """Move `moment` back by whole calendar years. 29 Feb lands on 28 Feb."""
    return subtract_months(moment, years * 12)
