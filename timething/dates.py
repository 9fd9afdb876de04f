"""
Date and period helpers.

All dates cross module boundaries as ISO "YYYY-MM-DD" strings, the format
both Harvest and Forecast use in query strings and payloads.
"""

from datetime import date, datetime, timedelta
from typing import NamedTuple, Optional, Union

DATE_FORMAT = "%Y-%m-%d"

DateLike = Union[date, datetime, str]


class WeekBounds(NamedTuple):
    start: str
    end: str


def parse_date(value: DateLike) -> date:
    """
    Parse a YYYY-MM-DD string (or pass a date/datetime through).
    Raises ValueError for anything else.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value).strip(), DATE_FORMAT).date()


def to_canonical_date(value: Optional[DateLike]) -> Optional[str]:
    """
    Format as YYYY-MM-DD.
    None (or "") means "no explicit date", so it stays None and the
    caller falls back to a computed default.
    """
    if value is None or value == "":
        return None
    return parse_date(value).strftime(DATE_FORMAT)


def current_week_bounds(reference: Optional[DateLike] = None) -> WeekBounds:
    """
    Monday of the reference date's ISO week through Sunday of the
    FOLLOWING week: this week plus next.

    Example:
        current_week_bounds(date(2024, 5, 15))
        -> WeekBounds(start="2024-05-13", end="2024-05-26")
    """
    day = parse_date(reference) if reference is not None else date.today()
    monday = day - timedelta(days=day.weekday())
    sunday_next_week = monday + timedelta(days=13)
    return WeekBounds(
        start=monday.strftime(DATE_FORMAT),
        end=sunday_next_week.strftime(DATE_FORMAT),
    )


def resolve_period(
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
    today: Optional[DateLike] = None,
) -> WeekBounds:
    """Explicit bounds win; each missing bound falls back to current_week_bounds."""
    default = current_week_bounds(today)
    return WeekBounds(
        start=to_canonical_date(start) or default.start,
        end=to_canonical_date(end) or default.end,
    )


def business_days_inclusive(start: DateLike, end: DateLike) -> int:
    """
    Approximate Mon-Fri count between two dates, both ends included.

    calendar_days = end - start
    weekend_days  = trunc(calendar_days / 5) * 2
    result        = calendar_days - weekend_days + 1

    This is an approximation, not an exact weekday count, and allocation
    averages are computed against it. A reversed range gives a negative
    count.
    """
    calendar_days = (parse_date(end) - parse_date(start)).days
    weekend_days = int(calendar_days / 5) * 2
    return calendar_days - weekend_days + 1
