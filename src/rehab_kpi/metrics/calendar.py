"""Reporting calendar helpers.

Weeks run Sunday to Saturday; working days are Monday to Friday. All
boundaries are computed in a configurable timezone so that a submission
late on Friday evening local time lands on Friday.
"""

import calendar
from collections.abc import Callable
from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

from rehab_kpi.models import MonthRange, WeekRange

SATURDAY = 5
WORK_WEEK_DAYS = 5


def _zone(tz: str | tzinfo) -> tzinfo:
    return ZoneInfo(tz) if isinstance(tz, str) else tz


def local_date(reference: date | datetime | None, tz: str | tzinfo = "UTC") -> date:
    """Calendar date of a reference point in tz.

    Aware datetimes are converted to tz first; naive datetimes and plain
    dates are taken as already local. None means today.
    """
    zone = _zone(tz)
    if reference is None:
        return datetime.now(zone).date()
    if isinstance(reference, datetime):
        if reference.tzinfo is not None:
            return reference.astimezone(zone).date()
        return reference.date()
    return reference


def _start_of_day(day: date, zone: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=zone)


def _end_of_day(day: date, zone: tzinfo) -> datetime:
    return datetime.combine(day, time.max, tzinfo=zone)


def is_weekend(day: date) -> bool:
    """Check whether a date falls on Saturday or Sunday."""
    return day.weekday() >= SATURDAY


def week_date_range(
    reference: date | datetime | None = None,
    tz: str | tzinfo = "UTC",
) -> WeekRange:
    """Sunday-to-Saturday week containing the reference date.

    Args:
        reference: Any point in the week. Defaults to now.
        tz: Timezone the week boundaries are computed in.

    Returns:
        WeekRange from Sunday 00:00 to Saturday 23:59:59.999999, labelled
        like "Week of Sun, Oct 18".
    """
    zone = _zone(tz)
    day = local_date(reference, zone)
    # weekday(): Monday=0 .. Sunday=6
    start_date = day - timedelta(days=(day.weekday() + 1) % 7)
    end_date = start_date + timedelta(days=6)

    return WeekRange(
        start=_start_of_day(start_date, zone),
        end=_end_of_day(end_date, zone),
        start_date=start_date,
        end_date=end_date,
        label=f"Week of {start_date:%a, %b} {start_date.day}",
    )


def week_comparison(
    reference: date | datetime | None = None,
    tz: str | tzinfo = "UTC",
    week_range: Callable[..., WeekRange] = week_date_range,
) -> tuple[WeekRange, WeekRange]:
    """Current week and the week before it.

    Args:
        reference: Any point in the current week. Defaults to now.
        tz: Timezone the week boundaries are computed in.
        week_range: Returns the reporting week containing a date.

    Returns:
        Tuple of (current_week, previous_week).
    """
    current_week = week_range(reference, tz)
    previous_week = week_range(current_week.start_date - timedelta(days=7), tz)
    return current_week, previous_week


def working_days_count(start: date | datetime, end: date | datetime) -> int:
    """Count Monday-to-Friday dates between start and end, inclusive."""
    day = start.date() if isinstance(start, datetime) else start
    last = end.date() if isinstance(end, datetime) else end

    count = 0
    while day <= last:
        if not is_weekend(day):
            count += 1
        day += timedelta(days=1)
    return count


def working_days_elapsed(week_start: date | datetime, current: date | datetime) -> int:
    """Working days from the start of a week up to and including current.

    Counting stops at the first Saturday and never exceeds five.

    Args:
        week_start: First day of the week.
        current: Reference date.

    Returns:
        Number of working days elapsed (0-5).
    """
    day = week_start.date() if isinstance(week_start, datetime) else week_start
    last = current.date() if isinstance(current, datetime) else current

    elapsed = 0
    while day <= last and day.weekday() != SATURDAY:
        if not is_weekend(day):
            elapsed += 1
        day += timedelta(days=1)
    return min(elapsed, WORK_WEEK_DAYS)


def month_date_range(
    reference: date | datetime | None = None,
    tz: str | tzinfo = "UTC",
) -> MonthRange:
    """Calendar month containing the reference date, labelled like "October 2026"."""
    zone = _zone(tz)
    day = local_date(reference, zone)
    start_date = day.replace(day=1)
    end_date = day.replace(day=calendar.monthrange(day.year, day.month)[1])

    return MonthRange(
        start=_start_of_day(start_date, zone),
        end=_end_of_day(end_date, zone),
        start_date=start_date,
        end_date=end_date,
        label=f"{start_date:%B %Y}",
    )
