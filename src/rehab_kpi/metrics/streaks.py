"""Working-day submission streaks.

Streaks are counted over weekday dates only. Saturday and Sunday submissions
are dropped before counting; they neither extend nor break a streak.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime, tzinfo
from zoneinfo import ZoneInfo

from rehab_kpi.logging import EventLogger, emit_event
from rehab_kpi.metrics.calendar import is_weekend
from rehab_kpi.models import AssessmentEvent, StreakResult

logger = logging.getLogger(__name__)


def submission_dates(
    events: Iterable[AssessmentEvent],
    tz: str | tzinfo = "UTC",
) -> list[date]:
    """Local weekday submission dates, ascending, duplicates kept.

    Args:
        events: Assessment events in any order.
        tz: Timezone used to turn instants into calendar dates.

    Returns:
        Sorted list of weekday dates, one per event.
    """
    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    dates = [event.submitted_at.astimezone(zone).date() for event in events]
    return sorted(d for d in dates if not is_weekend(d))


def longest_streak(dates: list[date]) -> int:
    """Longest run of dates one calendar day apart.

    Any other gap, including a repeated date, starts a new run.
    """
    if not dates:
        return 0

    longest = current = 1
    for previous, following in zip(dates, dates[1:], strict=False):
        if (following - previous).days == 1:
            current += 1
        else:
            current = 1
        longest = max(longest, current)
    return longest


def current_streak(dates: Iterable[date], today: date) -> int:
    """Run of consecutive dates ending today or yesterday.

    Args:
        dates: Submission dates, duplicates allowed.
        today: Reference date.

    Returns:
        Length of the run, or 0 when the latest date is older than yesterday.
    """
    distinct = sorted(set(dates), reverse=True)
    if not distinct:
        return 0

    if (today - distinct[0]).days > 1:
        return 0

    streak = 1
    for newer, older in zip(distinct, distinct[1:], strict=False):
        if (newer - older).days != 1:
            break
        streak += 1
    return streak


def calculate_streaks(
    events: Iterable[AssessmentEvent],
    today: date | None = None,
    tz: str | tzinfo = "UTC",
    collapse_same_day: bool = True,
    event_logger: EventLogger | None = None,
) -> StreakResult:
    """Calculate current and longest working-day streaks for one worker.

    Args:
        events: The worker's assessment events, unordered.
        today: Reference date for the current streak. Defaults to today in tz.
        tz: Timezone used to turn instants into calendar dates.
        collapse_same_day: Count several submissions on one date once for the
            longest streak. When False a repeated date restarts the run, so
            the current streak can exceed the longest one.
        event_logger: Receives the calculation trace.

    Returns:
        StreakResult with current and longest streaks.
    """
    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    if today is None:
        today = datetime.now(zone).date()

    dates = submission_dates(events, zone)
    if not dates:
        result = StreakResult(current=0, longest=0)
    else:
        walk = sorted(set(dates)) if collapse_same_day else dates
        result = StreakResult(
            current=current_streak(dates, today),
            longest=longest_streak(walk),
        )

    logger.debug(
        "Streaks over %d weekday submissions: current=%d longest=%d",
        len(dates),
        result.current,
        result.longest,
    )
    emit_event(
        event_logger,
        "Streak Calculation",
        {
            "weekday_submissions": len(dates),
            "today": today.isoformat(),
            "collapse_same_day": collapse_same_day,
            "current": result.current,
            "longest": result.longest,
        },
    )
    return result
