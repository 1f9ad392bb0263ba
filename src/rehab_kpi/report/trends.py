"""Week-by-week performance trends.

TrendAggregator recomputes completion rates for a sliding window of weeks and
for the current week against the previous one. Raw submissions come from an
injected AssessmentSource; week boundaries and working-day counts come from
injected calendar functions so reports can run on any reporting calendar.

A failing source never fails a report: the trend degrades to an empty list
and the comparison to None.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import date, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

from rehab_kpi.logging import EventLogger, emit_event
from rehab_kpi.metrics.calendar import (
    local_date,
    week_comparison,
    week_date_range,
    working_days_count,
)
from rehab_kpi.metrics.common import round_half_up
from rehab_kpi.metrics.scoring import score_by_completion_rate
from rehab_kpi.models import (
    AssessmentEvent,
    TrendPoint,
    WeekRange,
    WeeklyComparison,
    WeekSnapshot,
)
from rehab_kpi.source.base import AssessmentSource

logger = logging.getLogger(__name__)

WeekRangeFn = Callable[[date, tzinfo], WeekRange]
WorkingDaysFn = Callable[[date, date], int]

DEFAULT_WEEKS_BACK = 4


class TrendAggregator:
    """Builds trend series and week-over-week comparisons from a source."""

    def __init__(
        self,
        source: AssessmentSource,
        *,
        week_range: WeekRangeFn = week_date_range,
        working_days: WorkingDaysFn = working_days_count,
        tz: str | tzinfo = "UTC",
        event_logger: EventLogger | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            source: Where assessments are fetched from.
            week_range: Returns the reporting week containing a date.
            working_days: Counts working days between two dates, inclusive.
            tz: Timezone used to date submissions.
            event_logger: Receives scoring and trend traces.
        """
        self._source = source
        self._week_range = week_range
        self._working_days = working_days
        self._tz = ZoneInfo(tz) if isinstance(tz, str) else tz
        self._event_logger = event_logger

    def _local_dates(self, events: Iterable[AssessmentEvent]) -> set[date]:
        return {event.submitted_at.astimezone(self._tz).date() for event in events}

    async def _week_events(
        self, worker_ids: Sequence[str], week: WeekRange
    ) -> list[AssessmentEvent]:
        return await self._source.fetch_assessments(worker_ids, week.start, week.end)

    async def performance_trend(
        self,
        worker_id: str,
        weeks_back: int = DEFAULT_WEEKS_BACK,
        reference: date | datetime | None = None,
    ) -> list[TrendPoint]:
        """Completion-rate trend for one worker over the last few weeks.

        Each week's rate is the number of distinct submission dates over the
        week's working days. Weekend submissions count as completed days, so
        a week can exceed 100.

        Args:
            worker_id: Worker to build the trend for.
            weeks_back: Number of weeks, including the current one.
            reference: Any point in the most recent week. Defaults to now.

        Returns:
            TrendPoints ordered oldest week first, or an empty list when the
            source fails.
        """
        reference_day = local_date(reference, self._tz)
        points: list[TrendPoint] = []

        try:
            for i in range(weeks_back):
                week = self._week_range(reference_day - timedelta(days=7 * i), self._tz)
                events = await self._week_events([worker_id], week)
                points.append(self._trend_point(week, events))
        except Exception as e:
            logger.warning("Failed to build performance trend for worker %s: %s", worker_id, e)
            return []

        # Built most recent first
        points.reverse()

        emit_event(
            self._event_logger,
            "Performance Trend",
            {
                "worker_id": worker_id,
                "weeks_back": weeks_back,
                "rates": [point.completion_rate for point in points],
            },
        )
        return points

    def _trend_point(self, week: WeekRange, events: list[AssessmentEvent]) -> TrendPoint:
        completed_days = len(self._local_dates(events))
        total_days = self._working_days(week.start_date, week.end_date)
        rate = completed_days / total_days * 100 if total_days > 0 else 0.0

        kpi = score_by_completion_rate(rate, None, None, event_logger=self._event_logger)
        return TrendPoint(
            week_label=week.label,
            completion_rate=round_half_up(rate),
            kpi_rating=kpi.rating,
            completed_days=completed_days,
            total_days=total_days,
        )

    async def weekly_comparison(
        self,
        worker_ids: Sequence[str],
        reference: date | datetime | None = None,
    ) -> WeeklyComparison | None:
        """Compare the current week's completion rate with the previous week's.

        A week's rate is the share of team members who submitted at least
        once that week.

        Args:
            worker_ids: Workers included in the comparison.
            reference: Any point in the current week. Defaults to now.

        Returns:
            WeeklyComparison, or None for an empty team or when the source
            fails.
        """
        members = list(dict.fromkeys(worker_ids))
        if not members:
            logger.debug("No workers given for weekly comparison")
            return None

        reference_day = local_date(reference, self._tz)
        current_week, previous_week = week_comparison(
            reference_day, self._tz, week_range=self._week_range
        )

        try:
            previous_rate = await self._team_rate(members, previous_week)
            current_rate = await self._team_rate(members, current_week)
        except Exception as e:
            logger.warning("Failed to build weekly comparison: %s", e)
            return None

        if current_rate > previous_rate:
            trend = "improving"
        elif current_rate < previous_rate:
            trend = "declining"
        else:
            trend = "stable"

        comparison = WeeklyComparison(
            previous_week=self._snapshot(previous_week, previous_rate),
            current_week=self._snapshot(current_week, current_rate),
            improvement=round_half_up(current_rate - previous_rate),
            improvement_trend=trend,
        )

        emit_event(
            self._event_logger,
            "Weekly Comparison",
            {
                "workers": len(members),
                "previous_rate": comparison.previous_week.completion_rate,
                "current_rate": comparison.current_week.completion_rate,
                "trend": trend,
            },
        )
        return comparison

    async def _team_rate(self, members: list[str], week: WeekRange) -> float:
        events = await self._week_events(members, week)
        wanted = set(members)
        submitters = {event.worker_id for event in events if event.worker_id in wanted}
        return len(submitters) / len(members) * 100

    def _snapshot(self, week: WeekRange, rate: float) -> WeekSnapshot:
        kpi = score_by_completion_rate(rate, None, None, event_logger=self._event_logger)
        return WeekSnapshot(
            week_label=week.label,
            completion_rate=round_half_up(rate),
            kpi_rating=kpi.rating,
        )
