"""Tests for TrendAggregator."""

from collections.abc import Callable, Sequence
from datetime import date, datetime

import pytest

from rehab_kpi.metrics.calendar import week_date_range
from rehab_kpi.models import AssessmentEvent, KPIRating, WeekRange
from rehab_kpi.report.trends import TrendAggregator
from rehab_kpi.source import StaticAssessmentSource

EventFactory = Callable[..., AssessmentEvent]

# Wednesday; current week is Sun 2026-10-11 .. Sat 2026-10-17
REFERENCE = date(2026, 10, 14)


class FailingSource:
    """Source whose every fetch fails."""

    def __init__(self) -> None:
        self.calls = 0

    async def fetch_assessments(
        self, worker_ids: Sequence[str], start: datetime, end: datetime
    ) -> list[AssessmentEvent]:
        self.calls += 1
        msg = "datastore unavailable"
        raise ConnectionError(msg)


class RecordingSource(StaticAssessmentSource):
    """Static source that remembers each requested range."""

    def __init__(self, events: list[AssessmentEvent]) -> None:
        super().__init__(events)
        self.requests: list[tuple[list[str], datetime, datetime]] = []

    async def fetch_assessments(
        self, worker_ids: Sequence[str], start: datetime, end: datetime
    ) -> list[AssessmentEvent]:
        self.requests.append((list(worker_ids), start, end))
        return await super().fetch_assessments(worker_ids, start, end)


class TestPerformanceTrend:
    """Tests for TrendAggregator.performance_trend."""

    @pytest.mark.asyncio
    async def test_oldest_week_first(self, make_event: EventFactory) -> None:
        """Test points are ordered oldest first with per-week rates."""
        events = [
            make_event(date(2026, 10, 5)),
            make_event(date(2026, 10, 12)),
            make_event(date(2026, 10, 13)),
            make_event(date(2026, 10, 14)),
        ]
        aggregator = TrendAggregator(StaticAssessmentSource(events))

        points = await aggregator.performance_trend("w1", weeks_back=3, reference=REFERENCE)

        assert [p.week_label for p in points] == [
            "Week of Sun, Sep 27",
            "Week of Sun, Oct 4",
            "Week of Sun, Oct 11",
        ]
        assert [p.completion_rate for p in points] == [0, 20, 60]
        assert [p.completed_days for p in points] == [0, 1, 3]
        assert all(p.total_days == 5 for p in points)
        assert points[0].kpi_rating == KPIRating.NOT_STARTED
        assert points[1].kpi_rating == KPIRating.NEEDS_IMPROVEMENT
        assert points[2].kpi_rating == KPIRating.AVERAGE

    @pytest.mark.asyncio
    async def test_requests_one_week_at_a_time(self) -> None:
        """Test each week is fetched for the worker with its own boundaries."""
        source = RecordingSource([])
        aggregator = TrendAggregator(source)

        await aggregator.performance_trend("w1", weeks_back=2, reference=REFERENCE)

        current = week_date_range(REFERENCE)
        assert source.requests[0] == (["w1"], current.start, current.end)
        assert source.requests[1][1] == week_date_range(date(2026, 10, 7)).start

    @pytest.mark.asyncio
    async def test_weekend_submissions_exceed_100(self, make_event: EventFactory) -> None:
        """Test weekend submissions push the rate past 100."""
        days = [date(2026, 10, d) for d in range(11, 18)]
        aggregator = TrendAggregator(StaticAssessmentSource([make_event(d) for d in days]))

        points = await aggregator.performance_trend("w1", weeks_back=1, reference=REFERENCE)

        assert points[0].completed_days == 7
        assert points[0].completion_rate == 140
        assert points[0].total_days == 5
        assert points[0].kpi_rating == KPIRating.EXCELLENT

    @pytest.mark.asyncio
    async def test_other_workers_ignored(self, make_event: EventFactory) -> None:
        """Test only the requested worker's submissions count."""
        events = [make_event(date(2026, 10, 12), worker_id="w2")]
        aggregator = TrendAggregator(StaticAssessmentSource(events))

        points = await aggregator.performance_trend("w1", weeks_back=1, reference=REFERENCE)

        assert points[0].completion_rate == 0

    @pytest.mark.asyncio
    async def test_injected_calendar(self, make_event: EventFactory) -> None:
        """Test injected week and working-day functions are used."""

        def fixed_week(reference: date, tz: object) -> WeekRange:
            return week_date_range(REFERENCE)

        aggregator = TrendAggregator(
            StaticAssessmentSource([make_event(date(2026, 10, 12))]),
            week_range=fixed_week,
            working_days=lambda start, end: 0,
        )

        points = await aggregator.performance_trend("w1", weeks_back=2, reference=REFERENCE)

        assert len(points) == 2
        assert all(p.completion_rate == 0 for p in points)
        assert all(p.total_days == 0 for p in points)
        assert all(p.kpi_rating == KPIRating.NOT_STARTED for p in points)

    @pytest.mark.asyncio
    async def test_failing_source_gives_empty_trend(self) -> None:
        """Test a source error degrades to an empty list."""
        source = FailingSource()
        aggregator = TrendAggregator(source)

        assert await aggregator.performance_trend("w1", reference=REFERENCE) == []
        assert source.calls == 1

    @pytest.mark.asyncio
    async def test_emits_trend_event(self, make_event: EventFactory, event_logger) -> None:
        """Test a Performance Trend event carries the rates."""
        aggregator = TrendAggregator(
            StaticAssessmentSource([make_event(date(2026, 10, 12))]),
            event_logger=event_logger,
        )

        await aggregator.performance_trend("w1", weeks_back=2, reference=REFERENCE)

        assert event_logger.named("Performance Trend") == [
            {"worker_id": "w1", "weeks_back": 2, "rates": [0, 20]}
        ]


class TestWeeklyComparison:
    """Tests for TrendAggregator.weekly_comparison."""

    @pytest.mark.asyncio
    async def test_improving(self, make_event: EventFactory) -> None:
        """Test more members submitting this week is an improvement."""
        events = [
            make_event(date(2026, 10, 6), worker_id="a"),
            make_event(date(2026, 10, 12), worker_id="a"),
            make_event(date(2026, 10, 13), worker_id="b"),
        ]
        aggregator = TrendAggregator(StaticAssessmentSource(events))

        comparison = await aggregator.weekly_comparison(["a", "b"], reference=REFERENCE)

        assert comparison is not None
        assert comparison.previous_week.completion_rate == 50
        assert comparison.current_week.completion_rate == 100
        assert comparison.improvement == 50
        assert comparison.improvement_trend == "improving"
        assert comparison.previous_week.kpi_rating == KPIRating.AVERAGE
        assert comparison.current_week.kpi_rating == KPIRating.EXCELLENT
        assert comparison.previous_week.week_label == "Week of Sun, Oct 4"
        assert comparison.current_week.week_label == "Week of Sun, Oct 11"

    @pytest.mark.asyncio
    async def test_one_submission_each_is_full_coverage(self, make_event: EventFactory) -> None:
        """Test every member submitting once rates the week Excellent."""
        events = [
            make_event(date(2026, 10, 12), worker_id="a"),
            make_event(date(2026, 10, 14), worker_id="b"),
        ]
        aggregator = TrendAggregator(StaticAssessmentSource(events))

        comparison = await aggregator.weekly_comparison(["a", "b"], reference=REFERENCE)

        assert comparison is not None
        assert comparison.current_week.completion_rate == 100
        assert comparison.current_week.kpi_rating == KPIRating.EXCELLENT

    @pytest.mark.asyncio
    async def test_declining(self, make_event: EventFactory) -> None:
        """Test fewer members submitting this week is a decline."""
        events = [
            make_event(date(2026, 10, 5), worker_id="w1"),
            make_event(date(2026, 10, 8), worker_id="w2"),
            make_event(date(2026, 10, 12), worker_id="w1"),
            make_event(date(2026, 10, 13), worker_id="w1"),
        ]
        aggregator = TrendAggregator(StaticAssessmentSource(events))

        comparison = await aggregator.weekly_comparison(["w1", "w2"], reference=REFERENCE)

        assert comparison is not None
        assert comparison.previous_week.kpi_rating == KPIRating.EXCELLENT
        assert comparison.current_week.completion_rate == 50
        assert comparison.improvement == -50
        assert comparison.improvement_trend == "declining"

    @pytest.mark.asyncio
    async def test_stable(self, make_event: EventFactory) -> None:
        """Test equal rates are stable."""
        events = [make_event(date(2026, 10, 6)), make_event(date(2026, 10, 13))]
        aggregator = TrendAggregator(StaticAssessmentSource(events))

        comparison = await aggregator.weekly_comparison(["w1"], reference=REFERENCE)

        assert comparison is not None
        assert comparison.improvement == 0
        assert comparison.improvement_trend == "stable"

    @pytest.mark.asyncio
    async def test_duplicate_submissions_count_once(self, make_event: EventFactory) -> None:
        """Test repeat submissions and repeated member ids count one member."""
        events = [
            make_event(date(2026, 10, 12), hour=8),
            make_event(date(2026, 10, 12), hour=16),
            make_event(date(2026, 10, 13)),
        ]
        aggregator = TrendAggregator(StaticAssessmentSource(events))

        comparison = await aggregator.weekly_comparison(["w1", "w1", "w2"], reference=REFERENCE)

        assert comparison is not None
        assert comparison.current_week.completion_rate == 50

    @pytest.mark.asyncio
    async def test_uses_injected_week_range(self, make_event: EventFactory) -> None:
        """Test the previous week comes from the injected week function."""
        requested: list[date] = []

        def recording_week(reference: date, tz: object) -> WeekRange:
            requested.append(reference)
            return week_date_range(reference)

        aggregator = TrendAggregator(
            StaticAssessmentSource([make_event(date(2026, 10, 12))]),
            week_range=recording_week,
        )

        comparison = await aggregator.weekly_comparison(["w1"], reference=REFERENCE)

        assert comparison is not None
        assert requested == [REFERENCE, date(2026, 10, 4)]
        assert comparison.previous_week.week_label == "Week of Sun, Oct 4"

    @pytest.mark.asyncio
    async def test_empty_team(self) -> None:
        """Test no workers gives no comparison."""
        aggregator = TrendAggregator(StaticAssessmentSource([]))

        assert await aggregator.weekly_comparison([], reference=REFERENCE) is None

    @pytest.mark.asyncio
    async def test_failing_source(self) -> None:
        """Test a source error gives no comparison."""
        aggregator = TrendAggregator(FailingSource())

        assert await aggregator.weekly_comparison(["w1"], reference=REFERENCE) is None

    @pytest.mark.asyncio
    async def test_emits_comparison_event(self, make_event: EventFactory, event_logger) -> None:
        """Test a Weekly Comparison event is emitted."""
        aggregator = TrendAggregator(
            StaticAssessmentSource([make_event(date(2026, 10, 13))]),
            event_logger=event_logger,
        )

        await aggregator.weekly_comparison(["w1"], reference=REFERENCE)

        assert event_logger.named("Weekly Comparison") == [
            {"workers": 1, "previous_rate": 0, "current_rate": 100, "trend": "improving"}
        ]
