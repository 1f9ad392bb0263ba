"""Tests for working-day streak calculation."""

from collections.abc import Callable
from datetime import UTC, date, datetime

import pytest

from rehab_kpi.metrics.streaks import (
    calculate_streaks,
    current_streak,
    longest_streak,
    submission_dates,
)
from rehab_kpi.models import AssessmentEvent

# Week of Mon 2026-10-12 .. Sun 2026-10-18
MON, TUE, WED, THU, FRI, SAT, SUN = (date(2026, 10, d) for d in range(12, 19))
NEXT_MON = date(2026, 10, 19)

EventFactory = Callable[..., AssessmentEvent]


class TestCalculateStreaks:
    """Tests for calculate_streaks."""

    def test_empty(self) -> None:
        """Test no events gives zero streaks."""
        result = calculate_streaks([], today=WED)

        assert result.current == 0
        assert result.longest == 0

    def test_consecutive_weekdays(self, make_event: EventFactory) -> None:
        """Test Mon, Tue, Wed counted through Wednesday."""
        events = [make_event(WED), make_event(MON), make_event(TUE)]

        result = calculate_streaks(events, today=WED)

        assert result.longest == 3
        assert result.current == 3

    def test_current_streak_survives_one_day(self, make_event: EventFactory) -> None:
        """Test a streak ending yesterday is still current."""
        events = [make_event(MON), make_event(TUE), make_event(WED)]

        assert calculate_streaks(events, today=THU).current == 3

    def test_current_streak_expires(self, make_event: EventFactory) -> None:
        """Test a streak ending two days ago is no longer current."""
        events = [make_event(MON), make_event(TUE), make_event(WED)]

        result = calculate_streaks(events, today=FRI)

        assert result.current == 0
        assert result.longest == 3

    def test_weekend_only(self, make_event: EventFactory) -> None:
        """Test Saturday and Sunday submissions are ignored entirely."""
        events = [make_event(SAT), make_event(SUN)]

        result = calculate_streaks(events, today=SUN)

        assert result.current == 0
        assert result.longest == 0

    def test_weekend_gap_breaks_streak(self, make_event: EventFactory) -> None:
        """Test Friday to Monday is a three-day gap and restarts the streak."""
        events = [make_event(THU), make_event(FRI), make_event(SAT), make_event(NEXT_MON)]

        result = calculate_streaks(events, today=NEXT_MON)

        assert result.longest == 2
        assert result.current == 1

    def test_gap_restarts_longest(self, make_event: EventFactory) -> None:
        """Test a missed weekday splits the streak."""
        events = [make_event(MON), make_event(TUE), make_event(THU)]

        result = calculate_streaks(events, today=THU)

        assert result.longest == 2
        assert result.current == 1

    def test_same_day_duplicates_collapsed(self, make_event: EventFactory) -> None:
        """Test two submissions on one day count once."""
        events = [
            make_event(MON),
            make_event(TUE, hour=8),
            make_event(TUE, hour=16),
            make_event(WED),
        ]

        result = calculate_streaks(events, today=WED)

        assert result.longest == 3
        assert result.current == 3

    def test_same_day_duplicates_restart_walk_when_not_collapsed(
        self, make_event: EventFactory
    ) -> None:
        """Test the uncollapsed walk treats a repeated date as a break."""
        events = [
            make_event(MON),
            make_event(TUE, hour=8),
            make_event(TUE, hour=16),
            make_event(WED),
        ]

        result = calculate_streaks(events, today=WED, collapse_same_day=False)

        assert result.longest == 2
        assert result.current == 3

    @pytest.mark.parametrize("today", [MON, TUE, WED, THU, FRI, NEXT_MON])
    def test_current_never_exceeds_longest(self, make_event: EventFactory, today: date) -> None:
        """Test current <= longest with collapsed duplicates."""
        events = [
            make_event(MON),
            make_event(MON, hour=18),
            make_event(TUE),
            make_event(THU),
            make_event(FRI),
            make_event(FRI, hour=20),
        ]

        result = calculate_streaks(events, today=today)

        assert result.current <= result.longest

    def test_timezone_moves_submission_onto_weekend(self) -> None:
        """Test late Friday UTC is Saturday in Manila and gets dropped there."""
        event = AssessmentEvent(
            worker_id="w1",
            submitted_at=datetime(2026, 10, 16, 23, 30, tzinfo=UTC),
        )

        utc = calculate_streaks([event], today=FRI, tz="UTC")
        manila = calculate_streaks([event], today=FRI, tz="Asia/Manila")

        assert utc.longest == 1
        assert manila.longest == 0

    def test_emits_streak_event(self, make_event: EventFactory, event_logger) -> None:
        """Test a Streak Calculation event is emitted."""
        calculate_streaks([make_event(MON)], today=MON, event_logger=event_logger)

        payloads = event_logger.named("Streak Calculation")
        assert len(payloads) == 1
        assert payloads[0]["current"] == 1
        assert payloads[0]["longest"] == 1
        assert payloads[0]["today"] == "2026-10-12"


class TestStreakHelpers:
    """Tests for the streak helper functions."""

    def test_submission_dates_sorted_and_filtered(self, make_event: EventFactory) -> None:
        """Test dates come back ascending without weekends."""
        events = [make_event(WED), make_event(SUN), make_event(MON)]

        assert submission_dates(events) == [MON, WED]

    def test_longest_empty(self) -> None:
        """Test longest streak of no dates is 0."""
        assert longest_streak([]) == 0

    def test_current_ignores_duplicates(self) -> None:
        """Test duplicates do not break the current streak."""
        assert current_streak([MON, TUE, TUE, WED], today=WED) == 3
