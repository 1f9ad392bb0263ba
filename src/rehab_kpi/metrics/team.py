"""Team-level rollups over assessment events.

Events are loaded into a pandas DataFrame with one row per submission and a
local calendar ``date`` column, then grouped per worker or per week.

Frame columns:
    - worker_id (str): Worker identifier
    - submitted_at (datetime): Submission instant (timezone-aware)
    - date (date): Submission date in the reporting timezone
    - readiness_level (str, nullable): fit / minor / not_fit
    - cycle_start (date, nullable): First day of the worker's cycle
    - cycle_day (int, nullable): Day number within the cycle
    - streak_days (int, nullable): Consecutive days completed in the cycle
    - cycle_completed (bool): Whether this submission completed the cycle
"""

import logging
from collections.abc import Iterable
from datetime import timedelta, tzinfo
from typing import Any
from zoneinfo import ZoneInfo

import pandas as pd

from rehab_kpi.logging import EventLogger
from rehab_kpi.metrics.scoring import MAX_CYCLE_DAYS, score_by_completion_rate, score_weekly_team
from rehab_kpi.models import (
    AssessmentEvent,
    CycleStatus,
    CycleStatusEntry,
    KPIResult,
    TeamSummary,
    WeekRange,
)

logger = logging.getLogger(__name__)

FRAME_COLUMNS = [
    "worker_id",
    "submitted_at",
    "date",
    "readiness_level",
    "cycle_start",
    "cycle_day",
    "streak_days",
    "cycle_completed",
]


def events_frame(events: Iterable[AssessmentEvent], tz: str | tzinfo = "UTC") -> pd.DataFrame:
    """Build a DataFrame of assessment events.

    Args:
        events: Assessment events.
        tz: Timezone used for the ``date`` column.

    Returns:
        DataFrame with FRAME_COLUMNS, sorted by submission instant.
    """
    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    records: list[dict[str, Any]] = [
        {
            "worker_id": event.worker_id,
            "submitted_at": event.submitted_at,
            "date": event.submitted_at.astimezone(zone).date(),
            "readiness_level": str(event.readiness_level) if event.readiness_level else None,
            "cycle_start": event.cycle_start,
            "cycle_day": event.cycle_day,
            "streak_days": event.streak_days,
            "cycle_completed": event.cycle_completed,
        }
        for event in events
    ]

    if not records:
        return pd.DataFrame(columns=FRAME_COLUMNS)

    df = pd.DataFrame(records, columns=FRAME_COLUMNS)
    return df.sort_values("submitted_at", kind="stable").reset_index(drop=True)


def calculate_weekly_team_kpi(
    events: Iterable[AssessmentEvent],
    member_ids: Iterable[str],
    week: WeekRange,
    tz: str | tzinfo = "UTC",
    event_logger: EventLogger | None = None,
) -> KPIResult:
    """Score a team by how many members submitted during a week.

    Args:
        events: Assessment events for the team.
        member_ids: IDs of every team member.
        week: Reporting week.
        tz: Timezone used to date submissions.
        event_logger: Receives the calculation trace.

    Returns:
        Weekly team KPIResult.
    """
    members = set(member_ids)
    df = events_frame(events, tz)

    submissions = 0
    if not df.empty:
        in_week = (
            df["worker_id"].isin(members)
            & (df["date"] >= week.start_date)
            & (df["date"] <= week.end_date)
        )
        submissions = int(df.loc[in_week, "worker_id"].nunique())

    rate = submissions / len(members) * 100 if members else 0.0
    logger.debug(
        "%s: %d of %d members submitted (%.1f%%)", week.label, submissions, len(members), rate
    )
    return score_weekly_team(rate, submissions, len(members), event_logger=event_logger)


def classify_cycle_status(
    worker_id: str,
    worker_name: str,
    events: Iterable[AssessmentEvent],
) -> CycleStatusEntry:
    """Derive a worker's current cycle state from their latest assessment.

    A cycle counts as completed when the latest assessment is flagged
    complete or carries a streak of at least seven days.

    Args:
        worker_id: Worker identifier.
        worker_name: Display name.
        events: The worker's assessments.

    Returns:
        CycleStatusEntry for the monitoring view.
    """
    own = [event for event in events if event.worker_id == worker_id]
    if not own:
        return CycleStatusEntry(
            worker_id=worker_id,
            worker_name=worker_name,
            status=CycleStatus.NOT_STARTED,
        )

    latest = max(own, key=lambda event: event.submitted_at)
    streak_days = latest.streak_days or 0
    completed = latest.cycle_completed or streak_days >= MAX_CYCLE_DAYS
    cycle_end = latest.cycle_start + timedelta(days=6) if latest.cycle_start else None

    return CycleStatusEntry(
        worker_id=worker_id,
        worker_name=worker_name,
        status=CycleStatus.COMPLETED if completed else CycleStatus.IN_PROGRESS,
        current_day=latest.cycle_day or 0,
        streak_days=streak_days,
        cycle_completed=completed,
        cycle_start=latest.cycle_start,
        cycle_end=cycle_end,
        last_submission=latest.submitted_at,
    )


def summarize_team(
    events: Iterable[AssessmentEvent],
    member_ids: Iterable[str],
    tz: str | tzinfo = "UTC",
    event_logger: EventLogger | None = None,
) -> TeamSummary:
    """Roll up completed cycles for a team over a reporting period.

    Each completed cycle's completion rate is streak_days / 7 * 100; the team
    KPI is scored on the mean of those rates.

    Args:
        events: Assessment events for the period.
        member_ids: IDs of every team member.
        tz: Timezone used to date submissions.
        event_logger: Receives the team KPI calculation trace.

    Returns:
        TeamSummary for the insight generators.
    """
    members = set(member_ids)
    df = events_frame(events, tz)
    if not df.empty:
        df = df[df["worker_id"].isin(members)]

    if df.empty:
        logger.info("No assessments for %d team members", len(members))
        return TeamSummary(
            team_kpi=score_by_completion_rate(0, None, 0, event_logger=event_logger),
            total_members=len(members),
        )

    completed = df[df["cycle_completed"].astype(bool)]
    streaks = pd.to_numeric(completed["streak_days"], errors="coerce").fillna(0)
    completion_rates = streaks / MAX_CYCLE_DAYS * 100

    total_completed = len(completed)
    average_rate = float(completion_rates.mean()) if total_completed else 0.0
    active_members = int(df["worker_id"].nunique())

    logger.debug(
        "Team summary: %d completed cycles, %d/%d active members",
        total_completed,
        active_members,
        len(members),
    )

    return TeamSummary(
        total_completed_cycles=total_completed,
        average_completion_rate=average_rate,
        team_kpi=score_by_completion_rate(
            average_rate, None, len(df), event_logger=event_logger
        ),
        average_cycles_per_member=total_completed / len(members) if members else 0.0,
        total_members=len(members),
        active_members=active_members,
    )
