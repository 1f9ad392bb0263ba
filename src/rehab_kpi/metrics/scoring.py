"""KPI score calculator.

Maps raw performance counters to a bucketed rating plus a numeric score.
Four independent entry points, one per metric family:

- score_by_consecutive_days: days completed in the current 7-day cycle
- score_by_assignments: weighted assignment completion / on-time / quality
- score_by_completion_rate: cycle completion percentage with a grace period
- score_weekly_team: share of team members who submitted this week

Each family has an explicit threshold table of ScoreBand entries, evaluated
top to bottom; the first band whose predicate matches wins. Every call emits
a "KPI Calculation" trace to the event logger.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from rehab_kpi.logging import EventLogger, emit_event
from rehab_kpi.metrics.common import is_number, round_half_up
from rehab_kpi.models import AssignmentCounters, KPIRating, KPIResult

logger = logging.getLogger(__name__)

MAX_CYCLE_DAYS = 7

# Weighted assignment score components (sum: 1.0)
ASSIGNMENT_WEIGHTS = {
    "completion": 0.7,
    "on_time": 0.2,
    "quality": 0.1,
}
MAX_PENDING_BONUS = 5.0
MAX_OVERDUE_PENALTY = 10.0

COLOR_EXCELLENT = "#10b981"
COLOR_GOOD = "#22c55e"
COLOR_BLUE = "#3b82f6"
COLOR_AVERAGE = "#eab308"
COLOR_AMBER = "#f59e0b"
COLOR_BELOW_AVERAGE = "#f97316"
COLOR_POOR = "#ef4444"
COLOR_CRITICAL = "#dc2626"
COLOR_NEUTRAL = "#6b7280"


@dataclass(frozen=True)
class ScoreBand:
    """One row of a threshold table.

    Attributes:
        matches: Predicate on the bucketed value.
        rating: Rating assigned when the predicate matches.
        color: Display colour (hex).
        description: Human-readable description. May contain str.format
            placeholders filled from the calculator's context.
        score: Score formula applied to the bucketed value.
    """

    matches: Callable[[float], bool]
    rating: KPIRating
    color: str
    description: str
    score: Callable[[float], float]


def _zero(_: float) -> float:
    return 0


def _full(_: float) -> float:
    return 100


def _share_of_cycle(days: float) -> float:
    return round_half_up(days / MAX_CYCLE_DAYS * 100)


def _rounded(value: float) -> float:
    return round_half_up(value)


CONSECUTIVE_DAYS_BANDS: tuple[ScoreBand, ...] = (
    ScoreBand(
        lambda d: d >= 7,
        KPIRating.EXCELLENT,
        COLOR_EXCELLENT,
        "Outstanding! Complete 7-day cycle achieved.",
        _full,
    ),
    ScoreBand(
        lambda d: d >= 5,
        KPIRating.GOOD,
        COLOR_GOOD,
        "Good progress! Keep going to complete the cycle.",
        _share_of_cycle,
    ),
    ScoreBand(
        lambda d: d >= 3,
        KPIRating.AVERAGE,
        COLOR_AVERAGE,
        "Average progress. Focus on consistency.",
        _share_of_cycle,
    ),
    ScoreBand(
        lambda d: True,
        KPIRating.NO_KPI_POINTS,
        COLOR_POOR,
        "Need at least 3 consecutive days for KPI points.",
        _zero,
    ),
)

ASSIGNMENT_BANDS: tuple[ScoreBand, ...] = (
    ScoreBand(
        lambda s: s >= 90,
        KPIRating.EXCELLENT,
        COLOR_EXCELLENT,
        "Excellent performance! Outstanding assignment completion and quality.",
        _rounded,
    ),
    ScoreBand(
        lambda s: s >= 75,
        KPIRating.GOOD,
        COLOR_BLUE,
        "Good performance! Keep up the consistency.",
        _rounded,
    ),
    ScoreBand(
        lambda s: s >= 60,
        KPIRating.AVERAGE,
        COLOR_AVERAGE,
        "Average performance. Focus on completing more assignments.",
        _rounded,
    ),
    ScoreBand(
        lambda s: s >= 40,
        KPIRating.BELOW_AVERAGE,
        COLOR_BELOW_AVERAGE,
        "Below average performance. Needs improvement.",
        _rounded,
    ),
    ScoreBand(
        lambda s: True,
        KPIRating.NEEDS_IMPROVEMENT,
        COLOR_POOR,
        "Poor performance. Immediate attention required.",
        _rounded,
    ),
)

COMPLETION_RATE_BANDS: tuple[ScoreBand, ...] = (
    ScoreBand(
        lambda r: r >= 100,
        KPIRating.EXCELLENT,
        COLOR_EXCELLENT,
        "Outstanding! Perfect completion rate achieved.",
        _full,
    ),
    ScoreBand(
        lambda r: r >= 70,
        KPIRating.GOOD,
        COLOR_GOOD,
        "Good progress! Keep up the consistency.",
        _rounded,
    ),
    ScoreBand(
        lambda r: r >= 50,
        KPIRating.AVERAGE,
        COLOR_AVERAGE,
        "Average progress. Focus on consistency.",
        _rounded,
    ),
    ScoreBand(
        lambda r: True,
        KPIRating.NEEDS_IMPROVEMENT,
        COLOR_POOR,
        "Below average performance. Needs attention.",
        _rounded,
    ),
)

TEAM_SUBMISSIONS = "{submissions}/{members} members submitted work readiness this week ({rate}%)."

WEEKLY_TEAM_BANDS: tuple[ScoreBand, ...] = (
    ScoreBand(
        lambda r: r >= 90,
        KPIRating.EXCELLENT,
        COLOR_EXCELLENT,
        "Excellent! " + TEAM_SUBMISSIONS,
        _rounded,
    ),
    ScoreBand(
        lambda r: r >= 75,
        KPIRating.GOOD,
        COLOR_BLUE,
        "Good performance! " + TEAM_SUBMISSIONS,
        _rounded,
    ),
    ScoreBand(
        lambda r: r >= 60,
        KPIRating.AVERAGE,
        COLOR_AMBER,
        "Average performance. " + TEAM_SUBMISSIONS,
        _rounded,
    ),
    ScoreBand(
        lambda r: r >= 40,
        KPIRating.NEEDS_IMPROVEMENT,
        COLOR_POOR,
        "Needs improvement. Only " + TEAM_SUBMISSIONS,
        _rounded,
    ),
    ScoreBand(
        lambda r: True,
        KPIRating.POOR,
        COLOR_CRITICAL,
        "Poor performance. Only " + TEAM_SUBMISSIONS,
        _rounded,
    ),
)


def match_band(bands: Sequence[ScoreBand], value: float) -> ScoreBand:
    """Return the first band whose predicate matches value.

    Args:
        bands: Threshold table, highest band first.
        value: Value being bucketed.

    Returns:
        Matching band.

    Raises:
        ValueError: If no band matches (tables end with a catch-all band).
    """
    for band in bands:
        if band.matches(value):
            return band
    msg = f"No score band matches value {value!r}"
    raise ValueError(msg)


def _log_calculation(
    event_logger: EventLogger | None,
    operation: str,
    inputs: dict[str, Any],
    result: KPIResult,
) -> None:
    emit_event(
        event_logger,
        "KPI Calculation",
        {
            "operation": operation,
            "input": inputs,
            "result": {
                "rating": str(result.rating),
                "score": result.score,
                "color": result.color,
            },
        },
    )


def score_by_consecutive_days(
    consecutive_days: int,
    event_logger: EventLogger | None = None,
) -> KPIResult:
    """Score a worker by consecutive days completed in the current cycle.

    Precondition: consecutive_days >= 0. Values above 7 score as a full cycle.

    Args:
        consecutive_days: Number of consecutive days completed.
        event_logger: Receives the calculation trace.

    Returns:
        KPIResult echoing consecutive_days and max_days.
    """
    band = match_band(CONSECUTIVE_DAYS_BANDS, consecutive_days)
    result = KPIResult(
        rating=band.rating,
        color=band.color,
        description=band.description,
        score=band.score(consecutive_days),
        consecutive_days=consecutive_days,
        max_days=MAX_CYCLE_DAYS,
    )
    _log_calculation(
        event_logger, "Consecutive Days KPI", {"consecutive_days": consecutive_days}, result
    )
    return result


def _clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))


def score_by_assignments(
    completed: Any,
    total: Any,
    on_time: Any = 0,
    quality_score: Any = 0,
    pending: Any = 0,
    overdue: Any = 0,
    event_logger: EventLogger | None = None,
) -> KPIResult:
    """Score a worker by assignment completion, punctuality and quality.

    weighted_score = completion_rate * 0.7 + on_time_rate * 0.2
                     + quality_score * 0.1 + pending_bonus - overdue_penalty

    The three rates are clamped to 0-100 before weighting, the pending bonus
    is capped at 5 and the overdue penalty at 10. The combined score is NOT
    clamped again, so it can land above 100 or below 0.

    Non-numeric counters produce an "Error" result instead of raising, and
    total == 0 produces "No Assignments".

    Args:
        completed: Completed assignments.
        total: Assignments given.
        on_time: Assignments completed on or before their due time.
        quality_score: Average readiness quality score (0-100).
        pending: Pending assignments with a future due time.
        overdue: Overdue assignments.
        event_logger: Receives the calculation trace.

    Returns:
        KPIResult with rates, bonus, penalty and weighted_score echoed.
    """
    inputs = {
        "completed": completed,
        "total": total,
        "on_time": on_time,
        "quality_score": quality_score,
        "pending": pending,
        "overdue": overdue,
    }

    invalid = [name for name, value in inputs.items() if not is_number(value)]
    if invalid:
        logger.error(
            "Invalid input types for assignment KPI calculation: %s",
            ", ".join(f"{name}={type(inputs[name]).__name__}" for name in invalid),
        )
        result = _empty_assignment_result(
            KPIRating.ERROR, COLOR_POOR, "Invalid data for KPI calculation"
        )
        _log_calculation(event_logger, "Assignment KPI", inputs, result)
        return result

    if total == 0:
        result = _empty_assignment_result(
            KPIRating.NO_ASSIGNMENTS, COLOR_NEUTRAL, "No work readiness assignments given yet."
        )
        _log_calculation(event_logger, "Assignment KPI", inputs, result)
        return result

    completion_rate = _clamp_percent(completed / total * 100)
    on_time_rate = _clamp_percent(on_time / total * 100)
    validated_quality = _clamp_percent(quality_score)
    pending_bonus = min(MAX_PENDING_BONUS, pending / total * MAX_PENDING_BONUS)
    overdue_penalty = min(MAX_OVERDUE_PENALTY, overdue / total * MAX_OVERDUE_PENALTY)

    weighted_score = (
        completion_rate * ASSIGNMENT_WEIGHTS["completion"]
        + on_time_rate * ASSIGNMENT_WEIGHTS["on_time"]
        + validated_quality * ASSIGNMENT_WEIGHTS["quality"]
        + pending_bonus
        - overdue_penalty
    )

    band = match_band(ASSIGNMENT_BANDS, weighted_score)
    result = KPIResult(
        rating=band.rating,
        color=band.color,
        description=band.description,
        score=band.score(weighted_score),
        weighted_score=round_half_up(weighted_score, 2),
        completion_rate=round_half_up(completion_rate),
        on_time_rate=round_half_up(on_time_rate),
        quality_score=round_half_up(validated_quality),
        pending_bonus=round_half_up(pending_bonus, 2),
        overdue_penalty=round_half_up(overdue_penalty, 2),
        completed_assignments=completed,
        total_assignments=total,
        on_time_submissions=on_time,
        pending_assignments=pending,
        overdue_assignments=overdue,
    )
    _log_calculation(event_logger, "Assignment KPI", inputs, result)
    return result


def _empty_assignment_result(rating: KPIRating, color: str, description: str) -> KPIResult:
    return KPIResult(
        rating=rating,
        color=color,
        description=description,
        score=0,
        weighted_score=0,
        completion_rate=0,
        on_time_rate=0,
        quality_score=0,
        pending_bonus=0,
        overdue_penalty=0,
        completed_assignments=0,
        total_assignments=0,
        on_time_submissions=0,
        pending_assignments=0,
        overdue_assignments=0,
    )


def score_assignment_counters(
    counters: AssignmentCounters,
    event_logger: EventLogger | None = None,
) -> KPIResult:
    """Score an AssignmentCounters record. See score_by_assignments."""
    return score_by_assignments(
        counters.completed,
        counters.total,
        on_time=counters.on_time,
        quality_score=counters.quality_score,
        pending=counters.pending,
        overdue=counters.overdue,
        event_logger=event_logger,
    )


def score_by_completion_rate(
    completion_rate: float,
    current_day: int | None = None,
    total_assessments: int | None = None,
    event_logger: EventLogger | None = None,
) -> KPIResult:
    """Score a worker by cycle completion percentage.

    A zero rate with no assessments is "Not Started". Days 1-2 of a cycle are
    a grace period rated "On Track" with no points, whatever the rate.

    Args:
        completion_rate: Completion percentage (0-100).
        current_day: Current day in the cycle, if known.
        total_assessments: Assessments submitted so far, if known.
        event_logger: Receives the calculation trace.

    Returns:
        KPIResult echoing completion_rate and max_rate.
    """
    inputs = {
        "completion_rate": completion_rate,
        "current_day": current_day,
        "total_assessments": total_assessments,
    }

    if completion_rate == 0 and total_assessments in (0, None):
        result = KPIResult(
            rating=KPIRating.NOT_STARTED,
            color=COLOR_NEUTRAL,
            description="KPI rating not yet started. Begin your work readiness assessments.",
            score=0,
            completion_rate=completion_rate,
            max_rate=100,
        )
    elif current_day is not None and current_day <= 2:
        result = KPIResult(
            rating=KPIRating.ON_TRACK,
            color=COLOR_BLUE,
            description="Just started the cycle. Keep going!",
            score=0,
            completion_rate=completion_rate,
            max_rate=100,
        )
    else:
        band = match_band(COMPLETION_RATE_BANDS, completion_rate)
        result = KPIResult(
            rating=band.rating,
            color=band.color,
            description=band.description,
            score=band.score(completion_rate),
            completion_rate=completion_rate,
            max_rate=100,
        )

    _log_calculation(event_logger, "Completion Rate KPI", inputs, result)
    return result


def score_weekly_team(
    submission_rate: float,
    submissions: int,
    total_members: int,
    event_logger: EventLogger | None = None,
) -> KPIResult:
    """Score a team by the share of members who submitted this week.

    Args:
        submission_rate: Percentage of members with a submission this week.
        submissions: Members with a submission this week.
        total_members: Team size.
        event_logger: Receives the calculation trace.

    Returns:
        KPIResult echoing the weekly submission figures.
    """
    band = match_band(WEEKLY_TEAM_BANDS, submission_rate)
    rounded_rate = round_half_up(submission_rate)
    result = KPIResult(
        rating=band.rating,
        color=band.color,
        description=band.description.format(
            submissions=submissions, members=total_members, rate=rounded_rate
        ),
        score=band.score(submission_rate),
        completion_rate=submission_rate,
        max_rate=100,
        weekly_submissions=submissions,
        total_members=total_members,
        weekly_submission_rate=rounded_rate,
    )
    _log_calculation(
        event_logger,
        "Weekly Team KPI",
        {
            "submission_rate": submission_rate,
            "submissions": submissions,
            "total_members": total_members,
        },
        result,
    )
    return result
