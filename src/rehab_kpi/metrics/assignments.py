"""Assignment counters for the assignment-based KPI.

Turns raw work readiness assignments and assessments into the
AssignmentCounters consumed by score_assignment_counters.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

from rehab_kpi.models import AssessmentEvent, AssignmentCounters, ReadinessLevel

logger = logging.getLogger(__name__)

# Quality points per assessment, by readiness level
READINESS_QUALITY_POINTS: dict[ReadinessLevel, int] = {
    ReadinessLevel.FIT: 100,
    ReadinessLevel.MINOR: 70,
    ReadinessLevel.NOT_FIT: 30,
}
UNKNOWN_READINESS_POINTS = 50


class AssignmentStatus(StrEnum):
    """Lifecycle state of a work readiness assignment."""

    PENDING = "pending"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class AssignmentRecord(BaseModel):
    """One work readiness assignment given to a worker."""

    model_config = ConfigDict(frozen=True)

    status: AssignmentStatus
    due_time: datetime | None = None
    completed_at: datetime | None = None

    @field_validator("due_time", "completed_at")
    @classmethod
    def ensure_aware(cls, v: datetime | None) -> datetime | None:
        """Treat naive timestamps as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @property
    def is_on_time(self) -> bool:
        """Completed at or before the due time."""
        if self.status != AssignmentStatus.COMPLETED:
            return False
        if self.completed_at is None or self.due_time is None:
            return False
        return self.completed_at <= self.due_time


def summarize_assignments(
    records: Iterable[AssignmentRecord],
    quality_score: float = 0.0,
    now: datetime | None = None,
) -> AssignmentCounters:
    """Count assignments for the assignment-based KPI.

    Pending assignments only count while their due time is still in the
    future; every overdue assignment counts towards the penalty.

    Args:
        records: Assignments in the evaluation window.
        quality_score: Average readiness quality score (0-100).
        now: Reference instant for pending assignments. Defaults to now (UTC).

    Returns:
        AssignmentCounters for the window.
    """
    if now is None:
        now = datetime.now(UTC)

    total = completed = on_time = pending = overdue = 0
    for record in records:
        total += 1
        if record.status == AssignmentStatus.COMPLETED:
            completed += 1
            if record.is_on_time:
                on_time += 1
        elif record.status == AssignmentStatus.PENDING:
            if record.due_time is not None and record.due_time > now:
                pending += 1
        elif record.status == AssignmentStatus.OVERDUE:
            overdue += 1

    logger.debug(
        "Summarized %d assignments: completed=%d on_time=%d pending=%d overdue=%d",
        total,
        completed,
        on_time,
        pending,
        overdue,
    )

    return AssignmentCounters(
        completed=completed,
        total=total,
        on_time=on_time,
        pending=pending,
        overdue=overdue,
        quality_score=max(0.0, min(100.0, quality_score)),
    )


def quality_score_from_readiness(events: Iterable[AssessmentEvent]) -> float:
    """Average readiness quality over a set of assessments.

    fit scores 100, minor 70, not_fit 30; an assessment without a readiness
    level scores 50.

    Returns:
        Mean quality score, or 0.0 when there are no assessments.
    """
    points = [
        READINESS_QUALITY_POINTS.get(event.readiness_level, UNKNOWN_READINESS_POINTS)
        for event in events
    ]
    if not points:
        return 0.0
    return sum(points) / len(points)
