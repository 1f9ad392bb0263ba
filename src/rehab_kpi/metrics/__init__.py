"""KPI calculators for scores, streaks, assignments and team rollups."""

from rehab_kpi.metrics.assignments import (
    AssignmentRecord,
    AssignmentStatus,
    quality_score_from_readiness,
    summarize_assignments,
)
from rehab_kpi.metrics.scoring import (
    score_assignment_counters,
    score_by_assignments,
    score_by_completion_rate,
    score_by_consecutive_days,
    score_weekly_team,
)
from rehab_kpi.metrics.streaks import calculate_streaks
from rehab_kpi.metrics.team import calculate_weekly_team_kpi, classify_cycle_status, summarize_team

__all__ = [
    "AssignmentRecord",
    "AssignmentStatus",
    "calculate_streaks",
    "calculate_weekly_team_kpi",
    "classify_cycle_status",
    "quality_score_from_readiness",
    "score_assignment_counters",
    "score_by_assignments",
    "score_by_completion_rate",
    "score_by_consecutive_days",
    "score_weekly_team",
    "summarize_assignments",
    "summarize_team",
]
