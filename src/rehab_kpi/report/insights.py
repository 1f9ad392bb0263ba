"""Dashboard insight generators.

Pure transformations from computed KPI data to lists of Insight cards for
the weekly performance, cycle monitoring and monthly summary views. Insights
are emitted in a fixed order so dashboards render them deterministically.
"""

import logging
from collections.abc import Sequence
from typing import Any

from rehab_kpi.logging import EventLogger, emit_event
from rehab_kpi.metrics.common import format_number, round_half_up
from rehab_kpi.models import (
    CycleStatus,
    CycleStatusEntry,
    Insight,
    InsightType,
    KPIRating,
    KPIResult,
    MonthlyTrendPoint,
    TeamSummary,
    WorkerMonthlyKPI,
    WorkerWeeklyKPI,
)

logger = logging.getLogger(__name__)

TOP_PERFORMER_LIMIT = 3
HIGH_CONSISTENCY_THRESHOLD = 80

# Team-level insight per team KPI rating; unmapped ratings produce none
TEAM_PERFORMANCE_INSIGHTS: dict[KPIRating, tuple[InsightType, str, str]] = {
    KPIRating.EXCELLENT: (
        InsightType.SUCCESS,
        "Outstanding Team Performance",
        "Excellent! Most team members have completed their 7-day cycles. "
        "Great consistency across different schedules!",
    ),
    KPIRating.GOOD: (
        InsightType.SUCCESS,
        "Good Team Performance",
        "Good progress! Most team members are completing their cycles. "
        "Keep encouraging consistency.",
    ),
    KPIRating.AVERAGE: (
        InsightType.WARNING,
        "Average Team Performance",
        "Team performance is average. "
        "Focus on supporting members who are struggling with their cycles.",
    ),
    KPIRating.NEEDS_IMPROVEMENT: (
        InsightType.ERROR,
        "Team Performance Needs Attention",
        "Team performance needs immediate attention. "
        "Many members are not completing their 7-day cycles.",
    ),
    KPIRating.NOT_STARTED: (
        InsightType.INFO,
        "Team Getting Started",
        "Most team members are just beginning their work readiness journey. "
        "Focus on engagement and getting everyone started.",
    ),
}


def _log_insights(event_logger: EventLogger | None, view: str, insights: list[Insight]) -> None:
    logger.debug("Generated %d %s insights", len(insights), view)
    emit_event(
        event_logger,
        "Insights Generated",
        {"view": view, "count": len(insights), "titles": [i.title for i in insights]},
    )


def generate_performance_insights(
    individual_kpis: Sequence[WorkerWeeklyKPI],
    team_kpi: KPIResult,
    event_logger: EventLogger | None = None,
) -> list[Insight]:
    """Generate insights for the weekly team performance view.

    Emitted in order: excellent performers, members needing support, one
    team-level insight keyed by the team rating, and high consistency when
    at least 80% of members rate Excellent or Good.

    Args:
        individual_kpis: Weekly KPI per team member.
        team_kpi: Team KPI for the week.
        event_logger: Receives the generation summary.

    Returns:
        List of insights.
    """
    insights: list[Insight] = []

    top_performers = [m for m in individual_kpis if m.rating == KPIRating.EXCELLENT][
        :TOP_PERFORMER_LIMIT
    ]
    if top_performers:
        names = ", ".join(m.worker_name for m in top_performers)
        insights.append(
            Insight(
                type=InsightType.SUCCESS,
                title="Excellent Performers",
                message=(
                    f"Congratulations to {names} for achieving excellent KPI ratings this week!"
                ),
                data=[{"name": m.worker_name, "kpi": str(m.rating)} for m in top_performers],
            )
        )

    needs_attention = [m for m in individual_kpis if m.rating == KPIRating.NEEDS_IMPROVEMENT]
    if needs_attention:
        insights.append(
            Insight(
                type=InsightType.WARNING,
                title="Members Needing Support",
                message=(
                    f"{len(needs_attention)} team member(s) need additional support "
                    "to improve their performance."
                ),
                data=[{"name": m.worker_name, "kpi": str(m.rating)} for m in needs_attention],
            )
        )

    team_insight = TEAM_PERFORMANCE_INSIGHTS.get(team_kpi.rating)
    if team_insight is not None:
        insight_type, title, message = team_insight
        insights.append(
            Insight(
                type=insight_type,
                title=title,
                message=message,
                data=[{"teamKPI": str(team_kpi.rating)}],
            )
        )

    high_performers = sum(
        1 for m in individual_kpis if m.rating in (KPIRating.EXCELLENT, KPIRating.GOOD)
    )
    consistency_rate = high_performers / len(individual_kpis) * 100 if individual_kpis else 0.0
    if consistency_rate >= HIGH_CONSISTENCY_THRESHOLD:
        rounded = round_half_up(consistency_rate)
        insights.append(
            Insight(
                type=InsightType.INFO,
                title="High Consistency",
                message=f"{rounded}% of team members are performing well or excellently.",
                data=[{"consistencyRate": rounded}],
            )
        )

    _log_insights(event_logger, "performance", insights)
    return insights


def generate_monitoring_insights(
    current_cycle_status: Sequence[CycleStatusEntry],
    completed_cycles_history: Sequence[Any],
    team_summary: TeamSummary,
    event_logger: EventLogger | None = None,
) -> list[Insight]:
    """Generate insights for the cycle monitoring view.

    Args:
        current_cycle_status: Current cycle state per team member.
        completed_cycles_history: Completed cycles per member. Accepted for
            dashboard parity; no insight reads it yet.
        team_summary: Team rollup; only average_cycles_per_member is used.
        event_logger: Receives the generation summary.

    Returns:
        List of insights.
    """
    insights: list[Insight] = []

    partitions: dict[CycleStatus, list[CycleStatusEntry]] = {status: [] for status in CycleStatus}
    for entry in current_cycle_status:
        partitions[entry.status].append(entry)

    in_progress = partitions[CycleStatus.IN_PROGRESS]
    if in_progress:
        insights.append(
            Insight(
                type=InsightType.INFO,
                title="Active Cycles",
                message=f"{len(in_progress)} team members currently have active cycles in progress",
                data=[entry.model_dump(mode="json") for entry in in_progress],
            )
        )

    completed = partitions[CycleStatus.COMPLETED]
    if completed:
        insights.append(
            Insight(
                type=InsightType.SUCCESS,
                title="Recent Completions",
                message=f"{len(completed)} team members have completed their cycles",
                data=[entry.model_dump(mode="json") for entry in completed],
            )
        )

    not_started = partitions[CycleStatus.NOT_STARTED]
    if not_started:
        insights.append(
            Insight(
                type=InsightType.WARNING,
                title="Inactive Members",
                message=f"{len(not_started)} team members haven't started any cycles yet",
                data=[entry.model_dump(mode="json") for entry in not_started],
            )
        )

    average_cycles = team_summary.average_cycles_per_member
    if average_cycles > 0:
        insights.append(
            Insight(
                type=InsightType.INFO,
                title="Team Performance",
                message=(
                    f"Team averages {format_number(round_half_up(average_cycles, 2))} "
                    "completed cycles per member"
                ),
                data={"averageCycles": average_cycles},
            )
        )

    _log_insights(event_logger, "monitoring", insights)
    return insights


def _monthly_member_data(members: list[WorkerMonthlyKPI]) -> list[dict[str, Any]]:
    return [
        {
            "name": m.worker_name,
            "completionRate": m.completion_rate,
            "completedCycles": m.completed_cycles,
        }
        for m in members
    ]


def generate_monthly_insights(
    monthly_worker_kpis: Sequence[WorkerMonthlyKPI],
    team_summary: TeamSummary,
    monthly_trends: Sequence[MonthlyTrendPoint],
    event_logger: EventLogger | None = None,
) -> list[Insight]:
    """Generate insights for the monthly summary view.

    Args:
        monthly_worker_kpis: Monthly KPI per team member.
        team_summary: Team rollup for the month.
        monthly_trends: Team completion figures per month, oldest first.
        event_logger: Receives the generation summary.

    Returns:
        List of insights, always ending with the monthly summary.
    """
    insights: list[Insight] = []

    top_performers = [
        m for m in monthly_worker_kpis if m.monthly_kpi.rating == KPIRating.EXCELLENT
    ][:TOP_PERFORMER_LIMIT]
    if top_performers:
        insights.append(
            Insight(
                type=InsightType.SUCCESS,
                title="Top Performers",
                message=f"{len(top_performers)} team members achieved Excellent rating this month",
                data=_monthly_member_data(top_performers),
            )
        )

    needs_improvement = [
        m for m in monthly_worker_kpis if m.monthly_kpi.rating == KPIRating.NEEDS_IMPROVEMENT
    ][:TOP_PERFORMER_LIMIT]
    if needs_improvement:
        insights.append(
            Insight(
                type=InsightType.WARNING,
                title="Needs Improvement",
                message=(
                    f"{len(needs_improvement)} team members need support "
                    "to improve their performance"
                ),
                data=_monthly_member_data(needs_improvement),
            )
        )

    if len(monthly_trends) >= 2:
        previous_month, current_month = monthly_trends[-2], monthly_trends[-1]
        change = current_month.completion_rate - previous_month.completion_rate

        if change > 0:
            insights.append(
                Insight(
                    type=InsightType.INFO,
                    title="Improving Trend",
                    message=(
                        f"Team completion rate improved by {round_half_up(change)}% "
                        "compared to last month"
                    ),
                    data={
                        "currentRate": current_month.completion_rate,
                        "previousRate": previous_month.completion_rate,
                        "improvement": change,
                    },
                )
            )
        elif change < 0:
            insights.append(
                Insight(
                    type=InsightType.WARNING,
                    title="Declining Trend",
                    message=(
                        f"Team completion rate decreased by {round_half_up(abs(change))}% "
                        "compared to last month"
                    ),
                    data={
                        "currentRate": current_month.completion_rate,
                        "previousRate": previous_month.completion_rate,
                        "decline": abs(change),
                    },
                )
            )

    team_rating = str(team_summary.team_kpi.rating) if team_summary.team_kpi else "N/A"
    insights.append(
        Insight(
            type=InsightType.INFO,
            title="Monthly Summary",
            message=(
                f"Team completed {team_summary.total_completed_cycles} cycles with "
                f"{round_half_up(team_summary.average_completion_rate)}% average completion rate"
            ),
            data={
                "totalCycles": team_summary.total_completed_cycles,
                "averageRate": team_summary.average_completion_rate,
                "teamKPI": team_rating,
            },
        )
    )

    _log_insights(event_logger, "monthly", insights)
    return insights
