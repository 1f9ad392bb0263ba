"""CLI entry point for rehab-kpi.

Commands:
- score: Score a single KPI from raw counters
- streaks: Current and longest working-day streaks from an events file
- insights: Dashboard insights from a JSON payload
- trend: Weekly completion-rate trend for one worker
"""

import asyncio
import json
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Any

import click
from pydantic import BaseModel, Field, ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from rehab_kpi import __version__
from rehab_kpi.config import Config, load_config
from rehab_kpi.logging import setup_logging
from rehab_kpi.metrics.scoring import (
    score_by_assignments,
    score_by_completion_rate,
    score_by_consecutive_days,
    score_weekly_team,
)
from rehab_kpi.metrics.streaks import calculate_streaks
from rehab_kpi.models import (
    AssessmentEvent,
    CycleStatusEntry,
    Insight,
    KPIResult,
    MonthlyTrendPoint,
    TeamSummary,
    TrendPoint,
    WorkerMonthlyKPI,
    WorkerWeeklyKPI,
)
from rehab_kpi.report.insights import (
    generate_monitoring_insights,
    generate_monthly_insights,
    generate_performance_insights,
)
from rehab_kpi.report.trends import TrendAggregator
from rehab_kpi.source.auth import AuthenticationError
from rehab_kpi.source.base import AssessmentSource, StaticAssessmentSource, load_events
from rehab_kpi.source.supabase import SupabaseAssessmentSource

console = Console()

INSIGHT_STYLES = {
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "info": "cyan",
}


class PerformancePayload(BaseModel):
    """Input for the weekly performance insights."""

    individual_kpis: list[WorkerWeeklyKPI] = Field(default_factory=list)
    team_kpi: KPIResult


class MonitoringPayload(BaseModel):
    """Input for the cycle monitoring insights."""

    current_cycle_status: list[CycleStatusEntry] = Field(default_factory=list)
    completed_cycles_history: list[Any] = Field(default_factory=list)
    team_summary: TeamSummary = Field(default_factory=TeamSummary)


class MonthlyPayload(BaseModel):
    """Input for the monthly summary insights."""

    monthly_worker_kpis: list[WorkerMonthlyKPI] = Field(default_factory=list)
    team_summary: TeamSummary = Field(default_factory=TeamSummary)
    monthly_trends: list[MonthlyTrendPoint] = Field(default_factory=list)


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _print_kpi(result: KPIResult, as_json: bool) -> None:
    if as_json:
        _echo_json(result.model_dump(mode="json"))
        return

    console.print(f"[bold {result.color}]{result.rating}[/] (score {result.score})")
    if result.description:
        console.print(result.description)


def _load_optional_config(config: Path | None) -> Config:
    return load_config(config) if config is not None else Config()


@click.group()
@click.version_option(version=__version__, prog_name="rehab-kpi")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Work readiness KPI scoring, streaks, insights and trends.

    \b
    Quick Start:
        rehab-kpi score days 5
        rehab-kpi streaks events.json --today 2026-10-14
        rehab-kpi trend --config config.yaml --worker-id 42
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose=verbose)


# ============================================================================
# SCORING
# ============================================================================


@main.group()
def score() -> None:
    """Score a single KPI from raw counters."""


@score.command(name="days")
@click.argument("consecutive_days", type=click.IntRange(min=0))
@click.option("--json", "as_json", is_flag=True, default=False, help="Output JSON")
def score_days(consecutive_days: int, as_json: bool) -> None:
    """Score consecutive days completed in the current 7-day cycle."""
    _print_kpi(score_by_consecutive_days(consecutive_days), as_json)


@score.command(name="assignments")
@click.option("--completed", type=click.IntRange(min=0), required=True, help="Completed")
@click.option("--total", type=click.IntRange(min=0), required=True, help="Assignments given")
@click.option("--on-time", type=click.IntRange(min=0), default=0, help="Completed by due time")
@click.option("--quality", type=float, default=0.0, help="Average quality score (0-100)")
@click.option("--pending", type=click.IntRange(min=0), default=0, help="Pending, not yet due")
@click.option("--overdue", type=click.IntRange(min=0), default=0, help="Overdue assignments")
@click.option("--json", "as_json", is_flag=True, default=False, help="Output JSON")
def score_assignments(
    completed: int,
    total: int,
    on_time: int,
    quality: float,
    pending: int,
    overdue: int,
    as_json: bool,
) -> None:
    """Score assignment completion, punctuality and quality."""
    result = score_by_assignments(
        completed,
        total,
        on_time=on_time,
        quality_score=quality,
        pending=pending,
        overdue=overdue,
    )
    _print_kpi(result, as_json)


@score.command(name="completion-rate")
@click.argument("rate", type=float)
@click.option("--current-day", type=click.IntRange(min=0), default=None, help="Day in the cycle")
@click.option(
    "--total-assessments",
    type=click.IntRange(min=0),
    default=None,
    help="Assessments submitted so far",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Output JSON")
def score_completion_rate(
    rate: float,
    current_day: int | None,
    total_assessments: int | None,
    as_json: bool,
) -> None:
    """Score a cycle completion percentage."""
    _print_kpi(score_by_completion_rate(rate, current_day, total_assessments), as_json)


@score.command(name="team")
@click.argument("rate", type=float)
@click.option("--submissions", type=click.IntRange(min=0), required=True, help="Submitted")
@click.option("--members", type=click.IntRange(min=0), required=True, help="Team size")
@click.option("--json", "as_json", is_flag=True, default=False, help="Output JSON")
def score_team(rate: float, submissions: int, members: int, as_json: bool) -> None:
    """Score a team's weekly submission rate."""
    _print_kpi(score_weekly_team(rate, submissions, members), as_json)


# ============================================================================
# STREAKS
# ============================================================================


@main.command()
@click.argument("events_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--today",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Reference date (YYYY-MM-DD). Defaults to today.",
)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to config.yaml file",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Output JSON")
def streaks(events_file: Path, today: datetime | None, config: Path | None, as_json: bool) -> None:
    """Current and longest working-day streaks per worker in EVENTS_FILE."""
    try:
        cfg = _load_optional_config(config)
        events = load_events(events_file)
    except (ValueError, ValidationError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise click.Abort() from e

    by_worker: dict[str, list[AssessmentEvent]] = defaultdict(list)
    for event in events:
        by_worker[event.worker_id].append(event)

    results = {
        worker_id: calculate_streaks(
            worker_events,
            today=today.date() if today else None,
            tz=cfg.tzinfo,
            collapse_same_day=cfg.streaks.collapse_same_day,
        )
        for worker_id, worker_events in sorted(by_worker.items())
    }

    if as_json:
        _echo_json({worker_id: result.model_dump() for worker_id, result in results.items()})
        return

    if not results:
        console.print("[yellow]No assessment events found[/yellow]")
        return

    table = Table(title="Working-day streaks")
    table.add_column("Worker")
    table.add_column("Current", justify="right")
    table.add_column("Longest", justify="right")
    for worker_id, result in results.items():
        table.add_row(worker_id, str(result.current), str(result.longest))
    console.print(table)


# ============================================================================
# INSIGHTS
# ============================================================================


def _build_insights(kind: str, raw: Any) -> list[Insight]:
    if kind == "performance":
        performance = PerformancePayload.model_validate(raw)
        return generate_performance_insights(performance.individual_kpis, performance.team_kpi)
    if kind == "monitoring":
        monitoring = MonitoringPayload.model_validate(raw)
        return generate_monitoring_insights(
            monitoring.current_cycle_status,
            monitoring.completed_cycles_history,
            monitoring.team_summary,
        )
    monthly = MonthlyPayload.model_validate(raw)
    return generate_monthly_insights(
        monthly.monthly_worker_kpis, monthly.team_summary, monthly.monthly_trends
    )


@main.command()
@click.argument("kind", type=click.Choice(["performance", "monitoring", "monthly"]))
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, default=False, help="Output JSON")
def insights(kind: str, payload_file: Path, as_json: bool) -> None:
    """Generate dashboard insights of KIND from PAYLOAD_FILE."""
    try:
        with payload_file.open() as f:
            raw = json.load(f)
        cards = _build_insights(kind, raw)
    except (ValueError, ValidationError) as e:
        console.print(f"[bold red]Error:[/bold red] Invalid {kind} payload: {escape(str(e))}")
        raise click.Abort() from e

    if as_json:
        _echo_json([card.model_dump(mode="json") for card in cards])
        return

    if not cards:
        console.print("[dim]No insights[/dim]")
        return

    for card in cards:
        style = INSIGHT_STYLES.get(str(card.type), "white")
        console.print(f"[bold {style}]{escape(card.title)}[/]")
        console.print(f"  {escape(card.message)}")


# ============================================================================
# TRENDS
# ============================================================================


def _trend_source(cfg: Config, events_file: Path | None) -> AssessmentSource:
    if events_file is not None:
        return StaticAssessmentSource.from_json(events_file)
    if cfg.supabase is None:
        msg = "No 'supabase' section in config; pass --events to use a local file"
        raise click.UsageError(msg)
    return SupabaseAssessmentSource.from_config(cfg.supabase)


async def _run_trend(
    source: AssessmentSource,
    cfg: Config,
    worker_id: str,
    weeks: int,
    reference: datetime | None,
) -> list[TrendPoint]:
    aggregator = TrendAggregator(source, tz=cfg.tzinfo)
    try:
        return await aggregator.performance_trend(
            worker_id,
            weeks_back=weeks,
            reference=reference.date() if reference else None,
        )
    finally:
        if isinstance(source, SupabaseAssessmentSource):
            await source.close()


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to config.yaml file",
)
@click.option("--worker-id", required=True, help="Worker to build the trend for")
@click.option("--weeks", type=click.IntRange(min=1, max=52), default=None, help="Weeks back")
@click.option(
    "--events",
    "events_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read assessments from a JSON file instead of Supabase",
)
@click.option(
    "--reference",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Any date in the most recent week (YYYY-MM-DD). Defaults to today.",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Output JSON")
def trend(
    config: Path,
    worker_id: str,
    weeks: int | None,
    events_file: Path | None,
    reference: datetime | None,
    as_json: bool,
) -> None:
    """Weekly completion-rate trend for one worker."""
    try:
        cfg = load_config(config)
        source = _trend_source(cfg, events_file)
    except (ValueError, ValidationError, AuthenticationError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise click.Abort() from e

    weeks_back = weeks if weeks is not None else cfg.trends.weeks_back
    points = asyncio.run(_run_trend(source, cfg, worker_id, weeks_back, reference))

    if as_json:
        _echo_json([point.model_dump(mode="json") for point in points])
        return

    if not points:
        console.print("[yellow]Trend unavailable[/yellow]")
        return

    table = Table(title=f"Performance trend for worker {worker_id}")
    table.add_column("Week")
    table.add_column("Days", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Rating")
    for point in points:
        table.add_row(
            point.week_label,
            f"{point.completed_days}/{point.total_days}",
            f"{point.completion_rate}%",
            str(point.kpi_rating),
        )
    console.print(table)


if __name__ == "__main__":
    main()
