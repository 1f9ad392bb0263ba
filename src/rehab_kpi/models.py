"""Value records shared by the scoring, streak, insight and trend modules.

All models are frozen: they are built fresh for every report and never
mutated afterwards.
"""

from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ReadinessLevel(StrEnum):
    """Worker self-reported readiness for work."""

    FIT = "fit"
    MINOR = "minor"
    NOT_FIT = "not_fit"


class Mood(StrEnum):
    """Worker self-reported mood."""

    EXCELLENT = "excellent"
    GOOD = "good"
    OKAY = "okay"
    POOR = "poor"
    TERRIBLE = "terrible"


class KPIRating(StrEnum):
    """Rating buckets produced by the score calculator.

    Values are the display strings the dashboards branch on.
    """

    EXCELLENT = "Excellent"
    GOOD = "Good"
    AVERAGE = "Average"
    BELOW_AVERAGE = "Below Average"
    NEEDS_IMPROVEMENT = "Needs Improvement"
    POOR = "Poor"
    NO_KPI_POINTS = "No KPI Points"
    NO_ASSIGNMENTS = "No Assignments"
    NOT_STARTED = "Not Started"
    ON_TRACK = "On Track"
    ERROR = "Error"


class InsightType(StrEnum):
    """Severity of an insight card."""

    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"


class CycleStatus(StrEnum):
    """State of a worker's current 7-day work readiness cycle."""

    IN_PROGRESS = "Cycle In Progress"
    COMPLETED = "Cycle Completed"
    NOT_STARTED = "No Cycle Started"


class AssessmentEvent(BaseModel):
    """One worker's daily work readiness self-report."""

    model_config = ConfigDict(frozen=True)

    worker_id: str
    submitted_at: datetime
    readiness_level: ReadinessLevel | None = None
    fatigue_level: int | None = Field(default=None, ge=1, le=5)
    pain_discomfort: bool = False
    mood: Mood | None = None
    cycle_start: date | None = None
    cycle_day: int | None = Field(default=None, ge=0)
    streak_days: int | None = Field(default=None, ge=0)
    cycle_completed: bool = False

    @field_validator("worker_id", mode="before")
    @classmethod
    def coerce_worker_id(cls, v: Any) -> Any:
        """Accept integer primary keys as worker IDs."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("submitted_at")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "AssessmentEvent":
        """Build an event from a work_readiness row.

        Unknown columns are ignored; missing optional columns take defaults.

        Args:
            row: Row mapping as returned by the datastore.

        Returns:
            Validated AssessmentEvent.
        """
        fields = {key: row[key] for key in cls.model_fields if key in row and row[key] is not None}
        return cls.model_validate(fields)


class AssignmentCounters(BaseModel):
    """Aggregated assignment counts for one worker over one evaluation window."""

    model_config = ConfigDict(frozen=True)

    completed: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    on_time: int = Field(default=0, ge=0)
    pending: int = Field(default=0, ge=0)
    overdue: int = Field(default=0, ge=0)
    quality_score: float = Field(default=0.0, ge=0, le=100)

    @model_validator(mode="after")
    def validate_counts(self) -> "AssignmentCounters":
        """Validate that completed and on-time counts fit within the total."""
        if self.completed > self.total:
            msg = f"completed ({self.completed}) cannot exceed total ({self.total})"
            raise ValueError(msg)
        if self.on_time > self.total:
            msg = f"on_time ({self.on_time}) cannot exceed total ({self.total})"
            raise ValueError(msg)
        return self


class KPIResult(BaseModel):
    """Bucketed rating plus numeric score.

    Calculator-specific inputs (consecutive_days, completion_rate,
    weighted_score, ...) are echoed back as extra fields.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    rating: KPIRating
    color: str = "#6b7280"
    description: str = ""
    score: float = 0


class StreakResult(BaseModel):
    """Current and longest working-day submission streaks."""

    model_config = ConfigDict(frozen=True)

    current: int = Field(default=0, ge=0)
    longest: int = Field(default=0, ge=0)


class Insight(BaseModel):
    """One dashboard insight card."""

    model_config = ConfigDict(frozen=True)

    type: InsightType
    title: str
    message: str
    data: Any = None


class TeamSummary(BaseModel):
    """Team-level rollup fed into the insight generators."""

    model_config = ConfigDict(frozen=True)

    total_completed_cycles: int = 0
    average_completion_rate: float = 0.0
    team_kpi: KPIResult | None = None
    average_cycles_per_member: float = 0.0
    total_members: int = 0
    active_members: int = 0


class WorkerWeeklyKPI(BaseModel):
    """A worker's KPI for the weekly performance view."""

    model_config = ConfigDict(frozen=True)

    worker_id: str | None = None
    worker_name: str = ""
    kpi: KPIResult | None = None

    @property
    def rating(self) -> KPIRating | None:
        return self.kpi.rating if self.kpi is not None else None


class CycleStatusEntry(BaseModel):
    """A worker's current cycle state for the monitoring view."""

    model_config = ConfigDict(frozen=True)

    worker_id: str
    worker_name: str = ""
    status: CycleStatus
    current_day: int = 0
    streak_days: int = 0
    cycle_completed: bool = False
    cycle_start: date | None = None
    cycle_end: date | None = None
    last_submission: datetime | None = None


class WorkerMonthlyKPI(BaseModel):
    """A worker's KPI for the monthly summary view."""

    model_config = ConfigDict(frozen=True)

    worker_name: str = ""
    monthly_kpi: KPIResult
    completion_rate: float = 0.0
    completed_cycles: int = 0


class MonthlyTrendPoint(BaseModel):
    """Team completion figures for one month."""

    model_config = ConfigDict(frozen=True)

    label: str = ""
    completion_rate: float = 0.0
    completed_cycles: int = 0


class WeekRange(BaseModel):
    """Boundaries of one Sunday-to-Saturday reporting week."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    start_date: date
    end_date: date
    label: str


class MonthRange(BaseModel):
    """Boundaries of one calendar month."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    start_date: date
    end_date: date
    label: str


class TrendPoint(BaseModel):
    """One week in a worker's performance trend."""

    model_config = ConfigDict(frozen=True)

    week_label: str
    completion_rate: int
    kpi_rating: KPIRating
    completed_days: int
    total_days: int


class WeekSnapshot(BaseModel):
    """Completion figures for one side of a week-over-week comparison."""

    model_config = ConfigDict(frozen=True)

    week_label: str
    completion_rate: int
    kpi_rating: KPIRating


class WeeklyComparison(BaseModel):
    """Current week versus previous week."""

    model_config = ConfigDict(frozen=True)

    previous_week: WeekSnapshot
    current_week: WeekSnapshot
    improvement: int
    improvement_trend: str = Field(pattern=r"^(improving|declining|stable)$")
