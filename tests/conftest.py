"""Test fixtures for rehab-kpi.

Provides fixtures for:
- Building assessment events on given local dates
- Recording business events emitted by the calculators
- Sample KPI results and temporary config files
"""

from collections.abc import Callable
from datetime import UTC, date, datetime, time
from pathlib import Path
from typing import Any

import pytest

from rehab_kpi.models import AssessmentEvent, KPIRating, KPIResult


class RecordingEventLogger:
    """Event logger that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, event: str, payload: dict[str, Any]) -> None:
        self.events.append((event, payload))

    def named(self, event: str) -> list[dict[str, Any]]:
        return [payload for name, payload in self.events if name == event]


@pytest.fixture
def event_logger() -> RecordingEventLogger:
    """Create an event logger that records calls."""
    return RecordingEventLogger()


@pytest.fixture
def make_event() -> Callable[..., AssessmentEvent]:
    """Factory for assessment events submitted at noon UTC on a date.

    Returns:
        Callable taking (day, worker_id="w1", hour=12, **fields).
    """

    def _make(
        day: date,
        worker_id: str = "w1",
        hour: int = 12,
        **fields: Any,
    ) -> AssessmentEvent:
        return AssessmentEvent(
            worker_id=worker_id,
            submitted_at=datetime.combine(day, time(hour=hour), tzinfo=UTC),
            **fields,
        )

    return _make


@pytest.fixture
def kpi_factory() -> Callable[[KPIRating], KPIResult]:
    """Factory for minimal KPI results with a given rating."""

    def _make(rating: KPIRating) -> KPIResult:
        return KPIResult(rating=rating)

    return _make


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Create a temporary config file."""
    path = tmp_path / "config.yaml"
    path.write_text(
        """timezone: Asia/Manila
supabase:
  url: https://example.supabase.co
  key_env: TEST_SUPABASE_KEY
  table: work_readiness
  max_retries: 2
  page_size: 2
streaks:
  collapse_same_day: true
trends:
  weeks_back: 3
"""
    )
    return path
