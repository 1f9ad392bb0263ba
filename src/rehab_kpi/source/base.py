"""Assessment source interface and the in-memory implementation."""

import json
import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from rehab_kpi.models import AssessmentEvent

logger = logging.getLogger(__name__)


@runtime_checkable
class AssessmentSource(Protocol):
    """Anything that can fetch assessments for workers over a time range."""

    async def fetch_assessments(
        self,
        worker_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> list[AssessmentEvent]:
        """Fetch assessments submitted between start and end, inclusive."""
        ...


class StaticAssessmentSource:
    """Assessment source backed by an in-memory list of events."""

    def __init__(self, events: Iterable[AssessmentEvent]) -> None:
        self._events = list(events)

    @classmethod
    def from_json(cls, path: Path) -> "StaticAssessmentSource":
        """Load events from a JSON file.

        The file holds either a list of assessment rows or an object with an
        ``events`` list.

        Args:
            path: Path to the JSON file.

        Returns:
            Source serving the loaded events.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the JSON is not a list of rows.
        """
        return cls(load_events(path))

    @property
    def events(self) -> list[AssessmentEvent]:
        return list(self._events)

    async def fetch_assessments(
        self,
        worker_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> list[AssessmentEvent]:
        wanted = set(worker_ids)
        return [
            event
            for event in self._events
            if event.worker_id in wanted and start <= event.submitted_at <= end
        ]


def load_events(path: Path) -> list[AssessmentEvent]:
    """Read assessment events from a JSON file.

    Args:
        path: Path to a JSON list of rows, or an object with an ``events`` list.

    Returns:
        Parsed events.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the JSON is not a list of rows.
    """
    if not path.exists():
        msg = f"Events file not found: {path}"
        raise FileNotFoundError(msg)

    with path.open() as f:
        raw: Any = json.load(f)

    rows = raw.get("events") if isinstance(raw, dict) else raw
    if not isinstance(rows, list):
        msg = f"Expected a list of assessment rows in {path}"
        raise ValueError(msg)

    events = [AssessmentEvent.from_row(row) for row in rows]
    logger.debug("Loaded %d assessment events from %s", len(events), path)
    return events
