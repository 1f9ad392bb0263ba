"""Logging configuration with secret redaction and business event tracing."""

import json
import logging
import re
from collections.abc import Callable
from typing import Any, ClassVar

EventLogger = Callable[[str, dict[str, Any]], None]

BUSINESS_LOGGER_NAME = "rehab_kpi.business"

logger = logging.getLogger(__name__)


class SecretRedactingFilter(logging.Filter):
    """Filter that redacts secrets from log messages."""

    SECRET_PATTERNS: ClassVar[list[tuple[re.Pattern[str], str]]] = [
        # Supabase secret keys
        (re.compile(r"sb_secret_[a-zA-Z0-9_\-]{10,}"), "[REDACTED_SUPABASE_KEY]"),
        # JWTs (legacy anon/service_role keys, session tokens)
        (
            re.compile(r"eyJ[a-zA-Z0-9_\-]{5,}\.[a-zA-Z0-9_\-]{5,}\.[a-zA-Z0-9_\-]+"),
            "[REDACTED_JWT]",
        ),
        # Generic Bearer tokens
        (re.compile(r"Bearer\s+[a-zA-Z0-9_\-\.]+"), "Bearer [REDACTED]"),
        # Authorization headers
        (re.compile(r"(Authorization:\s*)[^\s,\]]+", re.IGNORECASE), r"\1[REDACTED]"),
        # apikey header / query parameter
        (re.compile(r"(api[_-]?key[=:]\s*)[^\s,\]]+", re.IGNORECASE), r"\1[REDACTED]"),
        # Generic tokens in key=value format
        (re.compile(r"(token[=:]\s*)[^\s,\]]+", re.IGNORECASE), r"\1[REDACTED]"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and redact secrets from log record."""
        record.msg = self._redact(str(record.msg))
        if record.args:
            record.args = tuple(
                self._redact(str(arg)) if isinstance(arg, str) else arg for arg in record.args
            )
        return True

    def _redact(self, text: str) -> str:
        """Redact secrets from text."""
        for pattern, replacement in self.SECRET_PATTERNS:
            text = pattern.sub(replacement, text)
        return text


def setup_logging(
    verbose: bool = False,
    json_format: bool = False,
) -> None:
    """Configure logging for the application.

    Args:
        verbose: Enable debug level logging.
        json_format: Use JSON format for logs (useful for structured logging).
    """
    level = logging.DEBUG if verbose else logging.INFO

    if json_format:
        format_str = '{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'
    else:
        format_str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    redaction_filter = SecretRedactingFilter()

    for handler in root_logger.handlers:
        handler.addFilter(redaction_filter)

    # Calculation traces are chatty; only show them in verbose mode
    logging.getLogger(BUSINESS_LOGGER_NAME).setLevel(logging.DEBUG if verbose else logging.WARNING)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def log_business_event(event: str, payload: dict[str, Any]) -> None:
    """Write a structured business event to the business logger.

    The payload is serialized as sorted JSON so traces are stable across runs.
    Values that are not JSON-native (dates, enums, models) fall back to str().

    Args:
        event: Event name, e.g. "KPI Calculation".
        payload: Event payload.
    """
    business_logger = logging.getLogger(BUSINESS_LOGGER_NAME)
    if not business_logger.isEnabledFor(logging.INFO):
        return
    business_logger.info(
        "Business event: %s %s",
        event,
        json.dumps(payload, default=str, sort_keys=True),
    )


def null_event_logger(event: str, payload: dict[str, Any]) -> None:
    """Event logger that discards everything."""


def emit_event(event_logger: EventLogger | None, event: str, payload: dict[str, Any]) -> None:
    """Send an event to an event logger without letting it fail the caller.

    Args:
        event_logger: Logger to use. None means the business logger.
        event: Event name.
        payload: Event payload.
    """
    sink = event_logger if event_logger is not None else log_business_event
    try:
        sink(event, payload)
    except Exception as e:
        logger.debug("Event logger failed for %s: %s", event, e)
