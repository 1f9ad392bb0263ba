"""Supabase assessment source.

Async client for the Supabase PostgREST endpoint serving work readiness
assessments, with offset pagination and retry logic.
"""

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

import httpx

from rehab_kpi import __version__
from rehab_kpi.config import SupabaseConfig
from rehab_kpi.models import AssessmentEvent
from rehab_kpi.source.auth import load_service_key

logger = logging.getLogger(__name__)


class SupabaseError(Exception):
    """Raised when the Supabase API cannot serve a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class SupabaseAssessmentSource:
    """Fetch assessments from a Supabase table over PostgREST.

    Features:
    - apikey + bearer authentication with the service key
    - worker and submission-time filters pushed down to the server
    - Offset pagination
    - Retry with exponential backoff on 5xx, 429, timeouts and network errors
    """

    DEFAULT_TIMEOUT = 30.0
    DEFAULT_MAX_RETRIES = 3
    DEFAULT_PAGE_SIZE = 1000
    INITIAL_BACKOFF = 1.0
    BACKOFF_MULTIPLIER = 2.0

    def __init__(
        self,
        url: str,
        service_key: str,
        table: str = "work_readiness",
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        page_size: int = DEFAULT_PAGE_SIZE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Supabase source.

        Args:
            url: Supabase project URL, e.g. https://abc.supabase.co.
            service_key: Service key used for apikey and bearer auth.
            table: Table holding the assessments.
            timeout: Request timeout in seconds.
            max_retries: Maximum number of retries for failed requests.
            page_size: Rows requested per page.
            transport: Optional httpx transport (used by tests).
        """
        self._base_url = f"{url.rstrip('/')}/rest/v1"
        self._service_key = service_key
        self._table = table
        self._timeout = timeout
        self._max_retries = max_retries
        self._page_size = page_size
        self._transport = transport

        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(
        cls,
        config: SupabaseConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "SupabaseAssessmentSource":
        """Create a source from configuration.

        Raises:
            AuthenticationError: If the service key is not set.
        """
        return cls(
            url=config.url,
            service_key=load_service_key(config.key_env),
            table=config.table,
            timeout=config.timeout,
            max_retries=config.max_retries,
            page_size=config.page_size,
            transport=transport,
        )

    def _get_headers(self) -> dict[str, str]:
        return {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
            "Accept": "application/json",
            "User-Agent": f"rehab-kpi/{__version__}",
        }

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure async client is initialized.

        Returns:
            Active httpx.AsyncClient instance.
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=self._get_headers(),
                transport=self._transport,
            )
        return self._client

    async def _retry_request(
        self,
        path: str,
        params: list[tuple[str, Any]],
        retry_count: int,
    ) -> httpx.Response:
        """Retry a GET request with exponential backoff.

        Raises:
            SupabaseError: If max retries exceeded.
        """
        if retry_count >= self._max_retries:
            msg = f"Max retries ({self._max_retries}) exceeded for GET {path}"
            raise SupabaseError(msg)

        wait_seconds = self.INITIAL_BACKOFF * (self.BACKOFF_MULTIPLIER**retry_count)
        logger.debug(
            "Retry %d/%d for GET %s after %.1fs",
            retry_count + 1,
            self._max_retries,
            path,
            wait_seconds,
        )
        await asyncio.sleep(wait_seconds)

        return await self._do_request(path, params, retry_count + 1)

    async def _do_request(
        self,
        path: str,
        params: list[tuple[str, Any]],
        retry_count: int = 0,
    ) -> httpx.Response:
        """Execute a GET request with retry logic.

        Args:
            path: Path relative to /rest/v1.
            params: Query parameters; repeated keys allowed.
            retry_count: Current retry attempt number.

        Returns:
            Successful HTTP response.

        Raises:
            SupabaseError: On client errors, or when retries are exhausted.
        """
        client = await self._ensure_client()

        logger.debug("GET %s (attempt %d)", path, retry_count + 1)

        try:
            response = await client.get(path, params=params)
        except httpx.TimeoutException as e:
            logger.warning("Timeout for GET %s", path)
            if retry_count < self._max_retries:
                return await self._retry_request(path, params, retry_count)
            msg = f"Request timeout: {e}"
            raise SupabaseError(msg) from e
        except httpx.NetworkError as e:
            logger.warning("Network error for GET %s: %s", path, e)
            if retry_count < self._max_retries:
                return await self._retry_request(path, params, retry_count)
            msg = f"Network error: {e}"
            raise SupabaseError(msg) from e

        if response.status_code == 429 or 500 <= response.status_code < 600:
            logger.warning("Server error %d for GET %s", response.status_code, path)
            return await self._retry_request(path, params, retry_count)

        if response.status_code >= 400:
            logger.error(
                "Client error %d for GET %s: %s", response.status_code, path, response.text
            )
            msg = f"Supabase request failed with status {response.status_code}"
            raise SupabaseError(msg, status_code=response.status_code)

        return response

    def _build_params(
        self,
        worker_ids: Sequence[str],
        start: datetime,
        end: datetime,
        offset: int,
    ) -> list[tuple[str, Any]]:
        return [
            ("select", "*"),
            ("worker_id", f"in.({','.join(worker_ids)})"),
            ("submitted_at", f"gte.{start.isoformat()}"),
            ("submitted_at", f"lte.{end.isoformat()}"),
            ("order", "submitted_at.asc"),
            ("limit", self._page_size),
            ("offset", offset),
        ]

    async def fetch_assessments(
        self,
        worker_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> list[AssessmentEvent]:
        """Fetch assessments submitted between start and end, inclusive.

        Args:
            worker_ids: Workers to fetch assessments for.
            start: Earliest submission instant.
            end: Latest submission instant.

        Returns:
            Assessments ordered by submission time.

        Raises:
            SupabaseError: If the API request fails.
        """
        if not worker_ids:
            return []

        path = f"/{self._table}"
        events: list[AssessmentEvent] = []
        offset = 0

        while True:
            response = await self._do_request(
                path, self._build_params(worker_ids, start, end, offset)
            )
            rows = response.json()
            if not isinstance(rows, list):
                msg = f"Unexpected response body from GET {path}"
                raise SupabaseError(msg, status_code=response.status_code)

            for row in rows:
                try:
                    events.append(AssessmentEvent.from_row(row))
                except ValueError as e:
                    logger.warning("Skipping malformed assessment row %s: %s", row.get("id"), e)

            if len(rows) < self._page_size:
                break
            offset += self._page_size

        logger.info(
            "Fetched %d assessments for %d workers (%s to %s)",
            len(events),
            len(worker_ids),
            start.date(),
            end.date(),
        )
        return events

    async def close(self) -> None:
        """Close the HTTP client and cleanup resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SupabaseAssessmentSource":
        """Async context manager entry."""
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
