"""
KZ Harvester — GlobalAPI Record Fetcher

One GET per record ID against `records/{id}`. The fetcher never retries;
what to do with a miss or a failure is the backoff policy's call.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from kz_harvester.config import settings
from kz_harvester.errors import DecodeError, NotFoundError, TransportError
from kz_harvester.models import FetchOutcome, Found, NotFound, Record, TransportFailure

logger = structlog.get_logger(__name__)


class RecordFetcher:
    """
    Async client for single-record lookups.

    Usage:
        async with RecordFetcher() as fetcher:
            outcome = await fetcher.fetch(12345)
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        path_template: str | None = None,
    ):
        self._base_url = base_url or settings.GLOBAL_API_BASE_URL
        self._timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
        self._path_template = path_template or settings.RECORD_PATH_TEMPLATE
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> RecordFetcher:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "User-Agent": settings.USER_AGENT,
                "Accept": "application/json",
            },
            timeout=self._timeout,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_record(self, record_id: int) -> Record:
        """
        Fetch and decode a single record.

        Raises:
            NotFoundError: 404, or a body that carries no record.
            TransportError: connection failure, timeout, other bad status.
            DecodeError: body is not JSON or not record-shaped.
        """
        if record_id < 0:
            raise ValueError(f"record id must be non-negative, got {record_id}")
        assert self._client is not None, "Client not initialized. Use 'async with'."

        path = self._path_template.format(record_id=record_id)
        try:
            response = await self._client.get(path)
        except httpx.RequestError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"record {record_id} not found")
        if response.is_error:
            raise TransportError(f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise DecodeError(f"body is not JSON: {e}") from e

        # GlobalAPI answers unknown IDs with 200 and an empty body shape
        if not data:
            raise NotFoundError(f"record {record_id} not found")
        if not isinstance(data, dict):
            raise DecodeError(f"unexpected body type {type(data).__name__}")
        if all(data.get(field) is None for field in Record.model_fields):
            raise NotFoundError(f"record {record_id} carries no record fields")

        try:
            return Record.model_validate(data)
        except ValidationError as e:
            raise DecodeError(str(e)) from e

    async def fetch(self, record_id: int) -> FetchOutcome:
        """Fetch a record and fold every failure into a FetchOutcome."""
        try:
            record = await self.fetch_record(record_id)
        except NotFoundError:
            logger.debug("fetcher_record_not_found", record_id=record_id)
            return NotFound(record_id=record_id)
        except (TransportError, DecodeError) as e:
            logger.warning(
                "fetcher_request_failed",
                record_id=record_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return TransportFailure(record_id=record_id, detail=f"{type(e).__name__}: {e}")

        return Found(record_id=record_id, record=record)
