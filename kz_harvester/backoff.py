"""
KZ Harvester — Backoff Policy

Maps a fetch outcome to the scanner's next move. A miss most likely means the
record does not exist *yet*, so the scanner waits and asks again for the same
ID. Failures are logged upstream and skipped so a broken ID cannot stall a
scan forever.
"""

from __future__ import annotations

from kz_harvester.config import settings
from kz_harvester.models import (
    Advance,
    Decision,
    FetchOutcome,
    NotFound,
    StallAndRetry,
)


class BackoffPolicy:
    """
    Same rules for both scan directions.

    `max_not_found_retries` bounds how many times one ID is re-asked before it
    is treated as a permanent gap and skipped. None keeps retrying forever.
    """

    def __init__(
        self,
        stall_seconds: float | None = None,
        max_not_found_retries: int | None = None,
    ):
        self.stall_seconds = (
            stall_seconds if stall_seconds is not None else settings.NOT_FOUND_STALL_SECONDS
        )
        self.max_not_found_retries = (
            max_not_found_retries
            if max_not_found_retries is not None
            else settings.NOT_FOUND_MAX_RETRIES
        )

    def decide(self, outcome: FetchOutcome, attempts: int = 0) -> Decision:
        """
        Args:
            outcome: Result of the latest fetch.
            attempts: NotFound results already seen for this same ID.
        """
        if isinstance(outcome, NotFound):
            if self.max_not_found_retries is not None and attempts >= self.max_not_found_retries:
                return Advance()
            return StallAndRetry(duration=self.stall_seconds)
        return Advance()
