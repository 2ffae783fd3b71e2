"""
KZ Harvester — Scanner

Walks one direction of the ID space: fetch, decide, persist, pace, step.

States:
- RUNNING: fetching the current ID.
- STALLED: the ID was not found; sleeping before asking for the same ID again.

Both sleeps wait on a shared stop event, so a shutdown request interrupts a
five-minute stall immediately.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

import structlog

from kz_harvester.backoff import BackoffPolicy
from kz_harvester.config import settings
from kz_harvester.models import (
    FetchOutcome,
    Found,
    NotFound,
    ScanDirection,
    ScannerState,
    ScanStats,
    StallAndRetry,
    TransportFailure,
)
from kz_harvester.sink import Sink

logger = structlog.get_logger(__name__)


class Fetcher(Protocol):
    async def fetch(self, record_id: int) -> FetchOutcome: ...


class Scanner:
    """
    Drives a ScanDirection through Fetcher -> BackoffPolicy -> Sink.

    Usage:
        scanner = Scanner(ScanDirection.backward(5000), fetcher, sink)
        stats = await scanner.run()
    """

    def __init__(
        self,
        direction: ScanDirection,
        fetcher: Fetcher,
        sink: Sink,
        policy: BackoffPolicy | None = None,
        pacing_delay: float | None = None,
        stop_event: asyncio.Event | None = None,
    ):
        self.direction = direction
        self.fetcher = fetcher
        self.sink = sink
        self.policy = policy or BackoffPolicy()
        self.pacing_delay = (
            pacing_delay if pacing_delay is not None else settings.PACING_DELAY_SECONDS
        )
        self._stop_event = stop_event or asyncio.Event()
        self.state = ScannerState.RUNNING
        self.current_id: int | None = direction.first_id()
        self.stats = ScanStats(direction=direction.name)

    def stop(self) -> None:
        """Ask the scanner to end at its next suspension point."""
        self._stop_event.set()

    async def _sleep(self, seconds: float) -> bool:
        """Sleep unless stopped first. Returns True when a stop was requested."""
        if self._stop_event.is_set():
            return True
        if seconds <= 0:
            await asyncio.sleep(0)
            return self._stop_event.is_set()
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def _fetch(self, record_id: int) -> FetchOutcome:
        try:
            return await self.fetcher.fetch(record_id)
        except Exception as e:
            logger.error(
                "scanner_unknown_error",
                direction=self.direction.name,
                record_id=record_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return TransportFailure(record_id=record_id, detail=f"{type(e).__name__}: {e}")

    def _log_stall(self, record_id: int, duration: float, attempts: int) -> None:
        if self.direction.step > 0:
            logger.info(
                "scanner_frontier_reached",
                direction=self.direction.name,
                record_id=record_id,
                sleep_seconds=duration,
                attempts=attempts,
            )
        else:
            logger.warning(
                "scanner_gap_found",
                direction=self.direction.name,
                record_id=record_id,
                sleep_seconds=duration,
                attempts=attempts,
            )

    async def run(self) -> ScanStats:
        """
        Run until the direction's bound is crossed or a stop is requested.

        The forward scan has no bound and only ends on stop.
        """
        logger.info(
            "scanner_started",
            direction=self.direction.name,
            start_id=self.current_id,
            lower_bound=self.direction.lower_bound,
            upper_bound=self.direction.upper_bound,
        )
        not_found_attempts = 0

        try:
            while self.current_id is not None:
                if self._stop_event.is_set():
                    self.state = ScannerState.STOPPED
                    break

                record_id = self.current_id
                self.state = ScannerState.RUNNING
                outcome = await self._fetch(record_id)
                self.stats.visited += 1
                decision = self.policy.decide(outcome, not_found_attempts)

                if isinstance(decision, StallAndRetry):
                    not_found_attempts += 1
                    self.stats.not_found += 1
                    self.state = ScannerState.STALLED
                    self._log_stall(record_id, decision.duration, not_found_attempts)
                    if await self._sleep(decision.duration):
                        self.state = ScannerState.STOPPED
                        break
                    continue

                if isinstance(outcome, Found):
                    if await self.sink.persist(outcome.record):
                        self.stats.persisted += 1
                elif isinstance(outcome, TransportFailure):
                    self.stats.errors += 1
                    logger.error(
                        "scanner_record_skipped",
                        direction=self.direction.name,
                        record_id=record_id,
                        detail=outcome.detail,
                    )
                elif isinstance(outcome, NotFound):
                    self.stats.not_found += 1
                    self.stats.skipped_gaps += 1
                    logger.warning(
                        "scanner_gap_skipped",
                        direction=self.direction.name,
                        record_id=record_id,
                        attempts=not_found_attempts,
                    )

                not_found_attempts = 0
                self.stats.last_id = record_id

                stopped = await self._sleep(self.pacing_delay)
                self.current_id = self.direction.next_id(record_id)
                if stopped and self.current_id is not None:
                    self.state = ScannerState.STOPPED
                    break
            else:
                self.state = ScannerState.FINISHED

        except asyncio.CancelledError:
            self.state = ScannerState.STOPPED
            logger.info("scanner_cancelled", direction=self.direction.name, record_id=self.current_id)
            raise
        finally:
            self.stats.state = self.state
            logger.info(
                "scanner_stopped",
                direction=self.direction.name,
                state=self.state.value,
                visited=self.stats.visited,
                persisted=self.stats.persisted,
                not_found=self.stats.not_found,
                errors=self.stats.errors,
                last_id=self.stats.last_id,
            )

        return self.stats
