"""
KZ Harvester — Coordinator

Starts one forward scanner (new records, unbounded) and one backward scanner
(backfill down to ID 0) against the same output file and waits for both.
"""

from __future__ import annotations

import asyncio
import signal
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Any

import structlog

from kz_harvester.backoff import BackoffPolicy
from kz_harvester.config import WriterMode, settings
from kz_harvester.fetcher import RecordFetcher
from kz_harvester.models import ScanDirection, ScanStats
from kz_harvester.scanner import Fetcher, Scanner
from kz_harvester.sink import AppendFileSink, JsonLinesWriter, Sink

logger = structlog.get_logger(__name__)


class Coordinator:
    """
    Launches the forward and backward scans concurrently.

    Args:
        start_forward: First ID of the forward scan.
        start_backward: Exclusive upper bound of the backward scan; it walks
            `start_backward - 1` down to 0. None disables the backward scan.
        output_path: JSON lines file shared by both scans.
        forward_count: Bound the forward scan to this many IDs (count mode).
        fetcher: Injected fetcher; a RecordFetcher is opened when omitted.
    """

    def __init__(
        self,
        start_forward: int,
        start_backward: int | None,
        output_path: str | Path,
        forward_count: int | None = None,
        fetcher: Fetcher | None = None,
        policy: BackoffPolicy | None = None,
        pacing_delay: float | None = None,
        writer_mode: WriterMode | None = None,
    ):
        if start_forward < 0:
            raise ValueError("start_forward must be non-negative")
        if start_backward is not None and start_backward < 0:
            raise ValueError("start_backward must be non-negative")

        self.start_forward = start_forward
        self.start_backward = start_backward
        self.output_path = Path(output_path)
        self.forward_count = forward_count
        self.policy = policy or BackoffPolicy()
        self.pacing_delay = pacing_delay
        self.writer_mode = writer_mode or settings.WRITER_MODE
        self._fetcher = fetcher
        self._stop_event = asyncio.Event()
        self.scanners: list[Scanner] = []

    def directions(self) -> list[ScanDirection]:
        result = [ScanDirection.forward(self.start_forward, self.forward_count)]
        if self.start_backward is not None:
            result.append(ScanDirection.backward(self.start_backward))
        return result

    async def shutdown(self) -> None:
        """Stop both scanners at their next suspension point."""
        logger.info("coordinator_shutdown_requested")
        self._stop_event.set()

    async def run(self) -> list[ScanStats]:
        """Run both scans; returns once every scanner has ended."""
        directions = self.directions()
        logger.info(
            "coordinator_started",
            start_forward=self.start_forward,
            start_backward=self.start_backward,
            forward_count=self.forward_count,
            output_path=str(self.output_path),
            writer_mode=self.writer_mode.value,
        )

        async with AsyncExitStack() as stack:
            fetcher = self._fetcher
            if fetcher is None:
                fetcher = await stack.enter_async_context(RecordFetcher())

            sinks: list[Sink]
            if self.writer_mode == WriterMode.SHARED:
                writer = JsonLinesWriter(self.output_path)
                writer.start()
                stack.push_async_callback(writer.close)
                sinks = [writer.sink() for _ in directions]
            else:
                sinks = []
                for _ in directions:
                    sink = AppendFileSink(self.output_path)
                    stack.push_async_callback(sink.close)
                    sinks.append(sink)

            self.scanners = [
                Scanner(
                    direction,
                    fetcher,
                    sink,
                    policy=self.policy,
                    pacing_delay=self.pacing_delay,
                    stop_event=self._stop_event,
                )
                for direction, sink in zip(directions, sinks)
            ]

            try:
                results = await asyncio.gather(*(scanner.run() for scanner in self.scanners))
            except BaseException:
                self._stop_event.set()
                raise

        logger.info(
            "coordinator_finished",
            persisted=sum(stats.persisted for stats in results),
            errors=sum(stats.errors for stats in results),
        )
        return list(results)


async def run_harvest(coordinator: Coordinator) -> list[ScanStats]:
    """
    Run a coordinator with SIGTERM/SIGINT wired to a clean shutdown.

    Args:
        coordinator: Configured Coordinator.
    """

    def handle_signal(_signum: int, _frame: Any) -> None:
        logger.info("coordinator_signal_received")
        asyncio.create_task(coordinator.shutdown())

    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []

    try:
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, handle_signal, signum, None)
            installed.append(signum)
    except NotImplementedError:
        # Windows doesn't support add_signal_handler for all signals
        logger.warning("signal_handlers_not_supported_on_platform")

    try:
        return await coordinator.run()
    except Exception as e:
        logger.error("coordinator_fatal_error", error=str(e), error_type=type(e).__name__)
        raise
    finally:
        for signum in installed:
            loop.remove_signal_handler(signum)
