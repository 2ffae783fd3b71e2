"""
KZ Harvester — Application Entrypoint

Configures structlog, asks the operator for the scan parameters, provisions
the output file and runs the coordinator until both scans end or the process
receives SIGINT/SIGTERM.

Run via:
    python -m kz_harvester
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable

import structlog
from pydantic import BaseModel

from kz_harvester.config import ScanMode, settings
from kz_harvester.coordinator import Coordinator, run_harvest
from kz_harvester.errors import SinkIOError
from kz_harvester.sink import open_output

MAX_RECORD_ID = 2**32 - 1


# ---------------------------------------------------------------------------
# Structlog Configuration
# ---------------------------------------------------------------------------


def _configure_logging(log_level: str = "INFO") -> None:
    """
    Set up structured logging with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    # Configure stdlib logging first (for httpx and friends)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Operator Input
# ---------------------------------------------------------------------------


class HarvestInput(BaseModel):
    """The three values the operator provides before a run."""

    start_forward: int
    start_backward: int | None = None
    forward_count: int | None = None
    output_path: Path


def parse_record_id(raw: str) -> int:
    """Parse a non-negative 32-bit integer."""
    value = int(raw.strip())
    if value < 0 or value > MAX_RECORD_ID:
        raise ValueError(f"{value} is outside 0..{MAX_RECORD_ID}")
    return value


def _prompt_number(message: str, input_fn: Callable[[str], str]) -> int:
    print(message)
    raw = input_fn("").strip()
    try:
        return parse_record_id(raw)
    except ValueError as e:
        print(f"`{raw}` is not a valid input. Please input a positive 32-bit integer.\n{e}")
        sys.exit(1)


def collect_inputs(
    mode: ScanMode | None = None,
    input_fn: Callable[[str], str] = input,
) -> HarvestInput:
    """Ask for the start IDs (or count) and the output file."""
    mode = mode or settings.SCAN_MODE

    start_forward = _prompt_number("Which ID do you want to start at?", input_fn)

    if mode == ScanMode.COUNT:
        count = _prompt_number(
            "How many records do you want to fetch? (0 = no limit)", input_fn
        )
        start_backward = None
    else:
        count = None
        start_backward = _prompt_number(
            "Which ID should the backfill start below? (0 = no backfill)", input_fn
        )

    print("Please specify an output file.")
    output_path = input_fn("").strip()
    if not output_path:
        print("No output file given.")
        sys.exit(1)

    return HarvestInput(
        start_forward=start_forward,
        start_backward=start_backward,
        forward_count=count or None,
        output_path=Path(output_path),
    )


def provision_output(path: Path) -> None:
    """Make sure the output file exists and is appendable, or exit."""
    try:
        handle, created = open_output(path)
    except SinkIOError as e:
        print(f"{path} was not found and also failed to be created.\n{e}")
        sys.exit(1)
    handle.close()
    if created:
        print(f"Successfully created `{path}`.")


# ---------------------------------------------------------------------------
# Application Startup
# ---------------------------------------------------------------------------


def main() -> None:
    """
    Application entrypoint.

    Execution order:
    1. Configure logging (structlog JSON)
    2. Collect operator input
    3. Open-or-create the output file
    4. Run the forward and backward scans until done or signalled
    """
    _configure_logging(log_level=settings.LOG_LEVEL)
    logger = structlog.get_logger(__name__)

    inputs = collect_inputs()
    provision_output(inputs.output_path)

    coordinator = Coordinator(
        start_forward=inputs.start_forward,
        start_backward=inputs.start_backward,
        output_path=inputs.output_path,
        forward_count=inputs.forward_count,
    )

    logger.info(
        "kz_harvester_startup_complete",
        scan_mode=settings.SCAN_MODE.value,
        writer_mode=settings.WRITER_MODE.value,
        base_url=settings.GLOBAL_API_BASE_URL,
    )

    try:
        results = asyncio.run(run_harvest(coordinator))
    except KeyboardInterrupt:
        logger.info("kz_harvester_interrupted_by_user")
        return

    for stats in results:
        logger.info("kz_harvester_scan_summary", **stats.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# CLI Entry
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    main()
