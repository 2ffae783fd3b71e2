"""
KZ Harvester — Configuration & Constants

Every endpoint, delay and retry knob lives here. No hardcoded values in the
scan loop.

Usage:
    from kz_harvester.config import settings
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic_settings import BaseSettings


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ScanMode(str, Enum):
    """Which prompts the CLI asks and which scans it starts."""
    BIDIRECTIONAL = "bidirectional"  # forward + backward backfill
    COUNT = "count"                  # forward only, bounded by a record count


class WriterMode(str, Enum):
    """How scanners share the output file."""
    SHARED = "shared"        # one writer task fed by a queue
    PER_TASK = "per_task"    # each scanner holds its own append handle


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Central configuration for the harvester.

    Loads from environment variables with fallback defaults.
    """

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # -----------------------------------------------------------------------
    # GlobalAPI
    # -----------------------------------------------------------------------
    GLOBAL_API_BASE_URL: str = "https://kztimerglobal.com/api/v2"
    RECORD_PATH_TEMPLATE: str = "/records/{record_id}"
    USER_AGENT: str = "kz-harvester/0.1.0"
    REQUEST_TIMEOUT_SECONDS: Optional[float] = 30.0  # None = no timeout

    # -----------------------------------------------------------------------
    # Scan pacing
    # -----------------------------------------------------------------------
    PACING_DELAY_SECONDS: float = 0.727       # between requests, rate limit guard
    NOT_FOUND_STALL_SECONDS: float = 300.0    # frontier reached, wait 5 minutes
    NOT_FOUND_MAX_RETRIES: Optional[int] = None  # None = retry the same ID forever

    # -----------------------------------------------------------------------
    # Output
    # -----------------------------------------------------------------------
    WRITER_MODE: WriterMode = WriterMode.SHARED
    WRITER_QUEUE_SIZE: int = 1000

    # -----------------------------------------------------------------------
    # CLI
    # -----------------------------------------------------------------------
    SCAN_MODE: ScanMode = ScanMode.BIDIRECTIONAL

    # -----------------------------------------------------------------------
    # Logging
    # -----------------------------------------------------------------------
    LOG_LEVEL: str = "INFO"


# Singleton instance
settings = Settings()
