"""
KZ Harvester — Data model.

Record mirrors the GlobalAPI `records/{id}` payload. Every field is optional
because the API omits fields freely; the field order here is the column order
of the JSON lines written to disk.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------


class Record(BaseModel):
    """One leaderboard entry."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    steamid64: Optional[str] = None
    player_name: Optional[str] = None
    steam_id: Optional[str] = None
    server_id: Optional[int] = None
    map_id: Optional[int] = None
    stage: Optional[int] = None
    mode: Optional[str] = None
    tickrate: Optional[int] = None
    time: Optional[float] = None
    teleports: Optional[int] = None
    created_on: Optional[str] = None
    updated_on: Optional[str] = None
    updated_by: Optional[int] = None
    record_filter_id: Optional[int] = None
    server_name: Optional[str] = None
    map_name: Optional[str] = None
    points: Optional[int] = None
    replay_id: Optional[int] = None


# ---------------------------------------------------------------------------
# Scan direction
# ---------------------------------------------------------------------------


class ScanDirection(BaseModel):
    """
    Where a scan starts, which way it steps and where it stops.

    Bounds are inclusive. A forward scan normally has no upper bound and runs
    until stopped from outside.
    """

    model_config = ConfigDict(frozen=True)

    start: int = Field(..., ge=0)
    step: int
    lower_bound: Optional[int] = None
    upper_bound: Optional[int] = None

    @model_validator(mode="after")
    def _check_step(self) -> ScanDirection:
        if self.step not in (1, -1):
            raise ValueError("step must be +1 or -1")
        return self

    @classmethod
    def forward(cls, start: int, count: int | None = None) -> ScanDirection:
        """
        Increasing scan from `start`.

        With `count`, the scan stops after `count` IDs (the simplified
        count-based deployment mode); `count=0` or None means unbounded.
        """
        upper = start + count - 1 if count else None
        return cls(start=start, step=1, upper_bound=upper)

    @classmethod
    def backward(cls, start_exclusive: int) -> ScanDirection:
        """Decreasing scan over `start_exclusive - 1` down to 0."""
        return cls(start=max(start_exclusive - 1, 0), step=-1, lower_bound=0, upper_bound=start_exclusive - 1)

    @property
    def name(self) -> str:
        return "forward" if self.step > 0 else "backward"

    def contains(self, record_id: int) -> bool:
        if record_id < 0:
            return False
        if self.lower_bound is not None and record_id < self.lower_bound:
            return False
        if self.upper_bound is not None and record_id > self.upper_bound:
            return False
        return True

    def first_id(self) -> int | None:
        """First ID to visit, or None when the range is empty."""
        return self.start if self.contains(self.start) else None

    def next_id(self, record_id: int) -> int | None:
        """ID after `record_id`, or None when the scan is finished."""
        candidate = record_id + self.step
        return candidate if self.contains(candidate) else None


# ---------------------------------------------------------------------------
# Fetch outcomes
# ---------------------------------------------------------------------------


class Found(BaseModel):
    record_id: int
    record: Record


class NotFound(BaseModel):
    record_id: int


class TransportFailure(BaseModel):
    """Transport or decode failure; the scan logs it and moves on."""
    record_id: int
    detail: str


FetchOutcome = Union[Found, NotFound, TransportFailure]


# ---------------------------------------------------------------------------
# Backoff decisions
# ---------------------------------------------------------------------------


class Advance(BaseModel):
    pass


class StallAndRetry(BaseModel):
    duration: float = Field(..., ge=0)


Decision = Union[Advance, StallAndRetry]


class ScannerState(str, Enum):
    RUNNING = "running"
    STALLED = "stalled"
    FINISHED = "finished"
    STOPPED = "stopped"


class ScanStats(BaseModel):
    """Counters returned by a scanner when it ends."""

    direction: str
    visited: int = 0
    persisted: int = 0
    not_found: int = 0
    errors: int = 0
    skipped_gaps: int = 0
    last_id: Optional[int] = None
    state: ScannerState = ScannerState.RUNNING
