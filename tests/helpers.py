"""Test doubles and helpers shared across test modules."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Callable

from kz_harvester.models import FetchOutcome, Found, NotFound, Record, TransportFailure


def make_payload(record_id: int, **overrides: Any) -> dict[str, Any]:
    """A full GlobalAPI record body."""
    payload = {
        "id": record_id,
        "steamid64": "76561198202357651",
        "player_name": "AlphaKeks",
        "steam_id": "STEAM_1:1:121045961",
        "server_id": 1283,
        "map_id": 992,
        "stage": 0,
        "mode": "kz_simple",
        "tickrate": 128,
        "time": 61.375,
        "teleports": 0,
        "created_on": "2023-01-12T15:48:47",
        "updated_on": "2023-01-12T15:48:47",
        "updated_by": 0,
        "record_filter_id": 0,
        "server_name": "Hikari KZ",
        "map_name": "kz_lionharder",
        "points": 1000,
        "replay_id": 0,
    }
    payload.update(overrides)
    return payload


def read_lines(path: Path) -> list[dict[str, Any]]:
    """Decode every line of a JSON lines file."""
    with open(path, encoding="utf-8") as f:
        return [json.loads(line) for line in f.read().splitlines()]


class ScriptedFetcher:
    """
    Fetcher double driven by a script.

    `script` maps an ID to a list of outcome kinds ("found", "not_found",
    "error") consumed one per call; the last entry repeats. IDs missing from
    the script use `default`.
    """

    def __init__(
        self,
        script: dict[int, list[str]] | None = None,
        default: str = "found",
        on_fetch: Callable[[int], None] | None = None,
    ):
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.default = default
        self.on_fetch = on_fetch
        self.calls: list[int] = []

    def _next_kind(self, record_id: int) -> str:
        steps = self.script.get(record_id)
        if not steps:
            return self.default
        return steps.pop(0) if len(steps) > 1 else steps[0]

    async def fetch(self, record_id: int) -> FetchOutcome:
        self.calls.append(record_id)
        if self.on_fetch:
            self.on_fetch(record_id)
        await asyncio.sleep(0)

        kind = self._next_kind(record_id)
        if kind == "found":
            return Found(record_id=record_id, record=Record.model_validate(make_payload(record_id)))
        if kind == "not_found":
            return NotFound(record_id=record_id)
        if kind == "raise":
            raise RuntimeError("fetcher exploded")
        return TransportFailure(record_id=record_id, detail="ConnectError: boom")


async def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    """Poll `predicate` on the event loop until it holds."""

    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout=timeout)
