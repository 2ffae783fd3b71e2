"""
KZ Harvester — Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- GlobalAPI record payloads
- Output file paths under tmp_path
- Async test support via pytest-asyncio
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from helpers import make_payload


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for anyio tests."""
    return "asyncio"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def record_payload() -> dict[str, Any]:
    """A complete record body as GlobalAPI returns it."""
    return make_payload(1337)


@pytest.fixture
def output_path(tmp_path: Path) -> Path:
    """JSON lines output file inside the test's tmp dir."""
    return tmp_path / "records.jsonl"
