"""
Tests for the backoff policy (kz_harvester/backoff.py).
"""

from __future__ import annotations

from unittest.mock import patch

from kz_harvester.backoff import BackoffPolicy
from kz_harvester.config import settings
from kz_harvester.models import Advance, Found, NotFound, Record, StallAndRetry, TransportFailure


def test_found_advances() -> None:
    outcome = Found(record_id=1, record=Record(id=1))
    assert isinstance(BackoffPolicy().decide(outcome), Advance)


def test_transport_failure_advances() -> None:
    outcome = TransportFailure(record_id=1, detail="ReadTimeout")
    assert isinstance(BackoffPolicy().decide(outcome), Advance)


def test_not_found_stalls_for_configured_duration() -> None:
    decision = BackoffPolicy(stall_seconds=42.0).decide(NotFound(record_id=1))

    assert isinstance(decision, StallAndRetry)
    assert decision.duration == 42.0


def test_defaults_come_from_settings() -> None:
    policy = BackoffPolicy()

    assert policy.stall_seconds == settings.NOT_FOUND_STALL_SECONDS
    assert policy.max_not_found_retries == settings.NOT_FOUND_MAX_RETRIES


def test_not_found_retries_forever_by_default() -> None:
    with patch.object(settings, "NOT_FOUND_MAX_RETRIES", None):
        policy = BackoffPolicy(stall_seconds=1.0)
        decision = policy.decide(NotFound(record_id=1), attempts=10_000)

    assert isinstance(decision, StallAndRetry)


def test_bounded_retries_skip_gap() -> None:
    policy = BackoffPolicy(stall_seconds=1.0, max_not_found_retries=3)

    assert isinstance(policy.decide(NotFound(record_id=1), attempts=2), StallAndRetry)
    assert isinstance(policy.decide(NotFound(record_id=1), attempts=3), Advance)
