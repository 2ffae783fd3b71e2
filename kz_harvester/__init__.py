"""KZ Harvester — GlobalAPI record harvesting."""

from kz_harvester.backoff import BackoffPolicy
from kz_harvester.coordinator import Coordinator, run_harvest
from kz_harvester.fetcher import RecordFetcher
from kz_harvester.models import (
    FetchOutcome,
    Found,
    NotFound,
    Record,
    ScanDirection,
    ScanStats,
    TransportFailure,
)
from kz_harvester.scanner import Scanner
from kz_harvester.sink import AppendFileSink, JsonLinesWriter, serialize_record

__all__ = [
    "AppendFileSink",
    "BackoffPolicy",
    "Coordinator",
    "FetchOutcome",
    "Found",
    "JsonLinesWriter",
    "NotFound",
    "Record",
    "RecordFetcher",
    "ScanDirection",
    "ScanStats",
    "Scanner",
    "TransportFailure",
    "run_harvest",
    "serialize_record",
]
