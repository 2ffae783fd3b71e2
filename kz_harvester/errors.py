"""
KZ Harvester — Error taxonomy.

Fetcher and sink helpers raise these; the scanner boundary turns them into
outcomes so that none of them ever ends a scan.
"""

from __future__ import annotations


class HarvestError(Exception):
    """Base class for every harvester failure."""


class TransportError(HarvestError):
    """Connection failure, timeout, or an unexpected HTTP status."""


class DecodeError(HarvestError):
    """Response body does not match the record shape."""


class NotFoundError(HarvestError):
    """Upstream answered that no record exists at this ID (yet)."""


class SerializationError(HarvestError):
    """Record could not be encoded as a JSON line."""


class SinkIOError(HarvestError):
    """Appending a line to the output file failed."""
