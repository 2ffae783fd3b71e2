"""
KZ Harvester — Persistence Sink

Turns a Record into one JSON line and appends it to the output file. Failures
are logged and the record is dropped; the scan keeps going.

Two ways to share the output file between scanners:
- AppendFileSink: each scanner opens its own unbuffered append handle and
  relies on O_APPEND single-write semantics.
- JsonLinesWriter + QueuedSink: one writer task owns the only handle and
  drains a queue fed by every scanner, so lines are never interleaved.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import BinaryIO, Protocol

import structlog

from kz_harvester.config import settings
from kz_harvester.errors import SerializationError, SinkIOError
from kz_harvester.models import Record

logger = structlog.get_logger(__name__)


def serialize_record(record: Record) -> str:
    """
    Encode a record as a single JSON line.

    Every field is emitted, absent ones as null, in model field order.
    """
    try:
        return record.model_dump_json() + "\n"
    except (ValueError, TypeError) as e:
        raise SerializationError(str(e)) from e


def open_output(path: str | Path) -> tuple[BinaryIO, bool]:
    """
    Open `path` for appending, creating it if missing.

    Returns:
        (handle, created) — handle is unbuffered so every line is one write.
    """
    path = Path(path)
    created = not path.exists()
    try:
        handle = open(path, "ab", buffering=0)
    except OSError as e:
        raise SinkIOError(f"cannot open {path}: {e}") from e
    if created:
        logger.info("sink_output_created", path=str(path))
    return handle, created

def _append_line(handle: BinaryIO, line: str) -> None:
    """Write one line in a single call; a short write counts as a failure."""
    data = line.encode("utf-8")
    try:
        written = handle.write(data)
    except (OSError, ValueError) as e:
        raise SinkIOError(str(e)) from e
    if written != len(data):
        raise SinkIOError(f"short write: {written} of {len(data)} bytes")


class Sink(Protocol):
    async def persist(self, record: Record) -> bool: ...


# ---------------------------------------------------------------------------
# Per-scanner append handle
# ---------------------------------------------------------------------------


class AppendFileSink:
    """Append-mode handle opened once and held for the scanner's lifetime."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._handle, _ = open_output(self.path)

    async def persist(self, record: Record) -> bool:
        """Serialize and append. Returns False if the record was dropped."""
        logger.info("sink_writing_record", record_id=record.id, path=str(self.path))
        try:
            line = serialize_record(record)
            _append_line(self._handle, line)
        except (SerializationError, SinkIOError) as e:
            logger.error(
                "sink_record_dropped",
                record_id=record.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        return True

    async def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()


# ---------------------------------------------------------------------------
# Single writer fed by a queue
# ---------------------------------------------------------------------------


class JsonLinesWriter:
    """
    Owns the output handle and writes queued lines one at a time.

    Each submitted line carries a future that resolves to True once the line
    is on disk, or False if it was dropped.

    Usage:
        writer = JsonLinesWriter(path)
        writer.start()
        sink = writer.sink()
        await sink.persist(record)
        await writer.close()
    """

    _STOP = None

    def __init__(self, path: str | Path, queue_size: int | None = None):
        self.path = Path(path)
        self._queue: asyncio.Queue[tuple[int | None, str, asyncio.Future[bool]] | None] = asyncio.Queue(
            maxsize=queue_size if queue_size is not None else settings.WRITER_QUEUE_SIZE
        )
        self._handle, _ = open_output(self.path)
        self._task: asyncio.Task[None] | None = None
        self.lines_written = 0
        self.write_errors = 0

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="jsonl-writer")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def submit(self, record_id: int | None, line: str) -> bool:
        """
        Queue a line and wait for the writer to handle it.

        Raises:
            SinkIOError: the writer task is not running.
        """
        if not self.running:
            raise SinkIOError("writer is not running")
        done: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        await self._queue.put((record_id, line, done))
        return await done

    def sink(self) -> QueuedSink:
        return QueuedSink(self)

    def _write(self, record_id: int | None, line: str) -> bool:
        try:
            _append_line(self._handle, line)
        except Exception as e:
            self.write_errors += 1
            logger.error(
                "sink_record_dropped",
                record_id=record_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        self.lines_written += 1
        return True

    async def _run(self) -> None:
        try:
            while True:
                item = await self._queue.get()
                try:
                    if item is self._STOP:
                        return
                    record_id, line, done = item
                    ok = self._write(record_id, line)
                    if not done.done():
                        done.set_result(ok)
                finally:
                    self._queue.task_done()
        finally:
            self._fail_pending()

    def _fail_pending(self) -> None:
        """Resolve lines still queued when the writer ends as dropped."""
        while not self._queue.empty():
            item = self._queue.get_nowait()
            self._queue.task_done()
            if item is not self._STOP and not item[2].done():
                item[2].set_result(False)

    async def close(self) -> None:
        """Drain everything queued so far, then close the handle."""
        if self._task is not None:
            await self._queue.put(self._STOP)
            await self._task
            self._task = None
        if not self._handle.closed:
            self._handle.close()
        logger.info(
            "sink_writer_closed",
            path=str(self.path),
            lines_written=self.lines_written,
            write_errors=self.write_errors,
        )


class QueuedSink:
    """Scanner-side handle onto a JsonLinesWriter."""

    def __init__(self, writer: JsonLinesWriter):
        self._writer = writer

    async def persist(self, record: Record) -> bool:
        """Serialize, hand the line to the writer and report whether it landed."""
        logger.info("sink_writing_record", record_id=record.id, path=str(self._writer.path))
        try:
            line = serialize_record(record)
            return await self._writer.submit(record.id, line)
        except (SerializationError, SinkIOError) as e:
            logger.error(
                "sink_record_dropped",
                record_id=record.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
