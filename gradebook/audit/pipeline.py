"""Asynchronous audit trail: callers enqueue, one writer thread persists.

``log()`` never blocks and never reports whether the entry reached disk.
The writer drains the queue in FIFO order, appending one line per entry and
flushing it before taking the next.

Shutdown is best-effort and NOT durable: ``stop()`` cancels the writer and
discards whatever is still queued (the count is reported in ``metrics()``
under ``discarded``).  Callers that need every entry on disk must call
``wait_until_idle()`` before ``stop()``.

Read queries (recent, by operation, by thread, by date, statistics) run over
a bounded in-memory history of logged entries, independent of the delivery
queue and of the files on disk.
"""

from __future__ import annotations

import logging
import os
import queue
import re
import threading
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import IO, Any, Callable, Deque, Dict, List, Optional

from ..utils import parse_day, utc_now
from .entry import AuditEntry, OperationType

LOGGER = logging.getLogger("gradebook.audit")

DEFAULT_MAX_BYTES = 10 * 1024 * 1024


@dataclass(slots=True)
class AuditStatistics:
    total_ops: int
    avg_duration_ms: float
    success_count: int
    failure_count: int
    counts_by_operation: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_ops": self.total_ops,
            "avg_duration_ms": self.avg_duration_ms,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "counts_by_operation": dict(self.counts_by_operation),
        }


class RotatingAuditFile:
    """Append-only audit file that rolls over by UTC day and by size.

    Files are named ``<prefix>_<YYYY-MM-DD>.log`` and, after a size rollover
    on the same day, ``<prefix>_<YYYY-MM-DD>.<n>.log``.  A file is never
    reopened for writing once a later one has been started.

    Not thread-safe: exactly one writer thread owns an instance.
    """

    def __init__(self, directory: Path, prefix: str = "audit", max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        self.directory = Path(directory)
        self.prefix = prefix
        self.max_bytes = max(1, int(max_bytes))
        self.path: Optional[Path] = None
        self.rotations = 0
        self._handle: Optional[IO[bytes]] = None
        self._day: Optional[date] = None
        self._sequence = 0
        self._size = 0
        self._pattern = re.compile(
            rf"^{re.escape(prefix)}_(\d{{4}}-\d{{2}}-\d{{2}})(?:\.(\d+))?\.log$"
        )

    def path_for(self, day: date, sequence: int = 0) -> Path:
        suffix = f".{sequence}" if sequence else ""
        return self.directory / f"{self.prefix}_{day.isoformat()}{suffix}.log"

    def latest_sequence(self, day: date) -> int:
        if not self.directory.is_dir():
            return 0
        latest = 0
        for entry in self.directory.iterdir():
            match = self._pattern.match(entry.name)
            if match and match.group(1) == day.isoformat():
                latest = max(latest, int(match.group(2) or 0))
        return latest

    def write(self, line: str, day: date) -> None:
        data = (line + "\n").encode("utf-8", errors="backslashreplace")
        self._prepare(day, len(data))
        self._handle.write(data)
        self._handle.flush()
        self._size += len(data)

    def close(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            try:
                handle.close()
            except OSError as exc:
                LOGGER.warning("Closing audit file %s failed: %s", self.path, exc)

    def _prepare(self, day: date, incoming: int) -> None:
        if self._handle is not None and self._day is not None and day > self._day:
            self.close()
            self.rotations += 1
        if self._handle is None:
            target = day if self._day is None or day > self._day else self._day
            sequence = self.latest_sequence(target)
            if self._day == target:
                sequence = max(sequence, self._sequence)
            self._open(target, sequence)
        if self._size > 0 and self._size + incoming > self.max_bytes:
            self.close()
            self._open(self._day, self._sequence + 1)
            self.rotations += 1
            LOGGER.info("Audit log rotated to %s", self.path)

    def _open(self, day: date, sequence: int) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(day, sequence)
        handle = open(path, "ab")
        self._handle = handle
        self._day = day
        self._sequence = sequence
        self._size = os.fstat(handle.fileno()).st_size
        self.path = path


class AuditPipeline:
    """Producer/consumer audit logger with a single dedicated writer thread.

    Parameters
    ----------
    directory:
        Where audit files are written.
    prefix:
        File name prefix (``audit`` → ``audit_2024-05-01.log``).
    max_bytes:
        Size threshold that triggers a rollover to the next file.
    retained:
        How many recent entries the read-side queries can see.
    clock:
        Returns the current aware UTC datetime; replaceable in tests.
    """

    def __init__(
        self,
        directory: Path | str,
        *,
        prefix: str = "audit",
        max_bytes: int = DEFAULT_MAX_BYTES,
        retained: int = 1000,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.directory = Path(directory)
        self.prefix = prefix
        self.max_bytes = max(1, int(max_bytes))
        self.clock = clock
        self._queue: "queue.Queue[AuditEntry]" = queue.Queue()
        self._queue_lock = threading.Lock()
        self._history: Deque[AuditEntry] = deque(maxlen=max(1, int(retained)))
        self._history_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._idle = threading.Condition()
        self._pending = 0
        self._enqueued = 0
        self._written = 0
        self._write_failures = 0
        self._discarded = 0
        self._thread: threading.Thread | None = None
        self._stop: threading.Event | None = None
        self._file: RotatingAuditFile | None = None
        self._lifecycle_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and not self._stop.is_set()

    def start(self) -> None:
        with self._lifecycle_lock:
            if self.running:
                return
            stop = threading.Event()
            self._stop = stop
            self._file = RotatingAuditFile(self.directory, self.prefix, self.max_bytes)
            self._thread = threading.Thread(
                target=self._worker_loop,
                args=(stop, self._file, self._queue),
                name=f"{self.prefix}-writer",
                daemon=True,
            )
            self._thread.start()
        LOGGER.info("Audit writer started (%s)", self.directory)

    def stop(self, timeout: float = 1.0) -> int:
        """Cancel the writer and discard queued entries.  Returns the discard count."""
        with self._lifecycle_lock:
            thread, self._thread = self._thread, None
            if self._stop is not None:
                self._stop.set()
            # entries logged from here on wait in a fresh queue for the next start()
            with self._queue_lock:
                stale, self._queue = self._queue, queue.Queue()
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout=timeout)
            dropped = 0
            while True:
                try:
                    stale.get_nowait()
                except queue.Empty:
                    break
                dropped += 1
            if dropped:
                with self._stats_lock:
                    self._discarded += dropped
                self._mark_done(dropped)
                LOGGER.warning("Audit writer stopped; %s queued entries discarded", dropped)
        if thread is not None:
            LOGGER.info("Audit writer stopped")
        return dropped

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until every logged entry has been written or dropped."""
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout)

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def log(
        self,
        operation: OperationType | str,
        description: str,
        duration_ms: int = 0,
        success: bool = True,
    ) -> AuditEntry:
        """Record one completed operation.  Never blocks on the writer."""
        current = threading.current_thread()
        entry = AuditEntry(
            timestamp=self.clock(),
            thread_name=current.name,
            operation=OperationType.coerce(operation),
            description=str(description),
            duration_ms=max(0, int(duration_ms)),
            success=bool(success),
            thread_ident=current.ident,
        )
        with self._history_lock:
            self._history.append(entry)
        with self._idle:
            self._pending += 1
        with self._stats_lock:
            self._enqueued += 1
        with self._queue_lock:
            self._queue.put_nowait(entry)
        return entry

    # ------------------------------------------------------------------
    # Writer side
    # ------------------------------------------------------------------

    def _worker_loop(
        self,
        stop: threading.Event,
        target: RotatingAuditFile,
        source: "queue.Queue[AuditEntry]",
    ) -> None:
        try:
            while not stop.is_set():
                try:
                    entry = source.get(timeout=0.2)
                except queue.Empty:
                    continue
                if stop.is_set():
                    with self._stats_lock:
                        self._discarded += 1
                    self._mark_done()
                    break
                self._write(entry, target)
                self._mark_done()
        finally:
            target.close()

    def _write(self, entry: AuditEntry, target: RotatingAuditFile) -> None:
        try:
            target.write(entry.to_line(), self.clock().astimezone(timezone.utc).date())
        except (OSError, ValueError) as exc:
            target.close()
            with self._stats_lock:
                self._write_failures += 1
            LOGGER.error("Audit write failed, entry dropped (%s): %s", entry.operation.value, exc)
        except Exception:  # noqa: BLE001
            target.close()
            with self._stats_lock:
                self._write_failures += 1
            LOGGER.exception("Unexpected error writing audit entry (%s)", entry.operation.value)
        else:
            with self._stats_lock:
                self._written += 1

    def _mark_done(self, count: int = 1) -> None:
        with self._idle:
            self._pending -= count
            if self._pending <= 0:
                self._pending = 0
                self._idle.notify_all()

    # ------------------------------------------------------------------
    # Read side (retained history only)
    # ------------------------------------------------------------------

    def entries(self) -> List[AuditEntry]:
        with self._history_lock:
            return list(self._history)

    def recent_entries(self, limit: int) -> List[AuditEntry]:
        if limit <= 0:
            return []
        with self._history_lock:
            items = list(self._history)
        return items[-limit:]

    def filter_by_operation(self, operation: OperationType | str) -> List[AuditEntry]:
        kind = OperationType.coerce(operation)
        return [entry for entry in self.entries() if entry.operation is kind]

    def filter_by_thread(self, thread: str | int) -> List[AuditEntry]:
        needle = str(thread).strip()
        lowered = needle.lower()
        return [
            entry
            for entry in self.entries()
            if entry.thread_name.lower() == lowered or str(entry.thread_ident) == needle
        ]

    def filter_by_date_range(
        self, start: date | datetime | str, end: date | datetime | str
    ) -> List[AuditEntry]:
        """Entries whose UTC day lies in ``[start, end]``, both ends inclusive."""
        first, last = parse_day(start), parse_day(end)
        if first > last:
            return []
        lower = datetime.combine(first, time.min, tzinfo=timezone.utc)
        upper = datetime.combine(last + timedelta(days=1), time.min, tzinfo=timezone.utc)
        return [entry for entry in self.entries() if lower <= entry.timestamp < upper]

    def statistics(self) -> AuditStatistics:
        items = self.entries()
        counts = Counter(entry.operation for entry in items)
        total = len(items)
        successes = sum(1 for entry in items if entry.success)
        return AuditStatistics(
            total_ops=total,
            avg_duration_ms=(sum(entry.duration_ms for entry in items) / total) if total else 0.0,
            success_count=successes,
            failure_count=total - successes,
            counts_by_operation={kind.value: counts.get(kind, 0) for kind in OperationType},
        )

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @property
    def active_file(self) -> Optional[Path]:
        target = self._file
        return target.path if target is not None else None

    def metrics(self) -> Dict[str, Any]:
        with self._stats_lock:
            counters = {
                "enqueued": self._enqueued,
                "written": self._written,
                "write_failures": self._write_failures,
                "discarded": self._discarded,
            }
        with self._history_lock:
            retained = len(self._history)
        target = self._file
        return {
            "queue_depth": self._queue.qsize(),
            **counters,
            "rotations": target.rotations if target is not None else 0,
            "retained": retained,
            "running": self.running,
            "active_file": str(target.path) if target is not None and target.path else None,
        }
