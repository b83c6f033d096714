"""Small shared helpers."""

from __future__ import annotations

import threading
import time
from datetime import date, datetime, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def parse_day(value: date | datetime | str) -> date:
    """Accept ``YYYY-MM-DD`` strings, dates or datetimes and return a date."""
    if isinstance(value, datetime):
        if value.tzinfo:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())


def elapsed_ms(started: float) -> int:
    """Milliseconds since a ``time.perf_counter()`` reading."""
    return max(0, int(round((time.perf_counter() - started) * 1000)))


class SequenceGenerator:
    """Thread-safe code generator: ``STU001``, ``STU002``...

    Owned by whichever component creates the entities, so two managers in the
    same process never share numbering.
    """

    def __init__(self, prefix: str, start: int = 0, width: int = 3) -> None:
        self.prefix = prefix
        self.width = width
        self._value = start
        self._lock = threading.Lock()

    def next(self) -> str:
        with self._lock:
            self._value += 1
            return f"{self.prefix}{self._value:0{self.width}d}"

    @property
    def current(self) -> int:
        with self._lock:
            return self._value

    @staticmethod
    def parse(code: str, prefix: str) -> int:
        if not code.startswith(prefix):
            return 0
        try:
            return int(code[len(prefix):])
        except ValueError:
            return 0
