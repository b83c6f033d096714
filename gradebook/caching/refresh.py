"""Single periodic task runner used for cache auto-refresh."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

LOGGER = logging.getLogger("gradebook.cache.refresh")


class RefreshScheduler:
    """Runs one callable at a fixed rate on a dedicated daemon thread.

    A failing run is logged and counted; the next run still happens on
    schedule.  ``stop()`` wakes the thread immediately and does not wait for
    an in-flight run to finish beyond ``timeout``.
    """

    def __init__(self, name: str = "refresh") -> None:
        self.name = name
        self.interval: float = 0.0
        self.runs = 0
        self.failures = 0
        self._thread: threading.Thread | None = None
        self._stop: threading.Event | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and not self._stop.is_set()

    def start(self, interval_seconds: float, task: Callable[[], Any]) -> None:
        interval = float(interval_seconds)
        if interval <= 0:
            raise ValueError("interval_seconds must be positive")
        with self._lock:
            self._halt(timeout=0.5)
            stop = threading.Event()
            self.interval = interval
            self._stop = stop
            self._thread = threading.Thread(
                target=self._loop,
                args=(interval, task, stop),
                name=self.name,
                daemon=True,
            )
            self._thread.start()

    def stop(self, timeout: float = 1.0) -> None:
        with self._lock:
            self._halt(timeout)

    def _halt(self, timeout: float) -> None:
        """Signal and join the current thread (caller must hold lock)."""
        if self._thread is None:
            return
        self._stop.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        self._thread = None

    def _loop(self, interval: float, task: Callable[[], Any], stop: threading.Event) -> None:
        next_run = time.monotonic() + interval
        while not stop.wait(max(0.0, next_run - time.monotonic())):
            try:
                task()
                self.runs += 1
            except Exception as exc:  # noqa: BLE001
                self.failures += 1
                LOGGER.exception("Refresh task for %s failed: %s", self.name, exc)
            next_run += interval
            now = time.monotonic()
            if next_run < now:
                # a slow run skipped one or more ticks; realign instead of bursting
                next_run = now + interval
