"""Bootstrap helpers that assemble all runtime components."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .audit import AuditPipeline
from .caching import ConcurrentCache
from .config import AppConfig, load_config
from .database import Database
from .logging_setup import LoggerConfig, configure_logging
from .services import ClassStatistics, ClassStatisticsCalculator, GradeManager, StudentManager

LOGGER = logging.getLogger("gradebook.bootstrap")


class BootstrapContext:
    def __init__(
        self,
        config: AppConfig,
        database: Database,
        cache: ConcurrentCache[str, Any],
        stats_cache: ConcurrentCache[str, ClassStatistics],
        audit: AuditPipeline,
        students: StudentManager,
        grades: GradeManager,
        statistics: ClassStatisticsCalculator,
    ) -> None:
        self.config = config
        self.database = database
        self.cache = cache
        self.stats_cache = stats_cache
        self.audit = audit
        self.students = students
        self.grades = grades
        self.statistics = statistics

    def start(self, auto_refresh: bool | None = None) -> None:
        self.audit.start()
        enabled = self.config.cache.auto_refresh if auto_refresh is None else auto_refresh
        if enabled:
            self.stats_cache.start_auto_refresh(
                self.config.cache.refresh_interval.total_seconds(),
                self.statistics.refresh,
            )

    def shutdown(self, drain_timeout: float | None = None) -> int:
        """Stop background threads.  Returns the number of discarded audit entries.

        With ``drain_timeout`` the audit queue is given that long to empty
        first; without it, queued entries are dropped.
        """
        self.stats_cache.stop_auto_refresh()
        if drain_timeout:
            if not self.audit.wait_until_idle(drain_timeout):
                LOGGER.warning("Audit queue did not drain within %ss", drain_timeout)
        discarded = self.audit.stop()
        self.database.dispose()
        return discarded


def build_context(config: AppConfig) -> BootstrapContext:
    """Wire components without starting any thread."""
    database = Database(config.database_url)
    database.create_all()

    cache: ConcurrentCache[str, Any] = ConcurrentCache(config.cache.capacity, name="entities")
    stats_cache: ConcurrentCache[str, ClassStatistics] = ConcurrentCache(
        config.cache.stats_capacity, name="statistics"
    )
    audit = AuditPipeline(
        config.audit.directory,
        prefix=config.audit.prefix,
        max_bytes=config.audit.max_bytes,
        retained=config.audit.retained,
    )
    students = StudentManager(database, cache, audit, stats_cache=stats_cache)
    grades = GradeManager(database, cache, audit, stats_cache=stats_cache)
    statistics = ClassStatisticsCalculator(database, stats_cache, audit)
    return BootstrapContext(config, database, cache, stats_cache, audit, students, grades, statistics)


def bootstrap(
    base_dir: Path | None = None,
    config: AppConfig | None = None,
    *,
    start: bool = True,
) -> BootstrapContext:
    config = config or load_config(base_dir)
    configure_logging(LoggerConfig(level=config.log_level))
    LOGGER.info("Loaded config (profile=%s, database=%s)", config.extra.get("profile"), config.database_url)
    ctx = build_context(config)
    if start:
        ctx.start()
    return ctx
