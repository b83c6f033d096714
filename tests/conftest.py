"""Shared pytest fixtures for gradebook tests.

Provides an isolated configuration (in-memory SQLite, audit files under
``tmp_path``), a wired :class:`BootstrapContext` with the audit writer
running, and a mutable clock for audit rotation and date-range tests.
"""

from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

# Environment overrides (must be set BEFORE package import)
os.environ.setdefault("GRADEBOOK_CACHE_REFRESH", "0")
os.environ.setdefault("GRADEBOOK_LOG_LEVEL", "WARNING")

from gradebook.bootstrap import build_context
from gradebook.config import AppConfig, AuditConfig, CacheConfig


class FakeClock:
    """Callable returning a controllable aware UTC datetime."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def audit_dir(tmp_path: Path) -> Path:
    return tmp_path / "logs"


@pytest.fixture
def app_config(tmp_path: Path, audit_dir: Path) -> AppConfig:
    return AppConfig(
        base_dir=tmp_path,
        database_url="sqlite:///:memory:",
        cache=CacheConfig(capacity=50, stats_capacity=4, auto_refresh=False),
        audit=AuditConfig(directory=audit_dir, prefix="audit", max_bytes=1024 * 1024, retained=500),
    )


@pytest.fixture
def ctx(app_config: AppConfig):
    context = build_context(app_config)
    context.start(auto_refresh=False)
    yield context
    context.shutdown(drain_timeout=2.0)
