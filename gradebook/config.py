"""Configuration helpers for the gradebook application."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict


def _env(key: str, default: str) -> str:
    value = os.getenv(key, default)
    return value.strip() if isinstance(value, str) else default


def _env_int(key: str, default: int) -> int:
    try:
        return int(_env(key, str(default)))
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    try:
        return float(_env(key, str(default)))
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = _env(key, str(default)).lower()
    if value in {"1", "true", "yes", "y"}:
        return True
    if value in {"0", "false", "no", "n"}:
        return False
    return default


def _env_level(key: str, default: int) -> int:
    resolved = logging.getLevelName(_env(key, logging.getLevelName(default)).upper())
    # unknown names come back as "Level X" strings
    return resolved if isinstance(resolved, int) else default


@dataclass(slots=True)
class CacheConfig:
    capacity: int = 150
    stats_capacity: int = 16
    auto_refresh: bool = True
    refresh_interval: timedelta = timedelta(seconds=60)


@dataclass(slots=True)
class AuditConfig:
    directory: Path = Path("logs")
    prefix: str = "audit"
    max_bytes: int = 10 * 1024 * 1024
    retained: int = 1000


@dataclass(slots=True)
class AppConfig:
    base_dir: Path
    database_url: str
    cache: CacheConfig = field(default_factory=CacheConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    log_level: int = logging.INFO
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def db_path(self) -> Path | None:
        if self.database_url.startswith("sqlite:///") and not self.database_url.endswith(":memory:"):
            return Path(self.database_url[10:]).expanduser()
        return None


def load_config(base_dir: Path | None = None) -> AppConfig:
    base_dir = base_dir or Path(os.getenv("GRADEBOOK_HOME", Path.cwd()))
    data_dir = base_dir / "data"
    data_dir.mkdir(parents=True, exist_ok=True)

    db_path = _env("GRADEBOOK_DB_PATH", str(data_dir / "gradebook.db"))
    cache = CacheConfig(
        capacity=max(1, _env_int("GRADEBOOK_CACHE_CAPACITY", 150)),
        stats_capacity=max(1, _env_int("GRADEBOOK_STATS_CACHE_CAPACITY", 16)),
        auto_refresh=_env_bool("GRADEBOOK_CACHE_REFRESH", True),
        refresh_interval=timedelta(
            seconds=max(0.1, _env_float("GRADEBOOK_CACHE_REFRESH_SECONDS", 60))
        ),
    )
    audit = AuditConfig(
        directory=Path(_env("GRADEBOOK_AUDIT_DIR", str(base_dir / "logs"))),
        prefix=_env("GRADEBOOK_AUDIT_PREFIX", "audit") or "audit",
        max_bytes=max(1, _env_int("GRADEBOOK_AUDIT_MAX_BYTES", 10 * 1024 * 1024)),
        retained=max(1, _env_int("GRADEBOOK_AUDIT_RETAINED", 1000)),
    )
    extra = {
        "profile": _env("GRADEBOOK_PROFILE", "default"),
        "instance_id": _env("GRADEBOOK_INSTANCE_ID", "gradebook-local"),
    }

    return AppConfig(
        base_dir=base_dir,
        database_url=f"sqlite:///{db_path}",
        cache=cache,
        audit=audit,
        log_level=_env_level("GRADEBOOK_LOG_LEVEL", logging.INFO),
        extra=extra,
    )
