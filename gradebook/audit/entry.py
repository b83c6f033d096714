"""Audit records and their one-line text form."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_SEPARATOR = " | "


class OperationType(str, enum.Enum):
    ADD_STUDENT = "ADD_STUDENT"
    FIND_STUDENT = "FIND_STUDENT"
    SEARCH_STUDENTS = "SEARCH_STUDENTS"
    RECORD_GRADE = "RECORD_GRADE"
    VIEW_GRADES = "VIEW_GRADES"
    CLASS_STATISTICS = "CLASS_STATISTICS"
    CACHE_MAINTENANCE = "CACHE_MAINTENANCE"

    @classmethod
    def coerce(cls, value: "OperationType | str") -> "OperationType":
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown operation type: {value!r}") from None


@dataclass(frozen=True, slots=True)
class AuditEntry:
    timestamp: datetime
    thread_name: str
    operation: OperationType
    description: str
    duration_ms: int
    success: bool
    thread_ident: Optional[int] = None

    def to_line(self) -> str:
        """Render the persisted form; always exactly one line."""
        description = " ".join(self.description.splitlines())
        # the thread field must not contain the field separator
        thread = " ".join(self.thread_name.splitlines()).replace("|", "/")
        return _SEPARATOR.join(
            (
                format_timestamp(self.timestamp),
                f"thread={thread}",
                f"op={self.operation.value}",
                f"time={self.duration_ms}ms",
                "SUCCESS" if self.success else "FAILURE",
                description,
            )
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": format_timestamp(self.timestamp),
            "thread": self.thread_name,
            "thread_ident": self.thread_ident,
            "operation": self.operation.value,
            "description": self.description,
            "duration_ms": self.duration_ms,
            "success": self.success,
        }

    def __str__(self) -> str:
        return self.to_line()

    @classmethod
    def from_line(cls, line: str) -> Optional["AuditEntry"]:
        """Parse a persisted line; returns ``None`` for anything malformed."""
        parts = line.rstrip("\r\n").split(_SEPARATOR, 5)
        if len(parts) != 6:
            return None
        stamp, thread, op, duration, outcome, description = parts
        if not (thread.startswith("thread=") and op.startswith("op=")):
            return None
        if not (duration.startswith("time=") and duration.endswith("ms")):
            return None
        if outcome not in {"SUCCESS", "FAILURE"}:
            return None
        try:
            return cls(
                timestamp=parse_timestamp(stamp),
                thread_name=thread[len("thread="):],
                operation=OperationType.coerce(op[len("op="):]),
                description=description,
                duration_ms=int(duration[len("time="):-2]),
                success=outcome == "SUCCESS",
            )
        except ValueError:
            return None


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
