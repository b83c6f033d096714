"""Response schema helpers for Flask views."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict

from ..services import NOT_FOUND, ServiceResult


def iso(dt: datetime | None) -> str | None:
    if not dt:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


@dataclass
class Envelope:
    ok: bool
    payload: Dict[str, Any]
    error: str | None = None
    timestamp: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "payload": self.payload,
            "error": self.error,
            "timestamp": self.timestamp or iso(datetime.now(tz=timezone.utc)),
        }


def success(payload: Dict[str, Any]) -> Envelope:
    return Envelope(ok=True, payload=payload)


def failure(message: str) -> Envelope:
    return Envelope(ok=False, payload={}, error=message)


def from_result(result: ServiceResult, created: bool = False) -> tuple[Envelope, int]:
    if result.ok:
        return success(result.payload), (201 if created else 200)
    status = 404 if result.error_kind == NOT_FOUND else 400
    return failure(result.error or "error"), status
