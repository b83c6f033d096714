"""Result envelope returned by the service layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

VALIDATION = "validation"
NOT_FOUND = "not_found"


@dataclass
class ServiceResult:
    ok: bool
    payload: Dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    error_kind: str | None = None

    @classmethod
    def success(cls, payload: Dict[str, Any]) -> "ServiceResult":
        return cls(ok=True, payload=payload)

    @classmethod
    def invalid(cls, message: str) -> "ServiceResult":
        return cls(ok=False, error=message, error_kind=VALIDATION)

    @classmethod
    def not_found(cls, message: str) -> "ServiceResult":
        return cls(ok=False, error=message, error_kind=NOT_FOUND)
