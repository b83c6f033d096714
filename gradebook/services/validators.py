"""Input validators for student and grade payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

STUDENT_TYPES = {"regular", "honors"}
SUBJECT_TYPES = {"core", "elective"}


class ValidationError(Exception):
    pass


def _missing(data: dict, required: set[str]) -> None:
    missing = {key for key in required if data.get(key) in (None, "")}
    if missing:
        raise ValidationError(f"Missing fields: {', '.join(sorted(missing))}")


def _number(data: dict, key: str, kind=float):
    try:
        return kind(data[key])
    except (TypeError, ValueError):
        raise ValidationError(f"Field '{key}' must be a number") from None


@dataclass(slots=True)
class StudentPayload:
    name: str
    age: int
    email: str
    phone: Optional[str]
    student_type: str

    @classmethod
    def from_dict(cls, data: dict) -> "StudentPayload":
        _missing(data, {"name", "age", "email"})
        age = _number(data, "age", int)
        if age <= 0:
            raise ValidationError("Field 'age' must be positive")
        student_type = str(data.get("student_type") or "regular").strip().lower()
        if student_type not in STUDENT_TYPES:
            raise ValidationError(f"Unknown student type: {student_type}")
        return cls(
            name=str(data["name"]).strip(),
            age=age,
            email=str(data["email"]).strip(),
            phone=(str(data["phone"]).strip() or None) if data.get("phone") else None,
            student_type=student_type,
        )


@dataclass(slots=True)
class GradePayload:
    student_code: str
    subject: str
    subject_type: str
    score: float

    @classmethod
    def from_dict(cls, data: dict) -> "GradePayload":
        _missing(data, {"student_code", "subject", "score"})
        score = _number(data, "score", float)
        if not 0.0 <= score <= 100.0:
            raise ValidationError("Grade must be between 0 and 100")
        subject_type = str(data.get("subject_type") or "core").strip().lower()
        if subject_type not in SUBJECT_TYPES:
            raise ValidationError(f"Unknown subject type: {subject_type}")
        return cls(
            student_code=str(data["student_code"]).strip().upper(),
            subject=str(data["subject"]).strip(),
            subject_type=subject_type,
            score=score,
        )
