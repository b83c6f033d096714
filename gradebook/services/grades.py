"""Grade recording and per-student grade views."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from ..audit import AuditPipeline, OperationType
from ..caching import ConcurrentCache
from ..database import Database
from ..repositories import GradeRepository, StudentRepository
from ..utils import SequenceGenerator, elapsed_ms
from .results import ServiceResult
from .statistics import CLASS_STATISTICS_KEY
from .validators import GradePayload, ValidationError

LOGGER = logging.getLogger("gradebook.services.grades")

GRADE_PREFIX = "GRD"


def grades_key(student_code: str) -> str:
    return f"GRADES_{student_code}"


def _average(scores: List[float]) -> float:
    return sum(scores) / len(scores) if scores else 0.0


class GradeManager:
    def __init__(
        self,
        database: Database,
        cache: ConcurrentCache[str, Any],
        audit: AuditPipeline,
        stats_cache: Optional[ConcurrentCache[str, Any]] = None,
    ) -> None:
        self.database = database
        self.cache = cache
        self.audit = audit
        self.stats_cache = stats_cache
        with database.session() as session:
            start = GradeRepository(session).max_sequence(GRADE_PREFIX)
        self.codes = SequenceGenerator(GRADE_PREFIX, start)

    def record_grade(self, payload: dict) -> ServiceResult:
        started = time.perf_counter()
        success = False
        description = "Record grade"
        try:
            try:
                data = GradePayload.from_dict(payload)
            except ValidationError as exc:
                description = f"Rejected grade: {exc}"
                return ServiceResult.invalid(str(exc))
            description = (
                f"Added grade for student {data.student_code}, "
                f"subject {data.subject}, score {data.score:g}"
            )
            with self.database.session() as session:
                if StudentRepository(session).get_by_code(data.student_code) is None:
                    return ServiceResult.not_found(
                        f"Student with ID {data.student_code} doesn't exist."
                    )
                grade = GradeRepository(session).add(
                    grade_code=self.codes.next(),
                    student_code=data.student_code,
                    subject=data.subject,
                    subject_type=data.subject_type,
                    score=data.score,
                )
                record = grade.to_dict()
            self.cache.invalidate(grades_key(data.student_code))
            if self.stats_cache is not None:
                self.stats_cache.invalidate(CLASS_STATISTICS_KEY)
            success = True
            return ServiceResult.success({"grade": record})
        finally:
            self.audit.log(OperationType.RECORD_GRADE, description, elapsed_ms(started), success)

    def grades_for_student(self, student_code: str) -> ServiceResult:
        """Grades of one student, newest first."""
        started = time.perf_counter()
        code = student_code.strip().upper()
        key = grades_key(code)
        success = False
        try:
            cached = self.cache.get(key)
            if cached is not None:
                success = True
                return ServiceResult.success({"student_code": code, "grades": cached, "cached": True})
            with self.database.session() as session:
                if StudentRepository(session).get_by_code(code) is None:
                    return ServiceResult.not_found(f"Student with ID {code} doesn't exist.")
                grades = [grade.to_dict() for grade in GradeRepository(session).for_student(code)]
            self.cache.put(key, grades)
            success = True
            return ServiceResult.success({"student_code": code, "grades": grades, "cached": False})
        finally:
            self.audit.log(OperationType.VIEW_GRADES, f"View grades of {code}", elapsed_ms(started), success)

    def averages(self, student_code: str) -> Dict[str, float]:
        result = self.grades_for_student(student_code)
        grades = result.payload.get("grades", []) if result.ok else []
        return {
            "overall": _average([g["score"] for g in grades]),
            "core": _average([g["score"] for g in grades if g["subject_type"] == "core"]),
            "elective": _average([g["score"] for g in grades if g["subject_type"] == "elective"]),
            "count": float(len(grades)),
        }

    def count(self) -> int:
        with self.database.session() as session:
            return GradeRepository(session).count()
