"""Student registration and lookup."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from ..audit import AuditPipeline, OperationType
from ..caching import ConcurrentCache
from ..database import Database
from ..repositories import StudentRepository
from ..utils import SequenceGenerator, elapsed_ms
from .results import ServiceResult
from .statistics import CLASS_STATISTICS_KEY
from .validators import StudentPayload, ValidationError

LOGGER = logging.getLogger("gradebook.services.students")

STUDENT_PREFIX = "STU"


def student_key(student_code: str) -> str:
    return f"STUDENT_{student_code}"


class StudentManager:
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
            start = StudentRepository(session).max_sequence(STUDENT_PREFIX)
        self.codes = SequenceGenerator(STUDENT_PREFIX, start)

    def add_student(self, payload: dict) -> ServiceResult:
        started = time.perf_counter()
        success = False
        description = "Add student"
        try:
            try:
                data = StudentPayload.from_dict(payload)
            except ValidationError as exc:
                description = f"Rejected student: {exc}"
                return ServiceResult.invalid(str(exc))
            code = self.codes.next()
            with self.database.session() as session:
                student = StudentRepository(session).add(
                    student_code=code,
                    name=data.name,
                    age=data.age,
                    email=data.email,
                    phone=data.phone,
                    student_type=data.student_type,
                )
                record = student.to_dict()
            if self.stats_cache is not None:
                self.stats_cache.invalidate(CLASS_STATISTICS_KEY)
            success = True
            description = f"Added student {code}"
            LOGGER.info("Student %s registered", code)
            return ServiceResult.success({"student": record})
        finally:
            self.audit.log(OperationType.ADD_STUDENT, description, elapsed_ms(started), success)

    def find_student(self, student_code: str) -> ServiceResult:
        started = time.perf_counter()
        code = student_code.strip().upper()
        key = student_key(code)
        success = False
        try:
            cached = self.cache.get(key)
            if cached is not None:
                success = True
                return ServiceResult.success({"student": cached, "cached": True})
            with self.database.session() as session:
                student = StudentRepository(session).get_by_code(code)
                record = student.to_dict() if student else None
            if record is None:
                return ServiceResult.not_found(f"Student with ID {code} doesn't exist.")
            self.cache.put(key, record)
            success = True
            return ServiceResult.success({"student": record, "cached": False})
        finally:
            self.audit.log(OperationType.FIND_STUDENT, f"Lookup student {code}", elapsed_ms(started), success)

    def list_students(self) -> ServiceResult:
        with self.database.session() as session:
            students = [student.to_dict() for student in StudentRepository(session).list_all()]
        return ServiceResult.success({"students": students, "count": len(students)})

    def search_by_name(self, fragment: str) -> ServiceResult:
        started = time.perf_counter()
        fragment = fragment.strip()
        with self.database.session() as session:
            matches = [student.to_dict() for student in StudentRepository(session).search_by_name(fragment)]
        self.audit.log(
            OperationType.SEARCH_STUDENTS,
            f"Name search '{fragment}' matched {len(matches)}",
            elapsed_ms(started),
            True,
        )
        return ServiceResult.success({"students": matches, "count": len(matches)})

    def count(self) -> int:
        with self.database.session() as session:
            return StudentRepository(session).count()

    def summary(self) -> Dict[str, Any]:
        return {"students": self.count(), "next_code_after": self.codes.current}
