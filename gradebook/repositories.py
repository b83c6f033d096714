"""Repository layer that encapsulates persistence logic."""

from __future__ import annotations

from typing import List

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from . import models
from .utils import SequenceGenerator


class BaseRepository:
    def __init__(self, session: Session):
        self.session = session


class StudentRepository(BaseRepository):
    def add(
        self,
        student_code: str,
        name: str,
        age: int,
        email: str,
        phone: str | None,
        student_type: str,
    ) -> models.Student:
        entity = models.Student(
            student_code=student_code,
            name=name,
            age=age,
            email=email,
            phone=phone,
            student_type=student_type,
        )
        self.session.add(entity)
        self.session.flush()
        return entity

    def get_by_code(self, student_code: str) -> models.Student | None:
        return self.session.scalar(
            select(models.Student).where(models.Student.student_code == student_code)
        )

    def list_all(self) -> List[models.Student]:
        return list(self.session.scalars(select(models.Student).order_by(models.Student.id.asc())))

    def search_by_name(self, fragment: str) -> List[models.Student]:
        stmt = (
            select(models.Student)
            .where(func.lower(models.Student.name).contains(fragment.lower()))
            .order_by(models.Student.id.asc())
        )
        return list(self.session.scalars(stmt))

    def count(self) -> int:
        return int(self.session.scalar(select(func.count(models.Student.id))) or 0)

    def max_sequence(self, prefix: str) -> int:
        codes = self.session.scalars(select(models.Student.student_code))
        return max((SequenceGenerator.parse(code, prefix) for code in codes), default=0)


class GradeRepository(BaseRepository):
    def add(
        self,
        grade_code: str,
        student_code: str,
        subject: str,
        subject_type: str,
        score: float,
    ) -> models.Grade:
        entity = models.Grade(
            grade_code=grade_code,
            student_code=student_code,
            subject=subject,
            subject_type=subject_type,
            score=score,
        )
        self.session.add(entity)
        self.session.flush()
        return entity

    def for_student(self, student_code: str) -> List[models.Grade]:
        """Grades of one student, newest first."""
        stmt = (
            select(models.Grade)
            .where(models.Grade.student_code == student_code)
            .order_by(models.Grade.id.desc())
        )
        return list(self.session.scalars(stmt))

    def list_all(self) -> List[models.Grade]:
        return list(self.session.scalars(select(models.Grade).order_by(models.Grade.id.asc())))

    def count(self) -> int:
        return int(self.session.scalar(select(func.count(models.Grade.id))) or 0)

    def max_sequence(self, prefix: str) -> int:
        codes = self.session.scalars(select(models.Grade.grade_code))
        return max((SequenceGenerator.parse(code, prefix) for code in codes), default=0)
