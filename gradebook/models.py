"""ORM models for students and grades."""

from __future__ import annotations

from datetime import date, datetime
from typing import List

from sqlalchemy import Date, DateTime, Enum, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base

StudentType = Enum("regular", "honors", name="student_type")
SubjectType = Enum("core", "elective", name="subject_type")

# minimum passing average per student type
PASSING_GRADE = {"regular": 50.0, "honors": 60.0}


class Student(Base):
    __tablename__ = "students"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32))
    student_type: Mapped[str] = mapped_column(StudentType, nullable=False, default="regular")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="Active")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    grades: Mapped[List["Grade"]] = relationship(
        "Grade", back_populates="student", cascade="all, delete-orphan"
    )

    @property
    def passing_grade(self) -> float:
        return PASSING_GRADE.get(self.student_type, 50.0)

    def to_dict(self) -> dict:
        return {
            "student_code": self.student_code,
            "name": self.name,
            "age": self.age,
            "email": self.email,
            "phone": self.phone,
            "student_type": self.student_type,
            "status": self.status,
        }


class Grade(Base):
    __tablename__ = "grades"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    grade_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    student_code: Mapped[str] = mapped_column(ForeignKey("students.student_code"), nullable=False)
    subject: Mapped[str] = mapped_column(String(128), nullable=False)
    subject_type: Mapped[str] = mapped_column(SubjectType, nullable=False, default="core")
    score: Mapped[float] = mapped_column(Float, nullable=False)
    recorded_on: Mapped[date] = mapped_column(Date, default=date.today)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    student: Mapped["Student"] = relationship("Student", back_populates="grades")

    def to_dict(self) -> dict:
        return {
            "grade_code": self.grade_code,
            "student_code": self.student_code,
            "subject": self.subject,
            "subject_type": self.subject_type,
            "score": self.score,
            "recorded_on": self.recorded_on.isoformat() if self.recorded_on else None,
        }
