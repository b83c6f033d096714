"""Service layer: student, grade and class statistics managers."""

from .grades import GradeManager, grades_key
from .results import NOT_FOUND, VALIDATION, ServiceResult
from .statistics import CLASS_STATISTICS_KEY, ClassStatistics, ClassStatisticsCalculator
from .students import StudentManager, student_key
from .validators import GradePayload, StudentPayload, ValidationError

__all__ = [
    "CLASS_STATISTICS_KEY",
    "ClassStatistics",
    "ClassStatisticsCalculator",
    "GradeManager",
    "GradePayload",
    "NOT_FOUND",
    "ServiceResult",
    "StudentManager",
    "StudentPayload",
    "VALIDATION",
    "ValidationError",
    "grades_key",
    "student_key",
]
