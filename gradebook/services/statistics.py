"""Class-wide statistics, cached under a single well-known key."""

from __future__ import annotations

import logging
import statistics
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..audit import AuditPipeline, OperationType
from ..caching import ConcurrentCache
from ..database import Database
from ..repositories import GradeRepository, StudentRepository
from ..utils import elapsed_ms, utc_now

LOGGER = logging.getLogger("gradebook.services.statistics")

CLASS_STATISTICS_KEY = "CLASS_STATISTICS"

GRADE_BANDS = (("A", 90.0), ("B", 80.0), ("C", 70.0), ("D", 60.0), ("F", 0.0))


@dataclass(slots=True)
class ClassStatistics:
    total_students: int
    total_grades: int
    mean: float
    median: float
    std_dev: float
    grade_distribution: Dict[str, int] = field(default_factory=dict)
    subject_averages: Dict[str, float] = field(default_factory=dict)
    highest: Optional[Dict[str, Any]] = None
    lowest: Optional[Dict[str, Any]] = None
    computed_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["computed_at"] = self.computed_at.isoformat()
        return data


def letter_band(score: float) -> str:
    for letter, floor in GRADE_BANDS:
        if score >= floor:
            return letter
    return "F"


def summarize(total_students: int, grades: List[Dict[str, Any]]) -> ClassStatistics:
    scores = [g["score"] for g in grades]
    distribution = {letter: 0 for letter, _ in GRADE_BANDS}
    by_subject: Dict[str, List[float]] = {}
    for grade in grades:
        distribution[letter_band(grade["score"])] += 1
        by_subject.setdefault(grade["subject"], []).append(grade["score"])
    highest = max(grades, key=lambda g: g["score"], default=None)
    lowest = min(grades, key=lambda g: g["score"], default=None)
    return ClassStatistics(
        total_students=total_students,
        total_grades=len(grades),
        mean=float(statistics.fmean(scores)) if scores else 0.0,
        median=float(statistics.median(scores)) if scores else 0.0,
        std_dev=float(statistics.pstdev(scores)) if len(scores) > 1 else 0.0,
        grade_distribution=distribution,
        subject_averages={
            subject: sum(values) / len(values) for subject, values in sorted(by_subject.items())
        },
        highest={"score": highest["score"], "subject": highest["subject"]} if highest else None,
        lowest={"score": lowest["score"], "subject": lowest["subject"]} if lowest else None,
    )


class ClassStatisticsCalculator:
    def __init__(
        self,
        database: Database,
        cache: ConcurrentCache[str, ClassStatistics],
        audit: AuditPipeline,
    ) -> None:
        self.database = database
        self.cache = cache
        self.audit = audit

    def compute(self) -> ClassStatistics:
        with self.database.session() as session:
            total_students = StudentRepository(session).count()
            grades = [grade.to_dict() for grade in GradeRepository(session).list_all()]
        return summarize(total_students, grades)

    def class_statistics(self) -> ClassStatistics:
        started = time.perf_counter()
        stats = self.cache.get(CLASS_STATISTICS_KEY)
        source = "cache"
        if stats is None:
            stats = self.compute()
            self.cache.put(CLASS_STATISTICS_KEY, stats)
            source = "computed"
        self.audit.log(
            OperationType.CLASS_STATISTICS,
            f"Class statistics ({source})",
            elapsed_ms(started),
            True,
        )
        return stats

    def refresh(self) -> ClassStatistics:
        """Recompute and overwrite the cached value; used as the auto-refresh task."""
        started = time.perf_counter()
        success = False
        try:
            stats = self.compute()
            self.cache.put(CLASS_STATISTICS_KEY, stats)
            success = True
            LOGGER.debug("Class statistics refreshed (%s grades)", stats.total_grades)
            return stats
        finally:
            self.audit.log(
                OperationType.CACHE_MAINTENANCE,
                "Refreshed class statistics",
                elapsed_ms(started),
                success,
            )

    def invalidate(self) -> bool:
        return self.cache.invalidate(CLASS_STATISTICS_KEY)
