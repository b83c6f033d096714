"""Interactive console menu for the gradebook."""

from __future__ import annotations

from typing import Callable, Iterable, List

from .audit import AuditEntry, AuditStatistics, OperationType
from .bootstrap import BootstrapContext
from .caching import CacheStats
from .services import ClassStatistics, ServiceResult

MAIN_MENU = """
GRADEBOOK
1. Add student
2. View students
3. Find student
4. Search students by name
5. Record grade
6. View student grades
7. Class statistics
8. Cache management
9. Audit trail viewer
0. Exit"""

CACHE_MENU = """
CACHE MANAGEMENT
1. Show statistics
2. Show contents
3. Invalidate key
4. Clear caches
5. Refresh class statistics now
0. Back"""

AUDIT_MENU = """
AUDIT TRAIL
1. View last N entries
2. Filter by operation type
3. Filter by thread
4. Filter by date range
5. Show audit statistics
6. Show writer metrics
0. Back"""


def format_cache_stats(title: str, stats: CacheStats) -> List[str]:
    return [
        f"{title.upper()} CACHE",
        f"Entries: {stats.entry_count}/{stats.capacity}",
        f"Hits: {stats.hits} ({stats.hit_rate:.2f}%)",
        f"Misses: {stats.misses} ({stats.miss_rate:.2f}%)",
        f"Evictions: {stats.evictions}",
    ]


def format_audit_statistics(stats: AuditStatistics) -> List[str]:
    lines = [
        "AUDIT STATISTICS",
        f"Total Operations Logged: {stats.total_ops}",
        f"Average Execution Time: {stats.avg_duration_ms:.2f} ms",
        f"Succeeded: {stats.success_count} | Failed: {stats.failure_count}",
        "Operations per Type:",
    ]
    lines.extend(f" - {name}: {count}" for name, count in stats.counts_by_operation.items())
    return lines


def format_class_statistics(stats: ClassStatistics) -> List[str]:
    lines = [
        "CLASS STATISTICS",
        f"Students: {stats.total_students} | Grades: {stats.total_grades}",
        f"Mean: {stats.mean:.2f} | Median: {stats.median:.2f} | Std dev: {stats.std_dev:.2f}",
        "Distribution: " + ", ".join(f"{k}={v}" for k, v in stats.grade_distribution.items()),
    ]
    for subject, average in stats.subject_averages.items():
        lines.append(f" - {subject}: {average:.2f}")
    if stats.highest and stats.lowest:
        lines.append(
            f"Highest: {stats.highest['score']:g} ({stats.highest['subject']}) | "
            f"Lowest: {stats.lowest['score']:g} ({stats.lowest['subject']})"
        )
    return lines


class GradebookShell:
    """Numbered-menu loop over a running :class:`BootstrapContext`."""

    def __init__(
        self,
        ctx: BootstrapContext,
        input_fn: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
    ) -> None:
        self.ctx = ctx
        self._input = input_fn
        self._output = output

    def run(self) -> None:
        actions = {
            "1": self.add_student,
            "2": self.view_students,
            "3": self.find_student,
            "4": self.search_students,
            "5": self.record_grade,
            "6": self.view_grades,
            "7": self.class_statistics,
            "8": self.cache_menu,
            "9": self.audit_menu,
        }
        while True:
            self._output(MAIN_MENU)
            choice = self._ask("Enter choice: ")
            if choice is None or choice == "0":
                self._output("Exiting system. Goodbye!")
                return
            action = actions.get(choice)
            if action is None:
                self._output("Invalid choice!")
                continue
            action()

    # ------------------------------------------------------------------
    # Input/output helpers
    # ------------------------------------------------------------------

    def _ask(self, prompt: str) -> str | None:
        try:
            return self._input(prompt).strip()
        except EOFError:
            return None

    def _lines(self, lines: Iterable[str]) -> None:
        for line in lines:
            self._output(line)

    def _report(self, result: ServiceResult, render: Callable[[dict], Iterable[str]]) -> None:
        if result.ok:
            self._lines(render(result.payload))
        else:
            self._output(f"Error: {result.error}")

    def _entries(self, title: str, entries: List[AuditEntry]) -> None:
        self._output(title)
        if not entries:
            self._output("(no entries)")
        self._lines(entry.to_line() for entry in entries)

    @staticmethod
    def _student_line(student: dict) -> str:
        return (
            f"{student['student_code']} | {student['name']} | {student['student_type']} | "
            f"{student['email']} | {student['status']}"
        )

    # ------------------------------------------------------------------
    # Student and grade actions
    # ------------------------------------------------------------------

    def add_student(self) -> None:
        payload = {
            "name": self._ask("Name: "),
            "age": self._ask("Age: "),
            "email": self._ask("Email: "),
            "phone": self._ask("Phone: "),
            "student_type": self._ask("Type (regular/honors): "),
        }
        self._report(
            self.ctx.students.add_student(payload),
            lambda p: [f"Student added successfully! ID: {p['student']['student_code']}"],
        )

    def view_students(self) -> None:
        self._report(
            self.ctx.students.list_students(),
            lambda p: [f"{p['count']} student(s)"] + [self._student_line(s) for s in p["students"]],
        )

    def find_student(self) -> None:
        code = self._ask("Student ID: ") or ""
        self._report(self.ctx.students.find_student(code), lambda p: [self._student_line(p["student"])])

    def search_students(self) -> None:
        fragment = self._ask("Name contains: ") or ""
        self._report(
            self.ctx.students.search_by_name(fragment),
            lambda p: [f"{p['count']} match(es)"] + [self._student_line(s) for s in p["students"]],
        )

    def record_grade(self) -> None:
        payload = {
            "student_code": self._ask("Student ID: "),
            "subject": self._ask("Subject: "),
            "subject_type": self._ask("Subject type (core/elective): "),
            "score": self._ask("Score (0-100): "),
        }
        self._report(
            self.ctx.grades.record_grade(payload),
            lambda p: [f"Grade recorded: {p['grade']['grade_code']}"],
        )

    def view_grades(self) -> None:
        code = self._ask("Student ID: ") or ""

        def render(payload: dict) -> List[str]:
            lines = [f"Grades for {payload['student_code']}"]
            if not payload["grades"]:
                lines.append("No grades recorded for this student.")
            lines.extend(
                f"{g['grade_code']} | {g['recorded_on']} | {g['subject']} | {g['subject_type']} | {g['score']:.1f}%"
                for g in payload["grades"]
            )
            return lines

        self._report(self.ctx.grades.grades_for_student(code), render)

    def class_statistics(self) -> None:
        self._lines(format_class_statistics(self.ctx.statistics.class_statistics()))

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def cache_menu(self) -> None:
        while True:
            self._output(CACHE_MENU)
            choice = self._ask("Enter choice: ")
            if choice is None or choice == "0":
                return
            if choice == "1":
                self._lines(format_cache_stats("entity", self.ctx.cache.stats()))
                self._lines(format_cache_stats("statistics", self.ctx.stats_cache.stats()))
            elif choice == "2":
                contents = self.ctx.cache.contents()
                self._output("CACHE CONTENTS")
                self._lines(f"{key} | Last Accessed: {touched.isoformat()}" for key, touched in contents)
            elif choice == "3":
                key = self._ask("Key: ") or ""
                removed = self.ctx.cache.invalidate(key)
                self._output(f"Cache invalidated for key: {key}" if removed else f"No entry for key: {key}")
            elif choice == "4":
                self.ctx.cache.clear()
                self.ctx.stats_cache.clear()
                self._output("Cache cleared")
            elif choice == "5":
                stats = self.ctx.statistics.refresh()
                self._output(f"Class statistics refreshed ({stats.total_grades} grades)")
            else:
                self._output("Invalid choice!")

    # ------------------------------------------------------------------
    # Audit trail viewer
    # ------------------------------------------------------------------

    def audit_menu(self) -> None:
        audit = self.ctx.audit
        while True:
            self._output(AUDIT_MENU)
            choice = self._ask("Enter choice: ")
            if choice is None or choice == "0":
                return
            if choice == "1":
                raw = self._ask("How many recent entries? ") or ""
                if not raw.isdigit():
                    self._output("Please enter a whole number.")
                    continue
                self._entries("RECENT AUDIT LOGS", audit.recent_entries(int(raw)))
            elif choice == "2":
                self._lines(f"- {kind.value}" for kind in OperationType)
                raw = self._ask("Enter operation type: ") or ""
                try:
                    entries = audit.filter_by_operation(raw)
                except ValueError:
                    self._output("Invalid operation type.")
                    continue
                self._entries(f"AUDIT LOGS - Operation: {raw.upper()}", entries)
            elif choice == "3":
                thread = self._ask("Enter thread name or ID: ") or ""
                self._entries(f"AUDIT LOGS - Thread: {thread}", audit.filter_by_thread(thread))
            elif choice == "4":
                start = self._ask("Enter start date (YYYY-MM-DD): ") or ""
                end = self._ask("Enter end date (YYYY-MM-DD): ") or ""
                try:
                    entries = audit.filter_by_date_range(start, end)
                except ValueError:
                    self._output("Invalid date format. Please use YYYY-MM-DD.")
                    continue
                self._entries(f"AUDIT LOGS - From {start} to {end}", entries)
            elif choice == "5":
                self._lines(format_audit_statistics(audit.statistics()))
            elif choice == "6":
                self._lines(f"{key}: {value}" for key, value in audit.metrics().items())
            else:
                self._output("Invalid choice!")
