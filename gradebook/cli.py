"""Command line interface for the gradebook."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from .audit import latest_log_file, list_log_files, read_entries
from .bootstrap import bootstrap
from .config import load_config
from .shell import GradebookShell

DRAIN_TIMEOUT = 5.0


def _print(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _context(args, *, start: bool = True):
    return bootstrap(Path(args.base_dir) if args.base_dir else None, start=start)


def _emit(result) -> int:
    _print(result.payload if result.ok else {"error": result.error, "kind": result.error_kind})
    return 0 if result.ok else 1


def cmd_shell(args) -> int:
    ctx = _context(args)
    try:
        GradebookShell(ctx).run()
    finally:
        ctx.shutdown(drain_timeout=DRAIN_TIMEOUT)
    return 0


def cmd_runserver(args) -> int:
    from .app import create_app

    app = create_app(_context(args))
    app.run(host=args.host, port=args.port)
    return 0


def cmd_add_student(args) -> int:
    ctx = _context(args)
    try:
        return _emit(
            ctx.students.add_student(
                {
                    "name": args.name,
                    "age": args.age,
                    "email": args.email,
                    "phone": args.phone,
                    "student_type": args.type,
                }
            )
        )
    finally:
        ctx.shutdown(drain_timeout=DRAIN_TIMEOUT)


def cmd_record_grade(args) -> int:
    ctx = _context(args)
    try:
        return _emit(
            ctx.grades.record_grade(
                {
                    "student_code": args.student,
                    "subject": args.subject,
                    "subject_type": args.subject_type,
                    "score": args.score,
                }
            )
        )
    finally:
        ctx.shutdown(drain_timeout=DRAIN_TIMEOUT)


def cmd_grades(args) -> int:
    ctx = _context(args)
    try:
        return _emit(ctx.grades.grades_for_student(args.student))
    finally:
        ctx.shutdown(drain_timeout=DRAIN_TIMEOUT)


def cmd_class_stats(args) -> int:
    ctx = _context(args)
    try:
        _print(ctx.statistics.class_statistics().to_dict())
        return 0
    finally:
        ctx.shutdown(drain_timeout=DRAIN_TIMEOUT)


def cmd_audit_files(args) -> int:
    config = load_config(Path(args.base_dir) if args.base_dir else None)
    _print({"files": list_log_files(config.audit.directory, config.audit.prefix)})
    return 0


def cmd_audit_tail(args) -> int:
    config = load_config(Path(args.base_dir) if args.base_dir else None)
    directory = config.audit.directory
    path = directory / args.file if args.file else latest_log_file(directory, config.audit.prefix)
    if path is None or not path.is_file():
        _print({"error": "no audit file found", "directory": str(directory)})
        return 1
    _print({"file": path.name, "entries": [entry.to_dict() for entry in read_entries(path, args.limit)]})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gradebook", description="Student and grade tracker")
    parser.add_argument("--base-dir")
    sub = parser.add_subparsers(dest="command", required=True)

    shell = sub.add_parser("shell", help="Interactive menu")
    shell.set_defaults(func=cmd_shell)

    runserver = sub.add_parser("runserver", help="Start HTTP dashboard")
    runserver.add_argument("--host", default="127.0.0.1")
    runserver.add_argument("--port", type=int, default=8351)
    runserver.set_defaults(func=cmd_runserver)

    add = sub.add_parser("add-student", help="Register a student")
    add.add_argument("--name", required=True)
    add.add_argument("--age", type=int, required=True)
    add.add_argument("--email", required=True)
    add.add_argument("--phone")
    add.add_argument("--type", default="regular", choices=["regular", "honors"])
    add.set_defaults(func=cmd_add_student)

    grade = sub.add_parser("record-grade", help="Record a grade")
    grade.add_argument("--student", required=True)
    grade.add_argument("--subject", required=True)
    grade.add_argument("--subject-type", default="core", choices=["core", "elective"])
    grade.add_argument("--score", type=float, required=True)
    grade.set_defaults(func=cmd_record_grade)

    grades = sub.add_parser("grades", help="Show grades of a student")
    grades.add_argument("--student", required=True)
    grades.set_defaults(func=cmd_grades)

    stats = sub.add_parser("class-stats", help="Show class statistics")
    stats.set_defaults(func=cmd_class_stats)

    files = sub.add_parser("audit-files", help="List persisted audit files")
    files.set_defaults(func=cmd_audit_files)

    tail = sub.add_parser("audit-tail", help="Show the last entries of an audit file")
    tail.add_argument("--file", help="File name inside the audit directory (default: latest)")
    tail.add_argument("--limit", type=int, default=20)
    tail.set_defaults(func=cmd_audit_tail)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
