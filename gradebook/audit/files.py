"""Helpers for inspecting persisted audit files."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from .entry import AuditEntry


def _rotation_order(path: Path) -> Tuple[str, int]:
    # audit_2024-05-01.log < audit_2024-05-01.1.log < audit_2024-05-02.log
    stem = path.name[: -len(".log")]
    base, _, sequence = stem.partition(".")
    return base, int(sequence) if sequence.isdigit() else 0


def list_log_files(directory: Path, prefix: str = "audit", active: Optional[Path] = None) -> List[dict]:
    """Enumerate audit files with metadata, in rotation order."""
    files: List[dict] = []
    if not directory.is_dir():
        return files
    for entry in sorted(directory.glob(f"{prefix}_*.log"), key=_rotation_order):
        if not entry.is_file():
            continue
        try:
            stat = entry.stat()
        except OSError:
            continue
        files.append(
            {
                "name": entry.name,
                "size": stat.st_size,
                "modified_at": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
                "active": active is not None and entry.resolve() == Path(active).resolve(),
            }
        )
    return files


def latest_log_file(directory: Path, prefix: str = "audit") -> Optional[Path]:
    """Most recently modified audit file, or ``None``."""
    if not directory.is_dir():
        return None
    candidates = [path for path in directory.glob(f"{prefix}_*.log") if path.is_file()]
    if not candidates:
        return None
    return max(candidates, key=lambda path: (path.stat().st_mtime, path.name))


def tail_log_file(path: Path, max_lines: int = 200) -> List[str]:
    """Read the last `max_lines` from the given log file."""
    if max_lines <= 0 or not path.exists() or not path.is_file():
        return []
    max_lines = min(max_lines, 5000)
    chunk_size = 8192
    buffer = b""
    with path.open("rb") as fh:
        fh.seek(0, 2)
        remaining = fh.tell()
        newlines = 0
        while remaining > 0 and newlines <= max_lines:
            read_size = min(chunk_size, remaining)
            remaining -= read_size
            fh.seek(remaining)
            buffer = fh.read(read_size) + buffer
            newlines = buffer.count(b"\n")
    lines = buffer.decode("utf-8", errors="replace").splitlines()
    return lines[-max_lines:]


def read_entries(path: Path, max_lines: int = 200) -> List[AuditEntry]:
    """Parse the tail of an audit file, skipping lines that do not parse."""
    parsed = (AuditEntry.from_line(line) for line in tail_log_file(path, max_lines))
    return [entry for entry in parsed if entry is not None]
