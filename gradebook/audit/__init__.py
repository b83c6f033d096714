"""Audit trail: entry model, asynchronous pipeline and file readers."""

from .entry import AuditEntry, OperationType
from .files import latest_log_file, list_log_files, read_entries, tail_log_file
from .pipeline import AuditPipeline, AuditStatistics, RotatingAuditFile

__all__ = [
    "AuditEntry",
    "AuditPipeline",
    "AuditStatistics",
    "OperationType",
    "RotatingAuditFile",
    "latest_log_file",
    "list_log_files",
    "read_entries",
    "tail_log_file",
]
