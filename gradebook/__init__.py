"""Gradebook: student and grade tracking with a shared cache and audit trail."""

from .audit import AuditEntry, AuditPipeline, OperationType
from .bootstrap import BootstrapContext, bootstrap, build_context
from .caching import ConcurrentCache, RefreshScheduler

__version__ = "0.1.0"
__all__ = [
    "AuditEntry",
    "AuditPipeline",
    "BootstrapContext",
    "ConcurrentCache",
    "OperationType",
    "RefreshScheduler",
    "bootstrap",
    "build_context",
]
