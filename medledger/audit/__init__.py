"""
Append-only audit log for ledger mutations.
"""

from .models import AuditCategory, AuditEventType, AuditLogEntry
from .service import (
    AuditEvent,
    AuditService,
    AuditSink,
    LoggingAuditSink,
    MemoryAuditSink,
)

__all__ = [
    "AuditCategory",
    "AuditEventType",
    "AuditLogEntry",
    "AuditEvent",
    "AuditService",
    "AuditSink",
    "LoggingAuditSink",
    "MemoryAuditSink",
]
