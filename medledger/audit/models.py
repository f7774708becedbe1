from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base


class AuditCategory(str, Enum):
    SYSTEM = "system"
    SECURITY = "security"
    RECORD = "record"
    ACCESS = "access"


class AuditEventType(str, Enum):
    RECORD_CREATED = "RecordCreated"
    RECORD_UPDATED = "RecordUpdated"
    RECORD_DEACTIVATED = "RecordDeactivated"
    ACCESS_GRANTED = "AccessGranted"
    ACCESS_REVOKED = "AccessRevoked"
    ORGANIZATION_REGISTERED = "OrganizationRegistered"
    ADMIN_BOOTSTRAPPED = "AdminBootstrapped"
    SYSTEM_PAUSED = "SystemPaused"
    SYSTEM_UNPAUSED = "SystemUnpaused"


EVENT_CATEGORIES = {
    AuditEventType.RECORD_CREATED: AuditCategory.RECORD,
    AuditEventType.RECORD_UPDATED: AuditCategory.RECORD,
    AuditEventType.RECORD_DEACTIVATED: AuditCategory.RECORD,
    AuditEventType.ACCESS_GRANTED: AuditCategory.ACCESS,
    AuditEventType.ACCESS_REVOKED: AuditCategory.ACCESS,
    AuditEventType.ORGANIZATION_REGISTERED: AuditCategory.SECURITY,
    AuditEventType.ADMIN_BOOTSTRAPPED: AuditCategory.SECURITY,
    AuditEventType.SYSTEM_PAUSED: AuditCategory.SYSTEM,
    AuditEventType.SYSTEM_UNPAUSED: AuditCategory.SYSTEM,
}


class AuditLogEntry(Base):
    """Append-only audit row. Nothing in the codebase updates or deletes these."""

    __tablename__ = "audit_log"

    sequence: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(
        String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4())
    )
    event_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    record_id: Mapped[Optional[str]] = mapped_column(String(66), nullable=True, index=True)
    actor: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
