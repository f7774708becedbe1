from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base


class AccessGrant(Base):
    """One row per grant event for a (record, organization) pair.

    ``active_key`` mirrors ``organization`` while the grant is live and is
    cleared on revocation, so the unique constraint allows at most one live
    grant per pair while keeping every revoked row as history.
    """

    __tablename__ = "access_grants"
    __table_args__ = (
        UniqueConstraint("record_id", "active_key", name="uq_live_grant"),
        Index("ix_access_grants_record_org", "record_id", "organization"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    record_id: Mapped[str] = mapped_column(
        ForeignKey("patient_records.record_id"), nullable=False
    )
    organization: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    active_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    granted_by: Mapped[str] = mapped_column(String(255), nullable=False)
    granted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
