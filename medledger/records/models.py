from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base


class PatientRecord(Base):
    __tablename__ = "patient_records"

    record_id: Mapped[str] = mapped_column(String(66), primary_key=True)
    patient_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    data_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    data_location: Mapped[str] = mapped_column(String(256), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    # Creation order; record ids are hashes and carry no ordering
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)


class LedgerState(Base):
    """Single-row table holding the pause flag and the record nonce."""

    __tablename__ = "ledger_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    paused: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    paused_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    paused_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    record_nonce: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
