"""
Record store: patient record pointers and their active/inactive lifecycle.

A record holds only a content hash and a storage locator for an encrypted
payload kept elsewhere. Records are never hard-deleted; deactivation is
terminal.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..access.service import AccessGrantLedger
from ..audit.models import AuditEventType
from ..audit.service import AuditEvent
from ..clock import Clock
from ..errors import NotFound, Unauthorized
from ..principals import require_principal, require_text
from ..roles.service import RoleRegistry
from .ids import derive_record_id
from .models import LedgerState, PatientRecord

logger = logging.getLogger(__name__)


async def load_ledger_state(session: AsyncSession) -> LedgerState:
    state = await session.get(LedgerState, 1)
    if state is None:
        state = LedgerState(id=1, paused=False, record_nonce=0)
        session.add(state)
        await session.flush()
    return state


class RecordStore:
    def __init__(
        self,
        clock: Clock,
        roles: RoleRegistry,
        access: AccessGrantLedger,
        max_field_length: int = 256,
    ):
        self.clock = clock
        self.roles = roles
        self.access = access
        self.max_field_length = max_field_length

    def _validate_content(self, data_hash: Optional[str], data_location: Optional[str]) -> Tuple[str, str]:
        return (
            require_text(data_hash, "data_hash", self.max_field_length),
            require_text(data_location, "data_location", self.max_field_length),
        )

    async def get(self, session: AsyncSession, record_id: str) -> Optional[PatientRecord]:
        return await session.get(PatientRecord, record_id)

    async def create(
        self,
        session: AsyncSession,
        patient_id: Optional[str],
        data_hash: Optional[str],
        data_location: Optional[str],
        caller: str,
    ) -> Tuple[PatientRecord, AuditEvent]:
        await self.roles.require_organization(session, caller)
        patient = require_principal(patient_id, "patient address")
        data_hash, data_location = self._validate_content(data_hash, data_location)

        state = await load_ledger_state(session)
        state.record_nonce += 1
        nonce = state.record_nonce
        now = self.clock.now()
        record_id = derive_record_id(
            patient, caller, nonce, int(now.timestamp() * 1_000_000_000)
        )

        record = PatientRecord(
            record_id=record_id,
            patient_id=patient,
            created_by=caller,
            created_at=now,
            last_updated_at=now,
            data_hash=data_hash,
            data_location=data_location,
            is_active=True,
            sequence=nonce,
        )
        session.add(record)
        # Parent row must exist before its implicit creator grant
        await session.flush()
        self.access.add_grant(session, record_id, caller, caller, now)
        logger.info("Record created: %s by %s", record_id, caller)
        event = AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            actor=caller,
            record_id=record_id,
            subject=patient,
            occurred_at=now,
            details={"data_hash": data_hash, "data_location": data_location},
        )
        return record, event

    async def update(
        self,
        session: AsyncSession,
        record_id: str,
        data_hash: Optional[str],
        data_location: Optional[str],
        caller: str,
    ) -> AuditEvent:
        record = await self.access.active_record(session, record_id)
        await self.access.require_access(session, record_id, caller)
        data_hash, data_location = self._validate_content(data_hash, data_location)

        now = self.clock.now()
        previous_hash = record.data_hash
        record.data_hash = data_hash
        record.data_location = data_location
        record.last_updated_at = now
        logger.info("Record updated: %s by %s", record_id, caller)
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            actor=caller,
            record_id=record_id,
            occurred_at=now,
            details={
                "previous_data_hash": previous_hash,
                "data_hash": data_hash,
                "data_location": data_location,
            },
        )

    async def deactivate(self, session: AsyncSession, record_id: str, caller: str) -> AuditEvent:
        record = await self.access.active_record(session, record_id)
        if record.created_by != caller and not await self.roles.is_admin(session, caller):
            raise Unauthorized("Only the creating organization or an admin may deactivate")

        now = self.clock.now()
        record.is_active = False
        record.last_updated_at = now
        logger.info("Record deactivated: %s by %s", record_id, caller)
        return AuditEvent(
            event_type=AuditEventType.RECORD_DEACTIVATED,
            actor=caller,
            record_id=record_id,
            occurred_at=now,
        )

    async def patient_record_ids(self, session: AsyncSession, patient_id: str) -> List[str]:
        rows = await session.scalars(
            select(PatientRecord.record_id)
            .where(PatientRecord.patient_id == patient_id, PatientRecord.is_active.is_(True))
            .order_by(PatientRecord.sequence)
        )
        return list(rows)

    async def patient_record_count(self, session: AsyncSession, patient_id: str) -> int:
        count = await session.scalar(
            select(func.count())
            .select_from(PatientRecord)
            .where(PatientRecord.patient_id == patient_id, PatientRecord.is_active.is_(True))
        )
        return int(count or 0)

    async def total_record_count(self, session: AsyncSession) -> int:
        count = await session.scalar(
            select(func.count())
            .select_from(PatientRecord)
            .where(PatientRecord.is_active.is_(True))
        )
        return int(count or 0)
