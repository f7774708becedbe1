"""
Read-only queries over committed ledger state.

Each call opens its own session and takes no write lock. Everything except
``get_record``, the grant history and the audit reads hides inactive
records.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..access.models import AccessGrant
from ..access.service import AccessGrantLedger
from ..audit.service import AuditEvent, AuditService
from ..errors import NotFound
from ..principals import is_null_principal, normalize_record_id
from ..records.models import LedgerState, PatientRecord
from ..records.service import RecordStore
from ..roles.service import RoleRegistry


class QueryService:
    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        roles: RoleRegistry,
        records: RecordStore,
        access: AccessGrantLedger,
        audit: AuditService,
    ):
        self.session_maker = session_maker
        self.roles = roles
        self.records = records
        self.access = access
        self.audit = audit

    async def _existing_record(self, session: AsyncSession, record_id: str) -> PatientRecord:
        record = await self.records.get(session, record_id)
        if record is None:
            raise NotFound(f"Record {record_id} not found")
        return record

    async def get_record(self, record_id: str) -> PatientRecord:
        """Return the record whatever its state; callers check ``is_active``."""
        rid = normalize_record_id(record_id)
        async with self.session_maker() as session:
            return await self._existing_record(session, rid)

    async def has_access(self, record_id: str, principal: Optional[str]) -> bool:
        rid = normalize_record_id(record_id)
        async with self.session_maker() as session:
            return await self.access.has_access(session, rid, principal)

    async def get_record_access(self, record_id: str) -> List[str]:
        rid = normalize_record_id(record_id)
        async with self.session_maker() as session:
            await self._existing_record(session, rid)
            return await self.access.list_active_grantees(session, rid)

    async def get_access_history(self, record_id: str) -> List[AccessGrant]:
        rid = normalize_record_id(record_id)
        async with self.session_maker() as session:
            await self._existing_record(session, rid)
            return await self.access.grant_history(session, rid)

    async def get_patient_records(self, patient_id: str) -> List[str]:
        if is_null_principal(patient_id):
            return []
        async with self.session_maker() as session:
            return await self.records.patient_record_ids(session, patient_id)

    async def get_patient_record_count(self, patient_id: str) -> int:
        if is_null_principal(patient_id):
            return 0
        async with self.session_maker() as session:
            return await self.records.patient_record_count(session, patient_id)

    async def get_organization_records(self, organization: str) -> List[str]:
        if is_null_principal(organization):
            return []
        async with self.session_maker() as session:
            return await self.access.accessible_record_ids(session, organization)

    async def get_total_record_count(self) -> int:
        async with self.session_maker() as session:
            return await self.records.total_record_count(session)

    async def list_organizations(self) -> List[str]:
        async with self.session_maker() as session:
            return await self.roles.list_organizations(session)

    async def is_organization(self, principal: str) -> bool:
        async with self.session_maker() as session:
            return await self.roles.is_organization(session, principal)

    async def is_admin(self, principal: str) -> bool:
        async with self.session_maker() as session:
            return await self.roles.is_admin(session, principal)

    async def is_paused(self) -> bool:
        async with self.session_maker() as session:
            state = await session.get(LedgerState, 1)
            return bool(state is not None and state.paused)

    async def list_audit_events(self, limit: int = 100, offset: int = 0) -> dict:
        async with self.session_maker() as session:
            return await self.audit.list_events(session, limit=limit, offset=offset)

    async def get_audit_trail(self, record_id: str) -> List[AuditEvent]:
        rid = normalize_record_id(record_id)
        async with self.session_maker() as session:
            await self._existing_record(session, rid)
            return await self.audit.record_trail(session, rid)
