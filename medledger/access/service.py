"""
Access grant ledger.

Each record owns an ordered list of grant rows. A grant is live until it is
revoked; re-granting appends a new row, so the table doubles as the grant
history. Whether a principal can act on a record is answered from this
table alone, joined against the record's activity flag.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..audit.models import AuditEventType
from ..audit.service import AuditEvent
from ..clock import Clock
from ..errors import AlreadyGranted, InvalidArgument, NotFound, NotGranted, Unauthorized
from ..principals import is_null_principal, require_principal
from ..records.models import PatientRecord
from ..roles.service import RoleRegistry
from .models import AccessGrant

logger = logging.getLogger(__name__)


class AccessGrantLedger:
    def __init__(self, clock: Clock, roles: RoleRegistry):
        self.clock = clock
        self.roles = roles

    async def active_record(self, session: AsyncSession, record_id: str) -> PatientRecord:
        record = await session.get(PatientRecord, record_id)
        if record is None or not record.is_active:
            raise NotFound(f"Record {record_id} not found or inactive")
        return record

    async def live_grant(
        self, session: AsyncSession, record_id: str, principal: str
    ) -> Optional[AccessGrant]:
        return await session.scalar(
            select(AccessGrant).where(
                AccessGrant.record_id == record_id,
                AccessGrant.active_key == principal,
            )
        )

    async def has_access(self, session: AsyncSession, record_id: str, principal: Optional[str]) -> bool:
        if is_null_principal(principal):
            return False
        found = await session.scalar(
            select(AccessGrant.id)
            .join(PatientRecord, PatientRecord.record_id == AccessGrant.record_id)
            .where(
                AccessGrant.record_id == record_id,
                AccessGrant.active_key == principal,
                PatientRecord.is_active.is_(True),
            )
        )
        return found is not None

    async def require_access(self, session: AsyncSession, record_id: str, caller: str) -> None:
        if not await self.has_access(session, record_id, caller):
            raise Unauthorized(f"Caller has no access to record {record_id}")

    def add_grant(
        self,
        session: AsyncSession,
        record_id: str,
        organization: str,
        granted_by: str,
        granted_at: datetime,
    ) -> AccessGrant:
        grant = AccessGrant(
            record_id=record_id,
            organization=organization,
            active_key=organization,
            granted_by=granted_by,
            granted_at=granted_at,
            is_revoked=False,
        )
        session.add(grant)
        return grant

    async def grant(
        self, session: AsyncSession, record_id: str, target_org: Optional[str], caller: str
    ) -> AuditEvent:
        await self.active_record(session, record_id)
        await self.require_access(session, record_id, caller)
        target = require_principal(target_org, "organization")
        if not await self.roles.is_organization(session, target):
            raise InvalidArgument(f"{target} is not a registered organization")
        if await self.live_grant(session, record_id, target) is not None:
            raise AlreadyGranted(f"{target} already has access to record {record_id}")

        now = self.clock.now()
        self.add_grant(session, record_id, target, caller, now)
        logger.info("Access granted on %s to %s by %s", record_id, target, caller)
        return AuditEvent(
            event_type=AuditEventType.ACCESS_GRANTED,
            actor=caller,
            record_id=record_id,
            subject=target,
            occurred_at=now,
        )

    async def revoke(
        self, session: AsyncSession, record_id: str, target_org: Optional[str], caller: str
    ) -> AuditEvent:
        await self.active_record(session, record_id)
        await self.require_access(session, record_id, caller)
        target = require_principal(target_org, "organization")
        if target == caller:
            raise InvalidArgument("Cannot revoke own access")
        grant = await self.live_grant(session, record_id, target)
        if grant is None:
            raise NotGranted(f"{target} has no access to record {record_id}")

        now = self.clock.now()
        grant.is_revoked = True
        grant.active_key = None
        grant.revoked_at = now
        grant.revoked_by = caller
        logger.info("Access revoked on %s from %s by %s", record_id, target, caller)
        return AuditEvent(
            event_type=AuditEventType.ACCESS_REVOKED,
            actor=caller,
            record_id=record_id,
            subject=target,
            occurred_at=now,
        )

    async def list_active_grantees(self, session: AsyncSession, record_id: str) -> List[str]:
        rows = await session.scalars(
            select(AccessGrant.organization)
            .join(PatientRecord, PatientRecord.record_id == AccessGrant.record_id)
            .where(
                AccessGrant.record_id == record_id,
                AccessGrant.active_key.is_not(None),
                PatientRecord.is_active.is_(True),
            )
            .order_by(AccessGrant.id)
        )
        return list(rows)

    async def grant_history(self, session: AsyncSession, record_id: str) -> List[AccessGrant]:
        rows = await session.scalars(
            select(AccessGrant)
            .where(AccessGrant.record_id == record_id)
            .order_by(AccessGrant.id)
        )
        return list(rows)

    async def accessible_record_ids(self, session: AsyncSession, organization: str) -> List[str]:
        rows = await session.scalars(
            select(AccessGrant.record_id)
            .join(PatientRecord, PatientRecord.record_id == AccessGrant.record_id)
            .where(
                AccessGrant.active_key == organization,
                PatientRecord.is_active.is_(True),
            )
            .order_by(AccessGrant.id)
        )
        return list(rows)
