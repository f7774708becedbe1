"""
Role registry: which principals hold the admin or organization capability.

Roles are only ever added. Registration is admin-only; the strict path
rejects duplicates, the batch path skips them so a batch always completes.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..audit.models import AuditEventType
from ..audit.service import AuditEvent
from ..clock import Clock
from ..errors import AlreadyExists, InvalidArgument, Unauthorized
from ..principals import MAX_PRINCIPAL_LENGTH, is_null_principal, require_principal
from .models import Role, RoleAssignment

logger = logging.getLogger(__name__)


class RoleRegistry:
    def __init__(self, clock: Clock, max_batch_size: int = 50):
        self.clock = clock
        self.max_batch_size = max_batch_size

    async def has_role(self, session: AsyncSession, principal: Optional[str], role: Role) -> bool:
        if is_null_principal(principal):
            return False
        found = await session.scalar(
            select(RoleAssignment.id).where(
                RoleAssignment.principal == principal,
                RoleAssignment.role == role.value,
            )
        )
        return found is not None

    async def is_admin(self, session: AsyncSession, principal: Optional[str]) -> bool:
        return await self.has_role(session, principal, Role.ADMIN)

    async def is_organization(self, session: AsyncSession, principal: Optional[str]) -> bool:
        return await self.has_role(session, principal, Role.ORGANIZATION)

    async def require_admin(self, session: AsyncSession, caller: str) -> None:
        if not await self.is_admin(session, caller):
            raise Unauthorized("Caller is not an admin")

    async def require_organization(self, session: AsyncSession, caller: str) -> None:
        if not await self.is_organization(session, caller):
            raise Unauthorized("Caller is not a registered organization")

    def _assign(self, session: AsyncSession, principal: str, role: Role, granted_by: Optional[str]):
        now = self.clock.now()
        session.add(
            RoleAssignment(
                principal=principal,
                role=role.value,
                granted_by=granted_by,
                granted_at=now,
            )
        )
        return now

    async def register(self, session: AsyncSession, principal: Optional[str], caller: str) -> AuditEvent:
        await self.require_admin(session, caller)
        principal = require_principal(principal, "organization")
        if await self.is_organization(session, principal):
            raise AlreadyExists(f"Organization {principal} is already registered")
        now = self._assign(session, principal, Role.ORGANIZATION, caller)
        logger.info("Organization registered: %s by %s", principal, caller)
        return AuditEvent(
            event_type=AuditEventType.ORGANIZATION_REGISTERED,
            actor=caller,
            subject=principal,
            occurred_at=now,
        )

    async def batch_register(
        self, session: AsyncSession, principals: Iterable[Optional[str]], caller: str
    ) -> List[AuditEvent]:
        await self.require_admin(session, caller)
        batch = list(principals)
        if not 1 <= len(batch) <= self.max_batch_size:
            raise InvalidArgument(
                f"Batch must contain between 1 and {self.max_batch_size} principals"
            )
        events: List[AuditEvent] = []
        seen = set()
        for principal in batch:
            if (
                is_null_principal(principal)
                or len(principal) > MAX_PRINCIPAL_LENGTH
                or principal in seen
            ):
                continue
            seen.add(principal)
            if await self.is_organization(session, principal):
                continue
            now = self._assign(session, principal, Role.ORGANIZATION, caller)
            events.append(
                AuditEvent(
                    event_type=AuditEventType.ORGANIZATION_REGISTERED,
                    actor=caller,
                    subject=principal,
                    occurred_at=now,
                    details={"batch": True},
                )
            )
        logger.info(
            "Batch registration by %s: %d of %d registered", caller, len(events), len(batch)
        )
        return events

    async def ensure_admin(self, session: AsyncSession, principal: Optional[str]) -> Optional[AuditEvent]:
        """Grant the admin role outside the normal caller checks (bootstrap)."""
        principal = require_principal(principal, "admin")
        if await self.is_admin(session, principal):
            return None
        now = self._assign(session, principal, Role.ADMIN, None)
        logger.info("Admin bootstrapped: %s", principal)
        return AuditEvent(
            event_type=AuditEventType.ADMIN_BOOTSTRAPPED,
            actor="system",
            subject=principal,
            occurred_at=now,
        )

    async def list_organizations(self, session: AsyncSession) -> List[str]:
        rows = await session.scalars(
            select(RoleAssignment.principal)
            .where(RoleAssignment.role == Role.ORGANIZATION.value)
            .order_by(RoleAssignment.id)
        )
        return list(rows)
