"""
Mutation gateway: the single write path into the ledger.

Every mutation runs under the write lock for its key, inside one database
transaction that also receives its audit events. Either the whole mutation
and its audit trail commit, or nothing does. Committed events are then
forwarded to the secondary audit sinks.
"""

from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..access.service import AccessGrantLedger
from ..audit.service import AuditEvent, AuditService
from ..audit.models import AuditEventType
from ..clock import Clock
from ..errors import InvalidArgument, LedgerError, Paused, Unauthorized
from ..monitoring.metrics import (
    audit_events_total,
    ledger_paused,
    mutation_duration,
    mutations_total,
)
from ..principals import is_null_principal, normalize_record_id
from ..records.service import RecordStore, load_ledger_state
from ..roles.service import RoleRegistry
from .locks import WriteLocks

logger = logging.getLogger(__name__)

T = TypeVar("T")

Apply = Callable[[AsyncSession], Awaitable[Tuple[T, List[AuditEvent]]]]


class MutationGateway:
    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        roles: RoleRegistry,
        records: RecordStore,
        access: AccessGrantLedger,
        audit: AuditService,
        clock: Clock,
        locks: Optional[WriteLocks] = None,
    ):
        self.session_maker = session_maker
        self.roles = roles
        self.records = records
        self.access = access
        self.audit = audit
        self.clock = clock
        self.locks = locks or WriteLocks()

    @staticmethod
    def _lock_key(record_id: Optional[str]) -> Optional[str]:
        # Malformed ids fall back to the exclusive lock; apply rejects them
        # after the pause check.
        try:
            return normalize_record_id(record_id) if record_id is not None else None
        except InvalidArgument:
            return None

    async def _mutate(
        self,
        operation: str,
        caller: Optional[str],
        apply: Apply,
        *,
        record_id: Optional[str] = None,
        check_paused: bool = True,
    ):
        started = time.perf_counter()
        events: List[AuditEvent] = []
        try:
            if is_null_principal(caller):
                raise Unauthorized("Missing caller identity")
            async with self.locks.hold(self._lock_key(record_id)):
                async with self.session_maker() as session:
                    async with session.begin():
                        if check_paused:
                            state = await load_ledger_state(session)
                            if state.paused:
                                raise Paused()
                        result, events = await apply(session)
                        for event in events:
                            await self.audit.append(session, event)
        except LedgerError as e:
            mutations_total.labels(operation=operation, result=e.code).inc()
            logger.warning("%s rejected for %s: %s", operation, caller, e.message)
            raise
        finally:
            mutation_duration.labels(operation=operation).observe(
                time.perf_counter() - started
            )

        mutations_total.labels(operation=operation, result="success").inc()
        for event in events:
            audit_events_total.labels(event_type=event.event_type.value).inc()
        await self.audit.publish(events)
        return result

    # Role registry

    async def register_organization(self, principal: Optional[str], caller: str) -> AuditEvent:
        async def apply(session: AsyncSession):
            event = await self.roles.register(session, principal, caller)
            return event, [event]

        return await self._mutate("register_organization", caller, apply)

    async def batch_register_organizations(
        self, principals: Sequence[Optional[str]], caller: str
    ) -> List[str]:
        async def apply(session: AsyncSession):
            events = await self.roles.batch_register(session, principals, caller)
            return [e.subject for e in events], events

        return await self._mutate("batch_register_organizations", caller, apply)

    async def bootstrap_admin(self, principal: str) -> bool:
        """Grant the admin role to ``principal`` if it does not hold it yet."""

        async def apply(session: AsyncSession):
            event = await self.roles.ensure_admin(session, principal)
            return event is not None, [event] if event else []

        return await self._mutate(
            "bootstrap_admin", "system", apply, check_paused=False
        )

    # Records

    async def create_record(
        self,
        patient_id: Optional[str],
        data_hash: Optional[str],
        data_location: Optional[str],
        caller: str,
    ) -> str:
        async def apply(session: AsyncSession):
            record, event = await self.records.create(
                session, patient_id, data_hash, data_location, caller
            )
            return record.record_id, [event]

        return await self._mutate("create_record", caller, apply)

    async def update_record(
        self,
        record_id: str,
        data_hash: Optional[str],
        data_location: Optional[str],
        caller: str,
    ) -> AuditEvent:
        async def apply(session: AsyncSession):
            rid = normalize_record_id(record_id)
            event = await self.records.update(session, rid, data_hash, data_location, caller)
            return event, [event]

        return await self._mutate("update_record", caller, apply, record_id=record_id)

    async def deactivate_record(self, record_id: str, caller: str) -> AuditEvent:
        async def apply(session: AsyncSession):
            rid = normalize_record_id(record_id)
            event = await self.records.deactivate(session, rid, caller)
            return event, [event]

        return await self._mutate("deactivate_record", caller, apply, record_id=record_id)

    # Access grants

    async def grant_access(self, record_id: str, organization: Optional[str], caller: str) -> AuditEvent:
        async def apply(session: AsyncSession):
            rid = normalize_record_id(record_id)
            event = await self.access.grant(session, rid, organization, caller)
            return event, [event]

        return await self._mutate("grant_access", caller, apply, record_id=record_id)

    async def revoke_access(self, record_id: str, organization: Optional[str], caller: str) -> AuditEvent:
        async def apply(session: AsyncSession):
            rid = normalize_record_id(record_id)
            event = await self.access.revoke(session, rid, organization, caller)
            return event, [event]

        return await self._mutate("revoke_access", caller, apply, record_id=record_id)

    # Maintenance mode

    async def pause(self, caller: str) -> AuditEvent:
        async def apply(session: AsyncSession):
            await self.roles.require_admin(session, caller)
            state = await load_ledger_state(session)
            if state.paused:
                raise Paused("Ledger is already paused")
            now = self.clock.now()
            state.paused = True
            state.paused_at = now
            state.paused_by = caller
            event = AuditEvent(
                event_type=AuditEventType.SYSTEM_PAUSED, actor=caller, occurred_at=now
            )
            return event, [event]

        event = await self._mutate("pause", caller, apply, check_paused=False)
        ledger_paused.set(1)
        logger.warning("Ledger paused by %s", caller)
        return event

    async def unpause(self, caller: str) -> AuditEvent:
        async def apply(session: AsyncSession):
            await self.roles.require_admin(session, caller)
            state = await load_ledger_state(session)
            if not state.paused:
                raise InvalidArgument("Ledger is not paused")
            now = self.clock.now()
            state.paused = False
            state.paused_at = None
            state.paused_by = None
            event = AuditEvent(
                event_type=AuditEventType.SYSTEM_UNPAUSED, actor=caller, occurred_at=now
            )
            return event, [event]

        event = await self._mutate("unpause", caller, apply, check_paused=False)
        ledger_paused.set(0)
        logger.info("Ledger unpaused by %s", caller)
        return event
