"""
Service container wiring the ledger components together.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from .access.service import AccessGrantLedger
from .audit.service import AuditService, LoggingAuditSink, MemoryAuditSink
from .clock import Clock, SystemClock
from .config import LedgerSettings
from .database import create_engine_for, create_session_maker, init_schema
from .gateway.locks import WriteLocks
from .gateway.service import MutationGateway
from .monitoring.metrics import ledger_paused
from .query.service import QueryService
from .records.service import RecordStore, load_ledger_state
from .roles.service import RoleRegistry

logger = logging.getLogger(__name__)


class Ledger:
    def __init__(
        self,
        settings: Optional[LedgerSettings] = None,
        *,
        engine: Optional[AsyncEngine] = None,
        clock: Optional[Clock] = None,
    ):
        self.settings = settings or LedgerSettings.from_env()
        self.engine = engine or create_engine_for(
            self.settings.database_url, dev_mode=self.settings.dev_mode
        )
        self.session_maker = create_session_maker(self.engine)
        self.clock = clock or SystemClock()

        self.memory_sink = MemoryAuditSink(limit=self.settings.audit_buffer_limit)
        self.audit = AuditService([LoggingAuditSink(), self.memory_sink])
        self.roles = RoleRegistry(self.clock, max_batch_size=self.settings.max_batch_size)
        self.access = AccessGrantLedger(self.clock, self.roles)
        self.records = RecordStore(
            self.clock,
            self.roles,
            self.access,
            max_field_length=self.settings.max_field_length,
        )
        self.gateway = MutationGateway(
            self.session_maker,
            self.roles,
            self.records,
            self.access,
            self.audit,
            self.clock,
            locks=WriteLocks(self.settings.write_lock_mode),
        )
        self.query = QueryService(
            self.session_maker, self.roles, self.records, self.access, self.audit
        )
        self._started = False

    async def start(self) -> None:
        if self._started:
            return
        if self.settings.db_init:
            await init_schema(self.engine)
        async with self.session_maker() as session:
            async with session.begin():
                state = await load_ledger_state(session)
                ledger_paused.set(1 if state.paused else 0)
        if self.settings.admin_principal:
            await self.gateway.bootstrap_admin(self.settings.admin_principal)
        self._started = True
        logger.info("Ledger started (write lock mode: %s)", self.settings.write_lock_mode)

    async def stop(self) -> None:
        await self.engine.dispose()
        self._started = False
        logger.info("Ledger stopped")
