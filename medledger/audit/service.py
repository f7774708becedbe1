"""
Audit log for ledger mutations.

The durable log is the ``audit_log`` table, appended inside the same
transaction as the mutation it describes, so an event exists if and only if
its mutation committed. After commit the gateway forwards each event to the
secondary sinks (structured log lines, an in-memory buffer for quick
inspection). Sinks can be swapped or added without touching the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence
import json
import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import AuditEventType, AuditLogEntry, EVENT_CATEGORIES


logger = logging.getLogger(__name__)


@dataclass
class AuditEvent:
    event_type: AuditEventType
    actor: str
    occurred_at: datetime
    record_id: Optional[str] = None
    subject: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    sequence: Optional[int] = None

    @property
    def category(self) -> str:
        return EVENT_CATEGORIES[self.event_type].value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence": self.sequence,
            "event_id": self.event_id,
            "type": self.event_type.value,
            "category": self.category,
            "record_id": self.record_id,
            "actor": self.actor,
            "subject": self.subject,
            "details": dict(self.details),
            "ts": self.occurred_at.isoformat(),
        }

    @classmethod
    def from_entry(cls, entry: AuditLogEntry) -> "AuditEvent":
        return cls(
            event_type=AuditEventType(entry.event_type),
            actor=entry.actor,
            occurred_at=entry.occurred_at,
            record_id=entry.record_id,
            subject=entry.subject,
            details=dict(entry.details or {}),
            event_id=entry.event_id,
            sequence=entry.sequence,
        )


class AuditSink(Protocol):
    async def emit(self, event: AuditEvent) -> None: ...


class LoggingAuditSink:
    """Writes one ``audit_event=<json>`` line per event.

    Patient identifiers are masked; the durable table keeps them.
    """

    SENSITIVE_KEYS = {"patient", "patient_id", "data_hash", "data_location"}

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    @classmethod
    def _sanitize(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for k, v in data.items():
            if str(k).lower() in cls.SENSITIVE_KEYS:
                out[k] = "[REDACTED]"
            elif isinstance(v, dict):
                out[k] = cls._sanitize(v)
            else:
                out[k] = v
        return out

    async def emit(self, event: AuditEvent) -> None:
        payload = event.to_dict()
        payload["details"] = self._sanitize(payload["details"])
        if event.event_type == AuditEventType.RECORD_CREATED:
            payload["subject"] = "[REDACTED]"
        self._log.info("audit_event=%s", json.dumps(payload, separators=(",", ":")))


class MemoryAuditSink:
    """Bounded buffer of the most recent events."""

    def __init__(self, limit: int = 1000) -> None:
        self.limit = limit
        self.events: List[AuditEvent] = []

    async def emit(self, event: AuditEvent) -> None:
        self.events.append(event)
        if len(self.events) > self.limit:
            del self.events[: len(self.events) - self.limit]


class AuditService:
    def __init__(self, sinks: Optional[Sequence[AuditSink]] = None) -> None:
        self.sinks: List[AuditSink] = list(sinks or [])

    async def append(self, session: AsyncSession, event: AuditEvent) -> AuditEvent:
        """Stage ``event`` in the caller's transaction and assign its sequence."""
        entry = AuditLogEntry(
            event_id=event.event_id,
            event_type=event.event_type.value,
            category=event.category,
            record_id=event.record_id,
            actor=event.actor,
            subject=event.subject,
            occurred_at=event.occurred_at,
            details=dict(event.details),
        )
        session.add(entry)
        await session.flush()
        event.sequence = entry.sequence
        return event

    async def publish(self, events: Sequence[AuditEvent]) -> None:
        """Forward committed events to the secondary sinks, in order.

        A failing sink is logged and skipped; the durable record already
        exists, so one broken sink must not block the others.
        """
        for event in events:
            for sink in self.sinks:
                try:
                    await sink.emit(event)
                except Exception:  # noqa: BLE001
                    logger.exception(
                        "audit sink %s failed for event %s",
                        type(sink).__name__,
                        event.event_id,
                    )

    async def list_events(
        self, session: AsyncSession, limit: int = 100, offset: int = 0
    ) -> dict:
        total = await session.scalar(select(func.count()).select_from(AuditLogEntry))
        rows = await session.scalars(
            select(AuditLogEntry)
            .order_by(AuditLogEntry.sequence.desc())
            .offset(offset)
            .limit(limit)
        )
        return {
            "items": [AuditEvent.from_entry(r) for r in rows],
            "total": int(total or 0),
            "limit": limit,
            "offset": offset,
        }

    async def record_trail(self, session: AsyncSession, record_id: str) -> List[AuditEvent]:
        rows = await session.scalars(
            select(AuditLogEntry)
            .where(AuditLogEntry.record_id == record_id)
            .order_by(AuditLogEntry.sequence)
        )
        return [AuditEvent.from_entry(r) for r in rows]
