"""
Admin endpoints: maintenance mode and audit log reads.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from ..errors import Unauthorized
from ..ledger import Ledger
from .dependencies import get_current_principal, get_ledger
from .models import AuditEventResponse, MutationResponse


admin_router = APIRouter(prefix="/admin", tags=["admin"])
record_audit_router = APIRouter(prefix="/records", tags=["admin"])


async def _require_admin(ledger: Ledger, user: Dict[str, Any]) -> None:
    if not await ledger.query.is_admin(user["id"]):
        raise Unauthorized("Admin role required")


@admin_router.post("/pause", response_model=MutationResponse)
async def pause(
    user: Dict[str, Any] = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    event = await ledger.gateway.pause(user["id"])
    return MutationResponse(status="paused", event_id=event.event_id, sequence=event.sequence)


@admin_router.post("/unpause", response_model=MutationResponse)
async def unpause(
    user: Dict[str, Any] = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    event = await ledger.gateway.unpause(user["id"])
    return MutationResponse(status="running", event_id=event.event_id, sequence=event.sequence)


@admin_router.get("/status")
async def status(
    _: Dict = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    paused = await ledger.query.is_paused()
    return {
        "paused": paused,
        "total_records": await ledger.query.get_total_record_count(),
        "organizations": len(await ledger.query.list_organizations()),
    }


@admin_router.get("/audit")
async def list_audit_events(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: Dict[str, Any] = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    await _require_admin(ledger, user)
    page = await ledger.query.list_audit_events(limit=limit, offset=offset)
    page["items"] = [AuditEventResponse(**e.to_dict()) for e in page["items"]]
    return page


@record_audit_router.get("/{record_id}/audit")
async def get_audit_trail(
    record_id: str,
    user: Dict[str, Any] = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    await _require_admin(ledger, user)
    events = await ledger.query.get_audit_trail(record_id)
    return {"items": [AuditEventResponse(**e.to_dict()) for e in events]}
