from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..ledger import Ledger
from .dependencies import get_current_principal, get_ledger
from .models import BatchRegisterRequest, MutationResponse, RegisterOrganizationRequest


organizations_router = APIRouter(prefix="/organizations", tags=["organizations"])
principals_router = APIRouter(prefix="/principals", tags=["organizations"])


@organizations_router.post("", status_code=201, response_model=MutationResponse)
async def register_organization(
    payload: RegisterOrganizationRequest,
    user: Dict[str, Any] = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    event = await ledger.gateway.register_organization(payload.principal, user["id"])
    return MutationResponse(event_id=event.event_id, sequence=event.sequence)


@organizations_router.post("/batch")
async def batch_register_organizations(
    payload: BatchRegisterRequest,
    user: Dict[str, Any] = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    registered = await ledger.gateway.batch_register_organizations(
        payload.principals, user["id"]
    )
    return {"registered": registered, "skipped": len(payload.principals) - len(registered)}


@organizations_router.get("")
async def list_organizations(
    _: Dict = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    return {"organizations": await ledger.query.list_organizations()}


@organizations_router.get("/{principal}/records")
async def get_organization_records(
    principal: str,
    _: Dict = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    return {"record_ids": await ledger.query.get_organization_records(principal)}


@principals_router.get("/{principal}/roles")
async def get_roles(
    principal: str,
    _: Dict = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    return {
        "principal": principal,
        "is_admin": await ledger.query.is_admin(principal),
        "is_organization": await ledger.query.is_organization(principal),
    }
