from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..audit.service import AuditEvent
from ..ledger import Ledger
from .dependencies import get_current_principal, get_ledger
from .models import (
    AccessGrantResponse,
    CreateRecordRequest,
    GrantAccessRequest,
    MutationResponse,
    RecordResponse,
    UpdateRecordRequest,
)


records_router = APIRouter(prefix="/records", tags=["records"])
patients_router = APIRouter(prefix="/patients", tags=["patients"])


def _receipt(event: AuditEvent) -> MutationResponse:
    return MutationResponse(event_id=event.event_id, sequence=event.sequence)


@records_router.post("", status_code=201)
async def create_record(
    payload: CreateRecordRequest,
    user: Dict[str, Any] = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    record_id = await ledger.gateway.create_record(
        payload.patient_id, payload.data_hash, payload.data_location, user["id"]
    )
    return {"record_id": record_id}


@records_router.get("/count")
async def total_record_count(
    _: Dict = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    return {"count": await ledger.query.get_total_record_count()}


@records_router.get("/{record_id}", response_model=RecordResponse)
async def get_record(
    record_id: str,
    _: Dict = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    return await ledger.query.get_record(record_id)


@records_router.put("/{record_id}", response_model=MutationResponse)
async def update_record(
    record_id: str,
    payload: UpdateRecordRequest,
    user: Dict[str, Any] = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    event = await ledger.gateway.update_record(
        record_id, payload.data_hash, payload.data_location, user["id"]
    )
    return _receipt(event)


@records_router.delete("/{record_id}", response_model=MutationResponse)
async def deactivate_record(
    record_id: str,
    user: Dict[str, Any] = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    return _receipt(await ledger.gateway.deactivate_record(record_id, user["id"]))


@records_router.get("/{record_id}/access")
async def get_record_access(
    record_id: str,
    _: Dict = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    return {"organizations": await ledger.query.get_record_access(record_id)}


@records_router.get("/{record_id}/grants")
async def get_access_history(
    record_id: str,
    _: Dict = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    grants = await ledger.query.get_access_history(record_id)
    return {
        "items": [
            AccessGrantResponse.model_validate(g).model_dump(mode="json") for g in grants
        ]
    }


@records_router.get("/{record_id}/access/{principal}")
async def has_access(
    record_id: str,
    principal: str,
    _: Dict = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    return {"has_access": await ledger.query.has_access(record_id, principal)}


@records_router.post("/{record_id}/access", response_model=MutationResponse)
async def grant_access(
    record_id: str,
    payload: GrantAccessRequest,
    user: Dict[str, Any] = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    event = await ledger.gateway.grant_access(record_id, payload.organization, user["id"])
    return _receipt(event)


@records_router.delete("/{record_id}/access/{principal}", response_model=MutationResponse)
async def revoke_access(
    record_id: str,
    principal: str,
    user: Dict[str, Any] = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    event = await ledger.gateway.revoke_access(record_id, principal, user["id"])
    return _receipt(event)


@patients_router.get("/{patient_id}/records")
async def get_patient_records(
    patient_id: str,
    _: Dict = Depends(get_current_principal),
    ledger: Ledger = Depends(get_ledger),
):
    record_ids = await ledger.query.get_patient_records(patient_id)
    return {"record_ids": record_ids, "count": len(record_ids)}
