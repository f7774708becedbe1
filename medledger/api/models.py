from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RegisterOrganizationRequest(BaseModel):
    principal: str


class BatchRegisterRequest(BaseModel):
    principals: List[Optional[str]]


class CreateRecordRequest(BaseModel):
    patient_id: Optional[str] = None
    data_hash: str
    data_location: str


class UpdateRecordRequest(BaseModel):
    data_hash: str
    data_location: str


class GrantAccessRequest(BaseModel):
    organization: str


class RecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    record_id: str
    patient_id: str
    created_by: str
    created_at: datetime
    last_updated_at: datetime
    data_hash: str
    data_location: str
    is_active: bool


class AccessGrantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    organization: str
    granted_by: str
    granted_at: datetime
    revoked_at: Optional[datetime] = None
    revoked_by: Optional[str] = None
    is_revoked: bool


class AuditEventResponse(BaseModel):
    sequence: Optional[int]
    event_id: str
    type: str
    category: str
    record_id: Optional[str] = None
    actor: str
    subject: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    ts: str


class MutationResponse(BaseModel):
    status: str = "ok"
    event_id: str
    sequence: Optional[int] = None
