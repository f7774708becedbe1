from __future__ import annotations

from typing import Dict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..identity.auth import dev_issue_token, get_current_principal


auth_router = APIRouter(prefix="/auth", tags=["auth"])


class DevTokenRequest(BaseModel):
    principal: str


@auth_router.post("/dev-token")
async def dev_token(payload: DevTokenRequest):
    try:
        token = dev_issue_token(payload.principal)
    except PermissionError:
        raise HTTPException(status_code=404, detail="Not found")
    return {"token": token, "principal": payload.principal}


@auth_router.get("/me")
async def me(user: Dict = Depends(get_current_principal)):
    return {"id": user.get("id")}
