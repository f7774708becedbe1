"""
Identity for ledger callers.

Every request carries an HS256 bearer token whose ``sub`` claim is the
calling principal. Role checks happen in the ledger services, not here:
this module only establishes *who* is calling.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import os
import logging

import jwt
from fastapi import Header, HTTPException

from ..config import LedgerSettings, env_bool
from ..principals import is_null_principal

logger = logging.getLogger(__name__)

TOKEN_TYPE = "principal"


class AuthManager:
    """JWT issuer/verifier for principals."""

    def __init__(self, jwt_secret: str):
        if not jwt_secret or jwt_secret == "change-this-secret":
            logger.warning(
                "Using default/weak JWT secret. Set JWT_SECRET in production."
            )
        self.jwt_secret = jwt_secret

    def generate_token(self, principal: str, expires_minutes: int = 15) -> str:
        now = datetime.now(tz=timezone.utc)
        payload = {
            "sub": principal,
            "type": TOKEN_TYPE,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
            "jti": os.urandom(8).hex(),
        }
        return jwt.encode(payload, self.jwt_secret, algorithm="HS256")

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        try:
            return jwt.decode(token, self.jwt_secret, algorithms=["HS256"])
        except jwt.ExpiredSignatureError:
            logger.info("JWT expired")
            return None
        except jwt.InvalidTokenError as e:  # noqa: PERF203
            logger.info("Invalid JWT: %s", e)
            return None


# Global accessors (simple service locator for app wiring)
_AUTH_MANAGER: Optional[AuthManager] = None


def get_auth_manager() -> AuthManager:
    global _AUTH_MANAGER
    if _AUTH_MANAGER is None:
        _AUTH_MANAGER = AuthManager(LedgerSettings.from_env().jwt_secret)
    return _AUTH_MANAGER


async def get_current_principal(
    authorization: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    """FastAPI dependency resolving the caller from the bearer token.

    Returns a dict: {"id": str, "claims": Dict}
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=401, detail="Missing or invalid Authorization header"
        )

    token = authorization.split(" ", 1)[1]
    claims = get_auth_manager().verify_token(token)
    if not claims or claims.get("type") != TOKEN_TYPE:
        raise HTTPException(status_code=401, detail="Invalid token")
    principal = claims.get("sub")
    if not isinstance(principal, str) or is_null_principal(principal):
        raise HTTPException(status_code=401, detail="Invalid token subject")

    return {"id": principal, "claims": claims}


def dev_mode_enabled() -> bool:
    return env_bool("DEV_MODE")


def dev_issue_token(principal: str) -> str:
    """Issue a short-lived token for any principal (local/dev usage only)."""
    if not dev_mode_enabled():
        raise PermissionError("Dev login disabled")
    return get_auth_manager().generate_token(principal, expires_minutes=30)
