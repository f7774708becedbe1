"""
Principal and input validation helpers shared by the ledger services.
"""

from __future__ import annotations

import re
from typing import Optional

from .errors import InvalidArgument

MAX_PRINCIPAL_LENGTH = 255

_ZERO_ADDRESS = re.compile(r"^0x0+$", re.IGNORECASE)
_RECORD_ID = re.compile(r"^0x[0-9a-fA-F]{64}$")


def is_null_principal(principal: Optional[str]) -> bool:
    """True for ``None``, blank strings and zero-address equivalents."""
    if principal is None:
        return True
    p = principal.strip()
    return not p or bool(_ZERO_ADDRESS.match(p))


def require_principal(principal: Optional[str], field: str = "principal") -> str:
    if principal is None or is_null_principal(principal):
        raise InvalidArgument(f"Invalid {field}: null identity")
    if len(principal) > MAX_PRINCIPAL_LENGTH:
        raise InvalidArgument(
            f"Invalid {field}: longer than {MAX_PRINCIPAL_LENGTH} characters"
        )
    return principal


def require_text(value: Optional[str], field: str, max_length: int) -> str:
    if value is None or len(value) == 0:
        raise InvalidArgument(f"{field} must not be empty")
    if len(value) > max_length:
        raise InvalidArgument(f"{field} must be at most {max_length} characters")
    return value


def normalize_record_id(record_id: Optional[str]) -> str:
    """Validate a caller-supplied record id (``0x`` + 64 hex chars)."""
    if not record_id or not _RECORD_ID.match(record_id):
        raise InvalidArgument(
            "Invalid record id: expected 0x followed by 64 hex characters"
        )
    return record_id.lower()
