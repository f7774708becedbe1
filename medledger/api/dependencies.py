from __future__ import annotations

from typing import Optional

from fastapi import HTTPException

from ..identity.auth import get_current_principal
from ..ledger import Ledger

_ledger: Optional[Ledger] = None


def configure_ledger_api(*, ledger: Ledger) -> None:
    global _ledger
    _ledger = ledger


def get_configured_ledger() -> Optional[Ledger]:
    return _ledger


def get_ledger() -> Ledger:
    if _ledger is None:
        raise HTTPException(status_code=503, detail="Ledger unavailable")
    return _ledger


__all__ = [
    "configure_ledger_api",
    "get_configured_ledger",
    "get_current_principal",
    "get_ledger",
]
