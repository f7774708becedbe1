"""
Domain exceptions for the access-control ledger.

Services raise these; the API layer maps them to HTTP responses. Every
rejection is local, synchronous and final: a failed call leaves all state
unchanged and is never retried internally.
"""

from __future__ import annotations

from typing import Optional


class LedgerError(Exception):
    """Base exception for every ledger rejection.

    Carries a human-readable message and a machine-readable ``code`` so
    callers can surface both.
    """

    code = "ledger_error"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class Unauthorized(LedgerError):
    """Role or access-grant check failed for the calling principal."""

    code = "unauthorized"


class InvalidArgument(LedgerError):
    """Malformed, oversized or empty input, or a self-referential operation."""

    code = "invalid_argument"


class NotFound(LedgerError):
    """Record or grant does not exist, or the record is inactive."""

    code = "not_found"


class NotGranted(NotFound):
    code = "not_granted"


class AlreadyExists(LedgerError):
    """Duplicate registration or duplicate live grant."""

    code = "already_exists"


class AlreadyGranted(AlreadyExists):
    code = "already_granted"


class Paused(LedgerError):
    """The ledger is in maintenance mode and rejects writes."""

    code = "paused"

    def __init__(self, message: str = "Ledger is paused; writes are disabled"):
        super().__init__(message)
