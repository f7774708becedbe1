"""
Medledger: access-control ledger for pointers to encrypted healthcare records.
"""

from .errors import (
    AlreadyExists,
    AlreadyGranted,
    InvalidArgument,
    LedgerError,
    NotFound,
    NotGranted,
    Paused,
    Unauthorized,
)

__all__ = [
    "AlreadyExists",
    "AlreadyGranted",
    "InvalidArgument",
    "LedgerError",
    "NotFound",
    "NotGranted",
    "Paused",
    "Unauthorized",
]
