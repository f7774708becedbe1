"""
HTTP API for the ledger.

Thin FastAPI adapter: routes resolve the caller from the bearer token and
hand off to the mutation gateway or the query service.
"""

from .admin import admin_router, record_audit_router
from .auth import auth_router
from .dependencies import configure_ledger_api, get_current_principal, get_ledger
from .errors import install_error_handlers
from .organizations import organizations_router, principals_router
from .records import patients_router, records_router

__all__ = [
    "admin_router",
    "auth_router",
    "configure_ledger_api",
    "get_current_principal",
    "get_ledger",
    "install_error_handlers",
    "organizations_router",
    "patients_router",
    "principals_router",
    "record_audit_router",
    "records_router",
]
