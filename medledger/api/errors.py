"""Translation of ledger rejections into HTTP responses."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..errors import (
    AlreadyExists,
    InvalidArgument,
    LedgerError,
    NotFound,
    Paused,
    Unauthorized,
)

STATUS_CODES = {
    Unauthorized: 403,
    InvalidArgument: 400,
    NotFound: 404,
    AlreadyExists: 409,
    Paused: 503,
}


def status_for(exc: LedgerError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 400


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    return JSONResponse(
        status_code=status_for(exc),
        content={"error": exc.code, "detail": exc.message},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, ledger_error_handler)
