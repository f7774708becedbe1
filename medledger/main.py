from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
from datetime import datetime, timezone

from .api import (
    admin_router,
    auth_router,
    configure_ledger_api,
    install_error_handlers,
    organizations_router,
    patients_router,
    principals_router,
    record_audit_router,
    records_router,
)
from .api.dependencies import get_configured_ledger
from .config import LedgerSettings
from .ledger import Ledger
from .monitoring.metrics import metrics_router


class AddTraceIdFilter(logging.Filter):
    def filter(self, record):
        if not hasattr(record, "trace_id"):
            record.trace_id = "system"
        return True


settings = LedgerSettings.from_env()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - trace_id=%(trace_id)s - %(message)s",
)
for _handler in logging.getLogger().handlers:
    _handler.addFilter(AddTraceIdFilter())
logger = logging.getLogger("medledger.core")

VERSION = "1.0.0"

app = FastAPI(
    title="Medledger Access-Control Ledger",
    version=VERSION,
    docs_url=None,
    redoc_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)
app.include_router(auth_router)
app.include_router(organizations_router)
app.include_router(principals_router)
app.include_router(records_router)
app.include_router(record_audit_router)
app.include_router(patients_router)
app.include_router(admin_router)
app.include_router(metrics_router)


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
        "version": VERSION,
    }


@app.on_event("startup")
async def startup_event():
    logger.info("Medledger starting")
    ledger = get_configured_ledger()
    if ledger is None:
        ledger = Ledger(settings)
        configure_ledger_api(ledger=ledger)
    await ledger.start()
    logger.info("Ledger services started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Medledger shutting down")
    ledger = get_configured_ledger()
    if ledger is not None:
        await ledger.stop()
