from prometheus_client import CollectorRegistry, Histogram, Gauge, Counter
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter
from fastapi.responses import Response

registry = CollectorRegistry()

mutations_total = Counter(
    "medledger_mutations_total",
    "Ledger mutations handled by the gateway",
    ["operation", "result"],
    registry=registry,
)

mutation_duration = Histogram(
    "medledger_mutation_duration_seconds",
    "Time spent applying a ledger mutation, lock wait included",
    ["operation"],
    registry=registry,
)

ledger_paused = Gauge(
    "medledger_paused",
    "1 while the ledger rejects writes",
    registry=registry,
)

audit_events_total = Counter(
    "medledger_audit_events_total",
    "Audit events committed to the durable log",
    ["event_type"],
    registry=registry,
)

metrics_router = APIRouter()


@metrics_router.get("/metrics")
async def get_metrics():
    return Response(generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
