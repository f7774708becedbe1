import os
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from medledger.config import LedgerSettings
from medledger.identity.auth import get_auth_manager
from medledger.ledger import Ledger

# HS256 keys shorter than 32 bytes trigger PyJWT key-length warnings
os.environ.setdefault("JWT_SECRET", "medledger-test-secret-0123456789abcdef")


ADMIN = "0x1000000000000000000000000000000000000001"
ORG_A = "0xa000000000000000000000000000000000000001"
ORG_B = "0xb000000000000000000000000000000000000002"
ORG_C = "0xc000000000000000000000000000000000000003"
PATIENT = "0x5000000000000000000000000000000000000005"
OUTSIDER = "0xe000000000000000000000000000000000000009"
ZERO = "0x0000000000000000000000000000000000000000"


class FrozenClock:
    """Clock that always returns the same instant."""

    def __init__(self, at=None):
        self.at = at or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self):
        return self.at


def make_settings(tmp_path, **overrides) -> LedgerSettings:
    values = dict(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        dev_mode=True,
        admin_principal=ADMIN,
    )
    values.update(overrides)
    return LedgerSettings(**values)


@pytest_asyncio.fixture
async def ledger(tmp_path):
    svc = Ledger(make_settings(tmp_path))
    await svc.start()
    try:
        yield svc
    finally:
        await svc.stop()


@pytest_asyncio.fixture
async def orgs(ledger):
    """Ledger with ORG_A and ORG_B registered by the admin."""
    await ledger.gateway.register_organization(ORG_A, ADMIN)
    await ledger.gateway.register_organization(ORG_B, ADMIN)
    return ledger


@pytest_asyncio.fixture
async def record_id(orgs):
    return await orgs.gateway.create_record(PATIENT, "H1", "ipfs://L1", ORG_A)


def auth_header(principal: str) -> dict:
    return {"Authorization": f"Bearer {get_auth_manager().generate_token(principal)}"}


@pytest.fixture
def client(tmp_path):
    from medledger.api import configure_ledger_api
    from medledger.main import app

    configure_ledger_api(ledger=Ledger(make_settings(tmp_path)))
    with TestClient(app) as c:
        yield c
