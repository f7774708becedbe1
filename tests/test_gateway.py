import asyncio

import pytest

from medledger.audit.models import AuditEventType
from medledger.errors import InvalidArgument, Paused, Unauthorized
from medledger.gateway.locks import WriteLocks
from medledger.ledger import Ledger
from medledger.monitoring.metrics import registry

from conftest import ADMIN, ORG_A, ORG_B, PATIENT, FrozenClock, make_settings


async def test_pause_blocks_writes_but_not_reads(orgs, record_id):
    await orgs.gateway.pause(ADMIN)
    assert await orgs.query.is_paused() is True

    with pytest.raises(Paused):
        await orgs.gateway.create_record(PATIENT, "H2", "ipfs://L2", ORG_A)
    with pytest.raises(Paused):
        await orgs.gateway.update_record(record_id, "H2", "ipfs://L2", ORG_A)
    with pytest.raises(Paused):
        await orgs.gateway.grant_access(record_id, ORG_B, ORG_A)
    with pytest.raises(Paused):
        await orgs.gateway.revoke_access(record_id, ORG_B, ORG_A)
    with pytest.raises(Paused):
        await orgs.gateway.deactivate_record(record_id, ORG_A)

    record = await orgs.query.get_record(record_id)
    assert record.data_hash == "H1"
    assert await orgs.query.get_total_record_count() == 1

    await orgs.gateway.unpause(ADMIN)
    assert await orgs.query.is_paused() is False
    await orgs.gateway.update_record(record_id, "H2", "ipfs://L2", ORG_A)


async def test_pause_is_admin_only(orgs):
    with pytest.raises(Unauthorized):
        await orgs.gateway.pause(ORG_A)
    await orgs.gateway.pause(ADMIN)
    with pytest.raises(Unauthorized):
        await orgs.gateway.unpause(ORG_A)


async def test_pause_toggle_state_errors(ledger):
    with pytest.raises(InvalidArgument):
        await ledger.gateway.unpause(ADMIN)
    await ledger.gateway.pause(ADMIN)
    with pytest.raises(Paused):
        await ledger.gateway.pause(ADMIN)


async def test_pause_survives_restart(tmp_path):
    first = Ledger(make_settings(tmp_path))
    await first.start()
    await first.gateway.pause(ADMIN)
    await first.stop()

    second = Ledger(make_settings(tmp_path))
    await second.start()
    try:
        assert await second.query.is_paused() is True
    finally:
        await second.stop()


async def test_missing_caller_is_unauthorized(orgs):
    with pytest.raises(Unauthorized):
        await orgs.gateway.create_record(PATIENT, "H1", "ipfs://L1", "")


def _rejections(operation, result):
    value = registry.get_sample_value(
        "medledger_mutations_total", {"operation": operation, "result": result}
    )
    return value or 0.0


async def test_malformed_record_id_rejected_with_paused_while_paused(orgs):
    await orgs.gateway.pause(ADMIN)
    before = _rejections("update_record", "paused")
    with pytest.raises(Paused):
        await orgs.gateway.update_record("bogus", "H2", "ipfs://L2", ORG_A)
    with pytest.raises(Paused):
        await orgs.gateway.revoke_access("bogus", ORG_B, ORG_A)
    assert _rejections("update_record", "paused") == before + 1


async def test_malformed_record_id_is_counted_as_rejection(orgs):
    before = _rejections("grant_access", "invalid_argument")
    with pytest.raises(InvalidArgument):
        await orgs.gateway.grant_access("0x1234", ORG_B, ORG_A)
    assert _rejections("grant_access", "invalid_argument") == before + 1


async def test_one_audit_event_per_mutation(orgs, record_id):
    await orgs.gateway.grant_access(record_id, ORG_B, ORG_A)
    await orgs.gateway.update_record(record_id, "H2", "ipfs://L2", ORG_B)
    await orgs.gateway.revoke_access(record_id, ORG_B, ORG_A)
    await orgs.gateway.deactivate_record(record_id, ORG_A)

    trail = await orgs.query.get_audit_trail(record_id)
    assert [e.event_type for e in trail] == [
        AuditEventType.RECORD_CREATED,
        AuditEventType.ACCESS_GRANTED,
        AuditEventType.RECORD_UPDATED,
        AuditEventType.ACCESS_REVOKED,
        AuditEventType.RECORD_DEACTIVATED,
    ]
    sequences = [e.sequence for e in trail]
    assert sequences == sorted(sequences)
    assert trail[0].actor == ORG_A
    assert trail[0].subject == PATIENT
    assert trail[2].actor == ORG_B


async def test_rejected_mutation_writes_no_audit_event(orgs, record_id):
    before = (await orgs.query.list_audit_events())["total"]
    with pytest.raises(Unauthorized):
        await orgs.gateway.update_record(record_id, "H2", "ipfs://L2", ORG_B)
    assert (await orgs.query.list_audit_events())["total"] == before


async def test_audit_listing_is_newest_first(orgs, record_id):
    page = await orgs.query.list_audit_events(limit=2)
    assert page["limit"] == 2
    # bootstrap admin, two registrations, one creation
    assert page["total"] == 4
    assert [e.event_type for e in page["items"]] == [
        AuditEventType.RECORD_CREATED,
        AuditEventType.ORGANIZATION_REGISTERED,
    ]


async def test_committed_events_reach_secondary_sinks(orgs, record_id):
    types = [e.event_type for e in orgs.memory_sink.events]
    assert types[-1] == AuditEventType.RECORD_CREATED
    assert orgs.memory_sink.events[-1].record_id == record_id


async def test_failure_mid_mutation_leaves_no_partial_state(orgs, monkeypatch):
    async def broken_append(session, event):
        raise RuntimeError("audit store unavailable")

    monkeypatch.setattr(orgs.audit, "append", broken_append)
    with pytest.raises(RuntimeError):
        await orgs.gateway.create_record(PATIENT, "H1", "ipfs://L1", ORG_A)
    monkeypatch.undo()

    assert await orgs.query.get_total_record_count() == 0
    assert await orgs.query.get_organization_records(ORG_A) == []
    # Nonce allocation rolled back too; the next creation still succeeds
    record_id = await orgs.gateway.create_record(PATIENT, "H1", "ipfs://L1", ORG_A)
    assert await orgs.query.get_patient_records(PATIENT) == [record_id]


async def test_concurrent_creations_get_unique_ids(tmp_path):
    ledger = Ledger(make_settings(tmp_path), clock=FrozenClock())
    await ledger.start()
    try:
        await ledger.gateway.register_organization(ORG_A, ADMIN)
        ids = await asyncio.gather(
            *[
                ledger.gateway.create_record(PATIENT, "H", "ipfs://L", ORG_A)
                for _ in range(25)
            ]
        )
        assert len(set(ids)) == 25
        assert await ledger.query.get_patient_record_count(PATIENT) == 25
    finally:
        await ledger.stop()


async def test_concurrent_grants_allow_only_one(orgs, record_id):
    results = await asyncio.gather(
        *[orgs.gateway.grant_access(record_id, ORG_B, ORG_A) for _ in range(5)],
        return_exceptions=True,
    )
    successes = [r for r in results if not isinstance(r, Exception)]
    assert len(successes) == 1
    assert await orgs.query.get_record_access(record_id) == [ORG_A, ORG_B]


async def test_record_locks_serialize_same_record():
    locks = WriteLocks("record")
    order = []

    async def writer(name, key, delay):
        async with locks.hold(key):
            order.append(f"{name}:start")
            await asyncio.sleep(delay)
            order.append(f"{name}:end")

    await asyncio.gather(writer("a", "r1", 0.02), writer("b", "r1", 0))
    assert order == ["a:start", "a:end", "b:start", "b:end"]


async def test_record_locks_let_different_records_overlap():
    locks = WriteLocks("record")
    order = []

    async def writer(name, key, delay):
        async with locks.hold(key):
            order.append(f"{name}:start")
            await asyncio.sleep(delay)
            order.append(f"{name}:end")

    await asyncio.gather(writer("a", "r1", 0.02), writer("b", "r2", 0))
    assert order.index("b:start") < order.index("a:end")


async def test_exclusive_waits_for_record_writers():
    locks = WriteLocks("record")
    order = []

    async def record_writer():
        async with locks.hold("r1"):
            order.append("record:start")
            await asyncio.sleep(0.02)
            order.append("record:end")

    async def exclusive_writer():
        await asyncio.sleep(0)
        async with locks.hold():
            order.append("exclusive")

    await asyncio.gather(record_writer(), exclusive_writer())
    assert order == ["record:start", "record:end", "exclusive"]


def test_unknown_lock_mode_rejected():
    with pytest.raises(ValueError):
        WriteLocks("table")
