import re

import pytest

from medledger.errors import InvalidArgument, NotFound, Unauthorized

from conftest import ADMIN, ORG_A, ORG_B, ORG_C, OUTSIDER, PATIENT, ZERO


async def test_create_record_scenario(orgs):
    record_id = await orgs.gateway.create_record(PATIENT, "H1", "ipfs://L1", ORG_A)

    assert re.fullmatch(r"0x[0-9a-f]{64}", record_id)
    assert await orgs.query.get_patient_record_count(PATIENT) == 1
    assert await orgs.query.get_total_record_count() == 1
    assert await orgs.query.has_access(record_id, ORG_A) is True
    assert await orgs.query.has_access(record_id, ORG_B) is False

    record = await orgs.query.get_record(record_id)
    assert record.patient_id == PATIENT
    assert record.created_by == ORG_A
    assert record.data_hash == "H1"
    assert record.data_location == "ipfs://L1"
    assert record.is_active is True
    assert record.created_at == record.last_updated_at


async def test_create_requires_organization_role(orgs):
    with pytest.raises(Unauthorized):
        await orgs.gateway.create_record(PATIENT, "H1", "ipfs://L1", OUTSIDER)
    # Admin is not implicitly an organization
    with pytest.raises(Unauthorized):
        await orgs.gateway.create_record(PATIENT, "H1", "ipfs://L1", ADMIN)
    assert await orgs.query.get_total_record_count() == 0


@pytest.mark.parametrize("patient", [ZERO, None, "", "   "])
async def test_create_rejects_null_patient(orgs, patient):
    with pytest.raises(InvalidArgument):
        await orgs.gateway.create_record(patient, "H1", "ipfs://L1", ORG_A)
    assert await orgs.query.get_total_record_count() == 0


@pytest.mark.parametrize(
    "data_hash,data_location",
    [("", "ipfs://L1"), ("H1", ""), ("x" * 257, "ipfs://L1"), ("H1", "y" * 257)],
)
async def test_create_rejects_bad_content_fields(orgs, data_hash, data_location):
    with pytest.raises(InvalidArgument):
        await orgs.gateway.create_record(PATIENT, data_hash, data_location, ORG_A)


async def test_content_fields_at_limit_accepted(orgs):
    record_id = await orgs.gateway.create_record(PATIENT, "x" * 256, "y" * 256, ORG_A)
    record = await orgs.query.get_record(record_id)
    assert len(record.data_hash) == 256


async def test_update_by_grantee(orgs, record_id):
    await orgs.gateway.grant_access(record_id, ORG_B, ORG_A)
    event = await orgs.gateway.update_record(record_id, "H2", "ipfs://L2", ORG_B)
    assert event.event_type.value == "RecordUpdated"
    assert event.details["previous_data_hash"] == "H1"

    record = await orgs.query.get_record(record_id)
    assert record.data_hash == "H2"
    assert record.data_location == "ipfs://L2"


async def test_update_without_access_rejected(orgs, record_id):
    with pytest.raises(Unauthorized):
        await orgs.gateway.update_record(record_id, "H2", "ipfs://L2", ORG_B)
    record = await orgs.query.get_record(record_id)
    assert record.data_hash == "H1"


async def test_update_validates_content(orgs, record_id):
    with pytest.raises(InvalidArgument):
        await orgs.gateway.update_record(record_id, "", "ipfs://L2", ORG_A)


async def test_update_unknown_record(orgs):
    with pytest.raises(NotFound):
        await orgs.gateway.update_record("0x" + "ab" * 32, "H2", "ipfs://L2", ORG_A)


async def test_malformed_record_id_rejected(orgs):
    with pytest.raises(InvalidArgument):
        await orgs.gateway.update_record("not-a-record", "H2", "ipfs://L2", ORG_A)
    with pytest.raises(InvalidArgument):
        await orgs.query.get_record("0x1234")


async def test_record_id_lookup_is_case_insensitive(orgs, record_id):
    record = await orgs.query.get_record(record_id.upper().replace("0X", "0x"))
    assert record.record_id == record_id


async def test_deactivate_by_creator(orgs, record_id):
    await orgs.gateway.grant_access(record_id, ORG_B, ORG_A)
    await orgs.gateway.deactivate_record(record_id, ORG_A)

    record = await orgs.query.get_record(record_id)
    assert record.is_active is False
    assert await orgs.query.has_access(record_id, ORG_A) is False
    assert await orgs.query.has_access(record_id, ORG_B) is False
    assert await orgs.query.get_total_record_count() == 0
    assert await orgs.query.get_patient_records(PATIENT) == []


async def test_deactivate_twice_is_not_found(orgs, record_id):
    await orgs.gateway.deactivate_record(record_id, ORG_A)
    with pytest.raises(NotFound):
        await orgs.gateway.deactivate_record(record_id, ORG_A)


async def test_deactivate_by_admin(orgs, record_id):
    await orgs.gateway.deactivate_record(record_id, ADMIN)
    assert (await orgs.query.get_record(record_id)).is_active is False


async def test_grantee_cannot_deactivate(orgs, record_id):
    await orgs.gateway.grant_access(record_id, ORG_B, ORG_A)
    with pytest.raises(Unauthorized):
        await orgs.gateway.deactivate_record(record_id, ORG_B)
    assert (await orgs.query.get_record(record_id)).is_active is True


async def test_inactive_record_rejects_all_writes(orgs, record_id):
    await orgs.gateway.register_organization(ORG_C, ADMIN)
    await orgs.gateway.deactivate_record(record_id, ORG_A)
    with pytest.raises(NotFound):
        await orgs.gateway.update_record(record_id, "H2", "ipfs://L2", ORG_A)
    with pytest.raises(NotFound):
        await orgs.gateway.grant_access(record_id, ORG_C, ORG_A)
    with pytest.raises(NotFound):
        await orgs.gateway.revoke_access(record_id, ORG_B, ORG_A)


async def test_patient_records_listed_in_creation_order(orgs):
    first = await orgs.gateway.create_record(PATIENT, "H1", "ipfs://L1", ORG_A)
    second = await orgs.gateway.create_record(PATIENT, "H2", "ipfs://L2", ORG_B)
    await orgs.gateway.create_record(OUTSIDER, "H3", "ipfs://L3", ORG_B)

    assert await orgs.query.get_patient_records(PATIENT) == [first, second]
    assert await orgs.query.get_patient_record_count(PATIENT) == 2
    assert await orgs.query.get_total_record_count() == 3
