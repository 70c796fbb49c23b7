from __future__ import annotations

from datetime import datetime, timezone

import pytest

from memberdesk.domain_errors import DomainError
from memberdesk.schemas import MemberUpdate
from memberdesk.services.document_store import DocumentStoreError
from memberdesk.use_cases.members import (
    create_member_use_case,
    delete_member_use_case,
    delete_members_use_case,
    get_member_use_case,
    list_members_page_use_case,
    next_member_id,
    set_member_status_use_case,
    set_members_status_use_case,
    update_member_use_case,
)


def _payload(**overrides):
    payload = {
        "name": "Ravi Kumar",
        "mobile": "9876543210",
        "address": "12 Workshop Road, Pune",
        "blood_group": "B+",
        "garage_name": "Speed Garage",
        "dob": "1990-01-05T00:00:00Z",
        "photo_url": "data:image/png;base64,AAAA",
        "documents": {"aadhar": "data:application/pdf;base64,AAAA", "pan": None, "passport": "x"},
        "tags": ["founder"],
    }
    payload.update(overrides)
    return payload


def test_first_member_gets_mm001_and_derived_email(store, identity) -> None:
    member = create_member_use_case(store=store, identity=identity, payload=_payload())

    assert member.id == "MM001"
    assert member.email == "mm001@mechanicmitra.in"
    assert member.status == "active"
    assert member.certificate is None
    assert member.documents == {"aadhar": "data:application/pdf;base64,AAAA"}
    assert identity.accounts["MM001"]["email"] == "mm001@mechanicmitra.in"
    assert identity.accounts["MM001"]["password"] == "mechanicmitra"
    assert store.get("members", "MM001").get("mobile") == "9876543210"


def test_next_id_follows_last_member(store, add_member) -> None:
    add_member("MM007")
    add_member("MM002")

    assert next_member_id(store=store) == "MM008"


def test_unparsable_last_id_is_a_conflict(store, add_member) -> None:
    add_member("ZZ-legacy")

    with pytest.raises(DomainError) as exc:
        next_member_id(store=store)

    assert exc.value.code == "MEMBER_ID_CONFLICT"


def test_duplicate_mobile_is_rejected_before_account_creation(store, identity, add_member) -> None:
    add_member("MM001", mobile="9876543210")

    with pytest.raises(DomainError) as exc:
        create_member_use_case(store=store, identity=identity, payload=_payload())

    assert exc.value.code == "MEMBER_MOBILE_EXISTS"
    assert exc.value.http_status == 409
    assert exc.value.message == "A member with this mobile number already exists."
    assert not any(call[0] == "create" for call in identity.calls)


def test_invalid_payload_is_a_validation_error(store, identity) -> None:
    with pytest.raises(DomainError) as exc:
        create_member_use_case(store=store, identity=identity, payload=_payload(mobile="12345"))

    assert exc.value.code == "VALIDATION_FAILED"
    assert exc.value.details["errors"][0]["field"] == "mobile"


def test_identity_not_ready_aborts_creation(store, identity) -> None:
    identity.ready_error = DomainError(code="IDENTITY_NOT_CONFIGURED", http_status=500, message="missing")

    with pytest.raises(DomainError) as exc:
        create_member_use_case(store=store, identity=identity, payload=_payload())

    assert exc.value.code == "IDENTITY_NOT_CONFIGURED"
    assert store.get("members", "MM001") is None


def test_account_failure_writes_no_document(store, identity) -> None:
    identity.fail_create = True

    with pytest.raises(DomainError) as exc:
        create_member_use_case(store=store, identity=identity, payload=_payload())

    assert exc.value.code == "IDENTITY_ACCOUNT_FAILED"
    assert store.get("members", "MM001") is None


def test_document_failure_rolls_back_account(store, identity, monkeypatch) -> None:
    def broken_set(*_args, **_kwargs):
        raise DocumentStoreError("disk full")

    monkeypatch.setattr(store, "set", broken_set)

    with pytest.raises(DocumentStoreError):
        create_member_use_case(store=store, identity=identity, payload=_payload())

    assert "MM001" not in identity.accounts
    assert ("delete", "MM001") in identity.calls


def test_update_merges_document_slots_and_syncs_display_name(store, identity, add_member) -> None:
    add_member("MM001", documents={"aadhar": "data:a", "dl": "data:d"})

    member = update_member_use_case(
        store=store,
        identity=identity,
        member_id="MM001",
        changes=MemberUpdate(name="Ravi K", documents={"dl": None, "pan": "data:p"}),
    )

    assert member.name == "Ravi K"
    assert member.documents == {"aadhar": "data:a", "pan": "data:p"}
    assert identity.accounts["MM001"]["display_name"] == "Ravi K"


def test_update_does_not_push_data_uri_photo_to_identity(store, identity, add_member) -> None:
    add_member("MM001")

    update_member_use_case(
        store=store, identity=identity, member_id="MM001", changes=MemberUpdate(photo_url="data:image/png;base64,AA")
    )

    assert not any(call == ("update", "MM001") for call in identity.calls)
    assert store.get("members", "MM001").get("photo_url") == "data:image/png;base64,AA"


def test_update_survives_identity_failure(store, identity, add_member) -> None:
    add_member("MM001")
    identity.fail_update = True

    member = update_member_use_case(
        store=store, identity=identity, member_id="MM001", changes=MemberUpdate(name="New Name")
    )

    assert member.name == "New Name"


def test_update_rejects_mobile_of_another_member(store, identity, add_member) -> None:
    add_member("MM001", mobile="9000000001")
    add_member("MM002", mobile="9000000002")

    with pytest.raises(DomainError) as exc:
        update_member_use_case(
            store=store, identity=identity, member_id="MM002", changes=MemberUpdate(mobile="9000000001")
        )

    assert exc.value.code == "MEMBER_MOBILE_EXISTS"


def test_status_change_disables_account(store, identity, add_member) -> None:
    add_member("MM001")

    set_member_status_use_case(store=store, identity=identity, member_id="MM001", status="inactive")

    assert get_member_use_case(store=store, member_id="MM001").status == "inactive"
    assert identity.accounts["MM001"]["disabled"] is True


def test_bulk_status_is_all_or_nothing(store, identity, add_member) -> None:
    add_member("MM001")

    with pytest.raises(DomainError) as exc:
        set_members_status_use_case(
            store=store, identity=identity, member_ids=["MM001", "MM404"], status="inactive"
        )

    assert exc.value.code == "MEMBER_NOT_FOUND"
    assert exc.value.details == {"member_id": "MM404"}
    assert get_member_use_case(store=store, member_id="MM001").status == "active"


def test_bulk_status_commits_even_when_identity_is_down(store, identity, add_member) -> None:
    add_member("MM001")
    add_member("MM002")
    identity.fail_update = True

    set_members_status_use_case(store=store, identity=identity, member_ids=["MM001", "MM002"], status="inactive")

    assert get_member_use_case(store=store, member_id="MM001").status == "inactive"
    assert get_member_use_case(store=store, member_id="MM002").status == "inactive"
    assert identity.accounts["MM001"]["disabled"] is False
    assert ("update", "MM002") in identity.calls


def test_delete_member_tolerates_missing_account(store, identity, add_member) -> None:
    add_member("MM001")
    del identity.accounts["MM001"]

    delete_member_use_case(store=store, identity=identity, member_id="MM001")

    assert store.get("members", "MM001") is None


def test_delete_unknown_member_is_not_found(store, identity) -> None:
    with pytest.raises(DomainError) as exc:
        delete_member_use_case(store=store, identity=identity, member_id="MM404")

    assert exc.value.http_status == 404


def test_bulk_delete_reports_identity_counts(store, identity, add_member) -> None:
    add_member("MM001")
    add_member("MM002")
    del identity.accounts["MM002"]

    assert delete_members_use_case(store=store, identity=identity, member_ids=["MM001", "MM002"]) == (1, 1)
    assert store.get("members", "MM001") is None
    assert store.get("members", "MM002") is None


def test_bulk_delete_keeps_documents_deleted_when_identity_fails(store, identity, add_member) -> None:
    add_member("MM001")
    identity.fail_bulk_delete = True

    assert delete_members_use_case(store=store, identity=identity, member_ids=["MM001"]) == (0, 1)
    assert store.get("members", "MM001") is None


def test_member_page_cursor(store, add_member) -> None:
    for n in range(1, 6):
        add_member(f"MM00{n}")

    first, cursor, has_more = list_members_page_use_case(store=store, limit=2)
    assert [m.id for m in first] == ["MM001", "MM002"]
    assert (cursor, has_more) == ("MM002", True)

    last, cursor, has_more = list_members_page_use_case(store=store, after="MM004", limit=2)
    assert [m.id for m in last] == ["MM005"]
    assert (cursor, has_more) == (None, False)


def test_stored_dob_is_utc(store, identity) -> None:
    member = create_member_use_case(
        store=store, identity=identity, payload=_payload(dob=datetime(1990, 1, 5, 12, 0))
    )

    assert member.dob == datetime(1990, 1, 5, 12, 0, tzinfo=timezone.utc)
