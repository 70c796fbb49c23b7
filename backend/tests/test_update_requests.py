from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from memberdesk.domain_errors import DomainError
from memberdesk.use_cases.members import get_member_use_case
from memberdesk.use_cases.notifications import list_notifications_use_case
from memberdesk.use_cases.update_requests import (
    approve_request_use_case,
    create_update_request_use_case,
    list_update_requests_use_case,
    reject_request_use_case,
)

NOW = datetime(2025, 9, 1, tzinfo=timezone.utc)


def test_create_accepts_camel_case_field_and_records_old_value(store, add_member) -> None:
    add_member("MM001", garage_name="Speed Garage")

    request = create_update_request_use_case(
        store=store, member_id="MM001", field="garageName", new_value="Speed Motors", now=NOW
    )

    assert request.field == "garage_name"
    assert request.old_value == "Speed Garage"
    assert request.status == "Pending"


def test_create_rejects_protected_field(store, add_member) -> None:
    add_member("MM001")

    with pytest.raises(DomainError) as exc:
        create_update_request_use_case(store=store, member_id="MM001", field="status", new_value="active")

    assert exc.value.code == "UPDATE_REQUEST_INVALID_FIELD"


def test_list_is_newest_first_with_current_photo(store, add_member) -> None:
    add_member("MM001", photo_url="https://example.test/old.png")
    create_update_request_use_case(store=store, member_id="MM001", field="name", new_value="Arjun", now=NOW)
    create_update_request_use_case(
        store=store, member_id="MM001", field="address", new_value="New address 123", now=NOW + timedelta(days=1)
    )
    store.update("members", "MM001", {"photo_url": "https://example.test/new.png"})

    requests = list_update_requests_use_case(store=store)

    assert [r.field for r in requests] == ["address", "name"]
    assert {r.member_photo_url for r in requests} == {"https://example.test/new.png"}


def test_approve_applies_value_removes_request_and_notifies(store, add_member) -> None:
    add_member("MM001")
    request = create_update_request_use_case(
        store=store, member_id="MM001", field="mobile", new_value="9123456789", now=NOW
    )

    approve_request_use_case(store=store, request_id=request.id, now=NOW)

    assert get_member_use_case(store=store, member_id="MM001").mobile == "9123456789"
    assert list_update_requests_use_case(store=store) == []
    [notification] = list_notifications_use_case(store=store, member_id="MM001")
    assert notification.type == "request_approved"
    assert notification.message == "Your request to update 'mobile' has been approved."
    assert notification.related_id == request.id


def test_approve_for_deleted_member_keeps_request(store, add_member) -> None:
    add_member("MM001")
    request = create_update_request_use_case(store=store, member_id="MM001", field="name", new_value="Bhavesh", now=NOW)
    store.delete("members", "MM001")

    with pytest.raises(DomainError) as exc:
        approve_request_use_case(store=store, request_id=request.id)

    assert exc.value.code == "MEMBER_NOT_FOUND"
    assert len(list_update_requests_use_case(store=store)) == 1


def test_reject_removes_request_and_names_association(store, add_member) -> None:
    add_member("MM001")
    request = create_update_request_use_case(store=store, member_id="MM001", field="name", new_value="Bhavesh", now=NOW)

    reject_request_use_case(store=store, request_id=request.id, now=NOW)

    assert get_member_use_case(store=store, member_id="MM001").name == "Member MM001"
    [notification] = list_notifications_use_case(store=store, member_id="MM001")
    assert notification.type == "request_rejected"
    assert "Mechanic Mitra Members Association Admin" in notification.message


def test_unknown_request(store) -> None:
    with pytest.raises(DomainError) as exc:
        reject_request_use_case(store=store, request_id="missing")

    assert exc.value.http_status == 404


def test_create_rejects_value_a_member_edit_would_reject(store, add_member) -> None:
    add_member("MM001")

    with pytest.raises(DomainError) as exc:
        create_update_request_use_case(store=store, member_id="MM001", field="dob", new_value="yesterday")

    assert exc.value.code == "VALIDATION_FAILED"
    assert exc.value.details["errors"][0]["field"] == "dob"
    assert list_update_requests_use_case(store=store) == []


def test_create_rejects_clearing_required_field(store, add_member) -> None:
    add_member("MM001")

    with pytest.raises(DomainError) as exc:
        create_update_request_use_case(store=store, member_id="MM001", field="garageName", new_value=None)

    assert exc.value.code == "VALIDATION_FAILED"


def test_create_stores_dob_as_utc(store, add_member) -> None:
    add_member("MM001")

    request = create_update_request_use_case(
        store=store, member_id="MM001", field="dob", new_value="1991-03-04T00:00:00", now=NOW
    )
    approve_request_use_case(store=store, request_id=request.id, now=NOW)

    assert get_member_use_case(store=store, member_id="MM001").dob == datetime(1991, 3, 4, tzinfo=timezone.utc)


def test_approve_refuses_stored_invalid_value_and_keeps_member_readable(store, add_member) -> None:
    add_member("MM001")
    request_id = store.add(
        "update-requests",
        {
            "member_id": "MM001",
            "member_name": "Member MM001",
            "field": "dob",
            "old_value": None,
            "new_value": "yesterday",
            "request_date": NOW,
            "status": "Pending",
        },
    )

    with pytest.raises(DomainError) as exc:
        approve_request_use_case(store=store, request_id=request_id, now=NOW)

    assert exc.value.code == "VALIDATION_FAILED"
    assert get_member_use_case(store=store, member_id="MM001").dob == datetime(1990, 1, 15, tzinfo=timezone.utc)
    assert [r.id for r in list_update_requests_use_case(store=store)] == [request_id]
    assert list_notifications_use_case(store=store, member_id="MM001") == []
