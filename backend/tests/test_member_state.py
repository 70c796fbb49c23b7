from __future__ import annotations

from datetime import datetime, timezone

import pytest

from memberdesk.schemas import Certificate, Member
from memberdesk.services.member_state import (
    certificate_expiry_for,
    format_card_date,
    make_certificate_id,
    member_status,
)

NOW = datetime(2025, 8, 1, tzinfo=timezone.utc)


def _member(status=None, expiry=None) -> Member:
    certificate = None
    if expiry is not None:
        certificate = Certificate(id="CERT123456", issued_date=datetime(2024, 6, 1, tzinfo=timezone.utc), expiry_date=expiry)
    return Member(id="MM001", name="Ravi", mobile="9876543210", status=status, certificate=certificate)


@pytest.mark.parametrize(
    ("status", "expiry", "expected"),
    [
        ("inactive", None, "Inactive"),
        ("inactive", datetime(2026, 5, 31, tzinfo=timezone.utc), "Inactive"),
        ("active", None, "Active"),
        (None, None, "Not Issued"),
        ("active", datetime(2025, 5, 31, tzinfo=timezone.utc), "Expired"),
        (None, datetime(2026, 5, 31, tzinfo=timezone.utc), "Active"),
    ],
)
def test_member_status_grid(status, expiry, expected) -> None:
    assert member_status(_member(status, expiry), NOW) == expected


def test_member_status_on_expiry_instant_is_still_active() -> None:
    expiry = datetime(2025, 5, 31, tzinfo=timezone.utc)

    assert member_status(_member("active", expiry), expiry) == "Active"


@pytest.mark.parametrize(
    "issued",
    [
        datetime(2025, 1, 1, tzinfo=timezone.utc),
        datetime(2025, 5, 31, tzinfo=timezone.utc),
        datetime(2025, 12, 31, 23, 59, tzinfo=timezone.utc),
    ],
)
def test_certificate_expiry_is_may_31_of_next_year(issued) -> None:
    assert certificate_expiry_for(issued) == datetime(2026, 5, 31, tzinfo=timezone.utc)


def test_certificate_id_uses_last_six_millisecond_digits() -> None:
    now = datetime.fromtimestamp(1_700_000_123.456, tz=timezone.utc)

    cert_id = make_certificate_id(now)

    assert cert_id.startswith("CERT")
    assert len(cert_id) == 10
    assert cert_id[4:].isdigit()


def test_format_card_date() -> None:
    assert format_card_date(datetime(1990, 1, 5, tzinfo=timezone.utc)) == "05-01-1990"
    assert format_card_date(None) == "N/A"
