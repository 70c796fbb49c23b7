"""Helpers for member documents: status derivation and certificate dates."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from ..config import settings
from ..schemas import Member, MemberResponse
from .document_store import DocumentSnapshot


MEMBERS_COLLECTION = "members"

STATUS_ACTIVE = "Active"
STATUS_INACTIVE = "Inactive"
STATUS_EXPIRED = "Expired"
STATUS_NOT_ISSUED = "Not Issued"

CERTIFICATE_EXPIRY_MONTH = 5
CERTIFICATE_EXPIRY_DAY = 31


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    return as_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


def certificate_expiry_for(issued: datetime) -> datetime:
    """Certificates run out on May 31 of the year after issue."""
    return datetime(issued.year + 1, CERTIFICATE_EXPIRY_MONTH, CERTIFICATE_EXPIRY_DAY, tzinfo=timezone.utc)


def make_certificate_id(now: datetime) -> str:
    millis = str(int(now.timestamp() * 1000))
    return f"{settings.CERTIFICATE_ID_PREFIX}{millis[-6:]}"


def member_status(member: Member, now: Optional[datetime] = None) -> str:
    """Display status of a member at `now`.

    An explicit ``inactive`` flag wins. Without a certificate a member with
    ``status=active`` counts as active, one with no status at all as not
    issued. With a certificate the expiry date decides.
    """
    if member.status == "inactive":
        return STATUS_INACTIVE
    if member.certificate is None:
        return STATUS_ACTIVE if member.status == "active" else STATUS_NOT_ISSUED
    current = as_utc(now) if now is not None else utc_now()
    if current > as_utc(member.certificate.expiry_date):
        return STATUS_EXPIRED
    return STATUS_ACTIVE


def member_from_snapshot(snapshot: DocumentSnapshot) -> Member:
    data = dict(snapshot.data)
    data["id"] = snapshot.id
    return Member.model_validate(data)


def to_member_response(member: Member, now: Optional[datetime] = None) -> MemberResponse:
    return MemberResponse(**member.model_dump(), derived_status=member_status(member, now))


def format_card_date(value: Optional[datetime]) -> str:
    """dd-MM-yyyy as printed on certificates and cards, N/A when missing."""
    if value is None:
        return "N/A"
    return as_utc(value).strftime("%d-%m-%Y")
