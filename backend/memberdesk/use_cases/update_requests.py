"""Review of member-submitted profile change requests."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError

from ..config import settings
from ..domain_errors import DomainError, member_not_found
from ..schemas import MemberUpdate, UpdateRequestResponse
from ..services.document_store import DESCENDING, DocumentNotFoundError, DocumentSnapshot, DocumentStore
from ..services.member_state import MEMBERS_COLLECTION, as_utc, utc_now
from .members import _REQUIRED_FIELDS, _validation_failed, get_member_use_case
from .notifications import NOTIFICATIONS_COLLECTION, notification_document

logger = logging.getLogger(__name__)

UPDATE_REQUESTS_COLLECTION = "update-requests"

UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "mobile",
        "address",
        "blood_group",
        "garage_name",
        "photo_url",
        "aadhar_number",
        "driving_license_number",
        "dob",
    }
)

# Member apps may still submit camelCase field names.
FIELD_ALIASES = {
    "bloodGroup": "blood_group",
    "garageName": "garage_name",
    "photoUrl": "photo_url",
    "aadharNumber": "aadhar_number",
    "drivingLicenseNumber": "driving_license_number",
}


def normalize_field(field: str) -> str:
    name = FIELD_ALIASES.get(field, field)
    if name not in UPDATABLE_FIELDS:
        raise DomainError(
            code="UPDATE_REQUEST_INVALID_FIELD",
            http_status=422,
            message=f"Field '{field}' cannot be changed through an update request",
            details={"field": field},
        )
    return name


def parse_new_value(field: str, new_value: Any) -> Any:
    """Check a requested value against the same rules as a direct member edit."""
    if new_value is None and field in _REQUIRED_FIELDS:
        raise DomainError(
            code="VALIDATION_FAILED",
            http_status=422,
            message="Member data is invalid",
            details={"errors": [{"field": field, "message": "Field cannot be cleared"}]},
        )
    try:
        changes = MemberUpdate.model_validate({field: new_value})
    except ValidationError as exc:
        raise _validation_failed(exc) from exc
    value = getattr(changes, field)
    if isinstance(value, datetime):
        value = as_utc(value)
    return value


def _get_request_or_404(*, store: DocumentStore, request_id: str) -> UpdateRequestResponse:
    snapshot = store.get(UPDATE_REQUESTS_COLLECTION, request_id)
    if snapshot is None:
        raise DomainError(
            code="UPDATE_REQUEST_NOT_FOUND",
            http_status=404,
            message="Update request not found",
            details={"request_id": request_id},
        )
    return _to_response(snapshot)


def _to_response(snapshot: DocumentSnapshot) -> UpdateRequestResponse:
    return UpdateRequestResponse.model_validate({**snapshot.data, "id": snapshot.id})


def create_update_request_use_case(
    *,
    store: DocumentStore,
    member_id: str,
    field: str,
    new_value: Any,
    now: Optional[datetime] = None,
) -> UpdateRequestResponse:
    name = normalize_field(field)
    new_value = parse_new_value(name, new_value)
    member = get_member_use_case(store=store, member_id=member_id)
    old_value = getattr(member, name)
    doc = {
        "member_id": member.id,
        "member_name": member.name,
        "member_photo_url": member.photo_url,
        "field": name,
        "old_value": old_value,
        "new_value": new_value,
        "request_date": now or utc_now(),
        "status": "Pending",
    }
    request_id = store.add(UPDATE_REQUESTS_COLLECTION, doc)
    return _get_request_or_404(store=store, request_id=request_id)


def list_update_requests_use_case(*, store: DocumentStore) -> list[UpdateRequestResponse]:
    """Pending requests, newest first, with the member's current photo."""
    snapshot = store.query(UPDATE_REQUESTS_COLLECTION).order_by("request_date", DESCENDING).get()
    requests = [_to_response(doc) for doc in snapshot]

    photos: dict[str, str] = {}
    for member_id in {request.member_id for request in requests}:
        member = store.get(MEMBERS_COLLECTION, member_id)
        if member is not None:
            photos[member_id] = member.get("photo_url") or ""

    for request in requests:
        if request.member_id in photos:
            request.member_photo_url = photos[request.member_id]
    return requests


def approve_request_use_case(*, store: DocumentStore, request_id: str, now: Optional[datetime] = None) -> None:
    """Apply the requested value and drop the request atomically, then notify."""
    request = _get_request_or_404(store=store, request_id=request_id)
    field = normalize_field(request.field)
    value = parse_new_value(field, request.new_value)

    batch = store.batch()
    batch.update(MEMBERS_COLLECTION, request.member_id, {field: value})
    batch.delete(UPDATE_REQUESTS_COLLECTION, request.id)
    try:
        batch.commit()
    except DocumentNotFoundError as exc:
        raise member_not_found(request.member_id) from exc

    store.add(
        NOTIFICATIONS_COLLECTION,
        notification_document(
            member_id=request.member_id,
            message=f"Your request to update '{request.field}' has been approved.",
            type="request_approved",
            now=now or utc_now(),
            related_id=request.id,
        ),
    )
    logger.info("Update request approved request_id=%s member_id=%s", request.id, request.member_id)


def reject_request_use_case(*, store: DocumentStore, request_id: str, now: Optional[datetime] = None) -> None:
    request = _get_request_or_404(store=store, request_id=request_id)
    store.delete(UPDATE_REQUESTS_COLLECTION, request.id)
    store.add(
        NOTIFICATIONS_COLLECTION,
        notification_document(
            member_id=request.member_id,
            message=(
                f"Your request to update '{request.field}' was rejected. "
                f"Contact the {settings.ASSOCIATION_NAME} Admin for more details."
            ),
            type="request_rejected",
            now=now or utc_now(),
            related_id=request.id,
        ),
    )
    logger.info("Update request rejected request_id=%s member_id=%s", request.id, request.member_id)
