"""Notification use-cases (admin side is append-only plus housekeeping)."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from ..config import settings
from ..domain_errors import DomainError
from ..schemas import NotificationResponse
from ..services.document_store import DESCENDING, DocumentSnapshot, DocumentStore, WriteBatch
from ..services.member_state import as_utc, utc_now
from .members import get_member_use_case, list_all_members

logger = logging.getLogger(__name__)

NOTIFICATIONS_COLLECTION = "notifications"

CERTIFICATE_REMINDER_MESSAGE = "Your membership certificate is expiring soon. Please contact the admin to renew it."


def notification_document(
    *,
    member_id: str,
    message: str,
    type: str,
    now: datetime,
    related_id: Optional[str] = None,
) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "member_id": member_id,
        "message": message,
        "type": type,
        "created_at": now,
        "is_read": False,
    }
    if related_id is not None:
        doc["related_id"] = related_id
    return doc


def _to_response(snapshot: DocumentSnapshot) -> NotificationResponse:
    return NotificationResponse.model_validate({**snapshot.data, "id": snapshot.id})


def _queue(store: DocumentStore, batch: WriteBatch, doc: dict[str, Any]) -> str:
    notification_id = store.new_id()
    batch.set(NOTIFICATIONS_COLLECTION, notification_id, doc)
    return notification_id


def send_certificate_reminder_use_case(
    *, store: DocumentStore, member_id: str, now: Optional[datetime] = None
) -> str:
    member = get_member_use_case(store=store, member_id=member_id)
    doc = notification_document(
        member_id=member_id,
        message=CERTIFICATE_REMINDER_MESSAGE,
        type="certificate_reminder",
        now=now or utc_now(),
        related_id=member.certificate.id if member.certificate else None,
    )
    notification_id = store.add(NOTIFICATIONS_COLLECTION, doc)
    logger.info("Certificate reminder sent member_id=%s", member_id)
    return notification_id


def send_bulk_notifications_use_case(
    *, store: DocumentStore, member_ids: list[str], message: str, now: Optional[datetime] = None
) -> list[str]:
    """Broadcast one message to many members in a single batch."""
    sent_at = now or utc_now()
    batch = store.batch()
    ids = [
        _queue(store, batch, notification_document(member_id=member_id, message=message, type="broadcast", now=sent_at))
        for member_id in member_ids
    ]
    batch.commit()
    logger.info("Broadcast sent recipients=%s", len(ids))
    return ids


def list_notifications_use_case(*, store: DocumentStore, member_id: str) -> list[NotificationResponse]:
    snapshot = (
        store.query(NOTIFICATIONS_COLLECTION)
        .where("member_id", "==", member_id)
        .order_by("created_at", DESCENDING)
        .get()
    )
    return [_to_response(doc) for doc in snapshot]


def mark_notifications_as_read_use_case(*, store: DocumentStore, member_id: str) -> int:
    snapshot = (
        store.query(NOTIFICATIONS_COLLECTION)
        .where("member_id", "==", member_id)
        .where("is_read", "==", False)
        .get()
    )
    batch = store.batch()
    for doc in snapshot:
        batch.update(NOTIFICATIONS_COLLECTION, doc.id, {"is_read": True})
    batch.commit()
    return snapshot.size


def delete_notification_use_case(*, store: DocumentStore, notification_id: str) -> None:
    if store.get(NOTIFICATIONS_COLLECTION, notification_id) is None:
        raise DomainError(
            code="NOTIFICATION_NOT_FOUND",
            http_status=404,
            message="Notification not found",
            details={"notification_id": notification_id},
        )
    store.delete(NOTIFICATIONS_COLLECTION, notification_id)


def delete_all_notifications_use_case(*, store: DocumentStore, member_id: str) -> int:
    snapshot = store.query(NOTIFICATIONS_COLLECTION).where("member_id", "==", member_id).get()
    batch = store.batch()
    for doc in snapshot:
        batch.delete(NOTIFICATIONS_COLLECTION, doc.id)
    batch.commit()
    return snapshot.size


def send_expiry_reminders_use_case(
    *, store: DocumentStore, now: Optional[datetime] = None, within_days: Optional[int] = None
) -> int:
    """Remind members whose certificate expires within the window.

    A member gets at most one reminder per certificate term: reminders tied
    to the certificate id and created after its current issue date count as
    already sent.
    """
    current = as_utc(now) if now is not None else utc_now()
    horizon = current + timedelta(days=within_days if within_days is not None else settings.CERTIFICATE_REMINDER_DAYS)

    batch = store.batch()
    for member in list_all_members(store=store):
        certificate = member.certificate
        if certificate is None or member.status == "inactive":
            continue
        expiry = as_utc(certificate.expiry_date)
        if not (current <= expiry <= horizon):
            continue
        previous = (
            store.query(NOTIFICATIONS_COLLECTION)
            .where("member_id", "==", member.id)
            .where("type", "==", "certificate_reminder")
            .where("related_id", "==", certificate.id)
            .get()
        )
        issued = as_utc(certificate.issued_date)
        if any(_to_response(doc).created_at >= issued for doc in previous):
            continue
        _queue(
            store,
            batch,
            notification_document(
                member_id=member.id,
                message=CERTIFICATE_REMINDER_MESSAGE,
                type="certificate_reminder",
                now=current,
                related_id=certificate.id,
            ),
        )

    sent = len(batch)
    batch.commit()
    logger.info("Expiry reminder sweep sent=%s horizon=%s", sent, horizon.isoformat())
    return sent
