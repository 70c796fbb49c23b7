"""Notification endpoints."""
from fastapi import APIRouter, Depends, Response, status

from ..auth import get_current_admin_uid
from ..dependencies import get_store
from ..schemas import BroadcastRequest, NotificationCount, NotificationResponse
from ..services.document_store import DocumentStore
from ..use_cases.notifications import (
    delete_all_notifications_use_case,
    delete_notification_use_case,
    list_notifications_use_case,
    mark_notifications_as_read_use_case,
    send_bulk_notifications_use_case,
    send_certificate_reminder_use_case,
    send_expiry_reminders_use_case,
)

router = APIRouter(prefix="/notifications", tags=["notifications"], dependencies=[Depends(get_current_admin_uid)])


@router.get("", response_model=list[NotificationResponse])
def list_notifications(member_id: str, store: DocumentStore = Depends(get_store)):
    """Notifications of one member, newest first."""
    return list_notifications_use_case(store=store, member_id=member_id)


@router.post("/broadcast", response_model=NotificationCount)
def broadcast(data: BroadcastRequest, store: DocumentStore = Depends(get_store)):
    """Send one message to the selected members."""
    ids = send_bulk_notifications_use_case(store=store, member_ids=data.member_ids, message=data.message)
    return NotificationCount(count=len(ids))


@router.post("/reminders/sweep", response_model=NotificationCount)
def run_expiry_sweep(store: DocumentStore = Depends(get_store)):
    """Remind every member whose certificate expires soon."""
    return NotificationCount(count=send_expiry_reminders_use_case(store=store))


@router.post("/reminders/{member_id}", response_model=NotificationCount, status_code=status.HTTP_201_CREATED)
def send_reminder(member_id: str, store: DocumentStore = Depends(get_store)):
    """Remind one member that the certificate is expiring."""
    send_certificate_reminder_use_case(store=store, member_id=member_id)
    return NotificationCount(count=1)


@router.post("/read", response_model=NotificationCount)
def mark_read(member_id: str, store: DocumentStore = Depends(get_store)):
    """Mark all unread notifications of a member as read."""
    return NotificationCount(count=mark_notifications_as_read_use_case(store=store, member_id=member_id))


@router.delete("", response_model=NotificationCount)
def delete_all(member_id: str, store: DocumentStore = Depends(get_store)):
    """Delete all notifications of a member."""
    return NotificationCount(count=delete_all_notifications_use_case(store=store, member_id=member_id))


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(notification_id: str, store: DocumentStore = Depends(get_store)):
    delete_notification_use_case(store=store, notification_id=notification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
