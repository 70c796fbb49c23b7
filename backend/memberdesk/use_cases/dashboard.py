"""Dashboard aggregates over the member list."""
from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Iterable, Optional

from ..schemas import DashboardSummary, Member
from ..services.document_store import DocumentStore
from ..services.member_state import (
    STATUS_ACTIVE,
    STATUS_EXPIRED,
    STATUS_INACTIVE,
    STATUS_NOT_ISSUED,
    member_status,
)
from .members import list_all_members
from .update_requests import UPDATE_REQUESTS_COLLECTION

BLOOD_GROUPS = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")
STATUSES = (STATUS_ACTIVE, STATUS_EXPIRED, STATUS_INACTIVE, STATUS_NOT_ISSUED)


def dashboard_summary(
    members: Iterable[Member], pending_requests: int, now: Optional[datetime] = None
) -> DashboardSummary:
    members = list(members)
    statuses = Counter(member_status(member, now) for member in members)
    blood_groups = Counter(member.blood_group for member in members if member.blood_group)

    return DashboardSummary(
        total_members=len(members),
        active_members=statuses[STATUS_ACTIVE],
        expired_members=statuses[STATUS_EXPIRED],
        pending_requests=pending_requests,
        blood_group_distribution={group: blood_groups[group] for group in BLOOD_GROUPS},
        status_distribution={status: statuses[status] for status in STATUSES},
    )


def dashboard_summary_use_case(*, store: DocumentStore, now: Optional[datetime] = None) -> DashboardSummary:
    pending = store.query(UPDATE_REQUESTS_COLLECTION).where("status", "==", "Pending").get()
    return dashboard_summary(list_all_members(store=store), pending.size, now)
