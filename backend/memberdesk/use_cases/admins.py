"""Admin profile use-cases."""
from __future__ import annotations

from typing import Optional

from ..schemas import AdminProfile, AdminProfileUpdate
from ..services.document_store import DocumentStore

ADMINS_COLLECTION = "admins"


def get_admin_profile_use_case(*, store: DocumentStore, uid: str) -> Optional[AdminProfile]:
    snapshot = store.get(ADMINS_COLLECTION, uid)
    if snapshot is None:
        return None
    return AdminProfile.model_validate({**snapshot.data, "uid": snapshot.id})


def update_admin_profile_use_case(*, store: DocumentStore, uid: str, changes: AdminProfileUpdate) -> AdminProfile:
    """Merge-upsert; fields not sent are left as stored."""
    fields = changes.model_dump(exclude_unset=True)
    store.set(ADMINS_COLLECTION, uid, fields, merge=True)
    return get_admin_profile_use_case(store=store, uid=uid) or AdminProfile(uid=uid)
