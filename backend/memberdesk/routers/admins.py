"""Admin profile endpoints."""
from fastapi import APIRouter, Depends

from ..auth import get_current_admin_uid
from ..dependencies import get_store
from ..schemas import AdminProfile, AdminProfileUpdate
from ..services.document_store import DocumentStore
from ..use_cases.admins import get_admin_profile_use_case, update_admin_profile_use_case

router = APIRouter(prefix="/admins", tags=["admins"])


@router.get("/me", response_model=AdminProfile)
def get_my_profile(
    current_uid: str = Depends(get_current_admin_uid),
    store: DocumentStore = Depends(get_store),
):
    """Get profile of the signed-in admin."""
    return get_admin_profile_use_case(store=store, uid=current_uid) or AdminProfile(uid=current_uid)


@router.put("/me", response_model=AdminProfile)
def update_my_profile(
    data: AdminProfileUpdate,
    current_uid: str = Depends(get_current_admin_uid),
    store: DocumentStore = Depends(get_store),
):
    """Update profile; omitted fields keep their values."""
    return update_admin_profile_use_case(store=store, uid=current_uid, changes=data)
