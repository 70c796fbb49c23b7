"""Member endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import HTMLResponse

from ..auth import get_current_admin_uid
from ..config import settings
from ..dependencies import get_identity, get_member_cache, get_store
from ..schemas import (
    BulkDeleteRequest,
    BulkStatusRequest,
    Certificate,
    MemberCacheView,
    MemberCreate,
    MemberPage,
    MemberResponse,
    MemberStatusUpdate,
    MemberUpdate,
    ToastResponse,
)
from ..services.card_render import certificate_print_document, id_card_print_document
from ..services.document_store import DocumentStore
from ..services.identity import IdentityProvider
from ..services.layout import CERTIFICATE, ID_CARD
from ..services.member_cache import MemberCache
from ..services.member_state import to_member_response
from ..use_cases.certificates import generate_certificate_use_case
from ..use_cases.layouts import load_layout_use_case
from ..use_cases.members import (
    create_member_use_case,
    get_member_use_case,
    list_members_page_use_case,
    update_member_use_case,
)

router = APIRouter(prefix="/members", tags=["members"], dependencies=[Depends(get_current_admin_uid)])
logger = logging.getLogger(__name__)


def _cache_view(cache: MemberCache) -> MemberCacheView:
    return MemberCacheView(
        members=[to_member_response(member) for member in cache.members],
        loading=cache.loading,
        has_more=cache.has_more,
        is_fetching_more=cache.is_fetching_more,
        is_initialized=cache.is_initialized,
        processing_ids=sorted(cache.processing_ids),
        toasts=[ToastResponse.model_validate(toast) for toast in cache.toasts.recent()],
    )


@router.get("", response_model=MemberCacheView)
async def list_members(cache: MemberCache = Depends(get_member_cache)):
    """Members loaded so far (live first page plus fetched pages)."""
    await cache.init()
    return _cache_view(cache)


@router.post("/fetch-more", response_model=MemberCacheView)
async def fetch_more_members(cache: MemberCache = Depends(get_member_cache)):
    """Load the next page into the cache."""
    await cache.init()
    await cache.fetch_more()
    return _cache_view(cache)


@router.get("/page", response_model=MemberPage)
def get_members_page(
    after: Optional[str] = None,
    limit: int = Query(default=settings.MEMBER_PAGE_SIZE, ge=1, le=200),
    store: DocumentStore = Depends(get_store),
):
    """One-shot cursor pagination ordered by member id."""
    members, next_cursor, has_more = list_members_page_use_case(store=store, after=after, limit=limit)
    return MemberPage(
        items=[to_member_response(member) for member in members],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.post("", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
def create_member(
    data: MemberCreate,
    store: DocumentStore = Depends(get_store),
    identity: IdentityProvider = Depends(get_identity),
):
    """Create member with its login account."""
    member = create_member_use_case(store=store, identity=identity, payload=data)
    return to_member_response(member)


@router.post("/bulk/status", response_model=ToastResponse)
async def bulk_set_status(data: BulkStatusRequest, cache: MemberCache = Depends(get_member_cache)):
    """Set status of several members at once."""
    return await cache.set_members_status(data.member_ids, data.status)


@router.post("/bulk/delete", response_model=ToastResponse)
async def bulk_delete(data: BulkDeleteRequest, cache: MemberCache = Depends(get_member_cache)):
    """Delete several members at once."""
    return await cache.delete_members(data.member_ids)


@router.get("/{member_id}", response_model=MemberResponse)
def get_member(member_id: str, store: DocumentStore = Depends(get_store)):
    """Get member by id."""
    return to_member_response(get_member_use_case(store=store, member_id=member_id))


@router.patch("/{member_id}", response_model=MemberResponse)
def update_member(
    member_id: str,
    data: MemberUpdate,
    store: DocumentStore = Depends(get_store),
    identity: IdentityProvider = Depends(get_identity),
):
    """Edit member fields."""
    member = update_member_use_case(store=store, identity=identity, member_id=member_id, changes=data)
    return to_member_response(member)


@router.delete("/{member_id}", response_model=ToastResponse)
async def delete_member(member_id: str, cache: MemberCache = Depends(get_member_cache)):
    """Delete member and its login account."""
    return await cache.delete_member(member_id)


@router.put("/{member_id}/status", response_model=ToastResponse)
async def set_status(member_id: str, data: MemberStatusUpdate, cache: MemberCache = Depends(get_member_cache)):
    """Activate or deactivate member."""
    return await cache.set_member_status(member_id, data.status)


@router.post("/{member_id}/certificate", response_model=Certificate)
def generate_certificate(member_id: str, store: DocumentStore = Depends(get_store)):
    """Issue a new certificate."""
    get_member_use_case(store=store, member_id=member_id)
    return generate_certificate_use_case(store=store, member_id=member_id)


@router.post("/{member_id}/certificate/renew", response_model=ToastResponse)
async def renew_certificate(member_id: str, cache: MemberCache = Depends(get_member_cache)):
    """Renew certificate (issues one if the member has none)."""
    return await cache.renew_member_certificate(member_id)


@router.get("/{member_id}/certificate/print", response_class=HTMLResponse)
def print_certificate(member_id: str, store: DocumentStore = Depends(get_store)):
    """Printable A4 certificate page."""
    member = get_member_use_case(store=store, member_id=member_id)
    layout = load_layout_use_case(store=store, kind=CERTIFICATE)
    return HTMLResponse(certificate_print_document(member, layout))


@router.get("/{member_id}/id-card/print", response_class=HTMLResponse)
def print_id_card(member_id: str, store: DocumentStore = Depends(get_store)):
    """Printable ID card (front and back)."""
    member = get_member_use_case(store=store, member_id=member_id)
    layout = load_layout_use_case(store=store, kind=ID_CARD)
    return HTMLResponse(id_card_print_document(member, layout))
