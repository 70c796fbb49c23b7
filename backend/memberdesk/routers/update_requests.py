"""Update request review endpoints."""
from fastapi import APIRouter, Depends, Response, status

from ..auth import get_current_admin_uid
from ..dependencies import get_store
from ..schemas import UpdateRequestCreate, UpdateRequestResponse
from ..services.document_store import DocumentStore
from ..use_cases.update_requests import (
    approve_request_use_case,
    create_update_request_use_case,
    list_update_requests_use_case,
    reject_request_use_case,
)

router = APIRouter(prefix="/update-requests", tags=["update-requests"], dependencies=[Depends(get_current_admin_uid)])


@router.get("", response_model=list[UpdateRequestResponse])
def list_update_requests(store: DocumentStore = Depends(get_store)):
    """Pending requests, newest first."""
    return list_update_requests_use_case(store=store)


@router.post("", response_model=UpdateRequestResponse, status_code=status.HTTP_201_CREATED)
def create_update_request(data: UpdateRequestCreate, store: DocumentStore = Depends(get_store)):
    """Record a change request on behalf of a member."""
    return create_update_request_use_case(
        store=store,
        member_id=data.member_id,
        field=data.field,
        new_value=data.new_value,
    )


@router.post("/{request_id}/approve", status_code=status.HTTP_204_NO_CONTENT)
def approve_request(request_id: str, store: DocumentStore = Depends(get_store)):
    """Apply the change and notify the member."""
    approve_request_use_case(store=store, request_id=request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{request_id}/reject", status_code=status.HTTP_204_NO_CONTENT)
def reject_request(request_id: str, store: DocumentStore = Depends(get_store)):
    """Drop the request and notify the member."""
    reject_request_use_case(store=store, request_id=request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
