"""Certificate / ID card layout endpoints."""
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from ..auth import get_current_admin_uid
from ..dependencies import get_layout_editors, get_store
from ..domain_errors import DomainError
from ..schemas import LayoutKind, LayoutResponse, LayoutUpdate, ToastResponse
from ..services.card_render import render_certificate, render_id_card_back, render_id_card_front
from ..services.document_store import DocumentStore
from ..services.layout import CERTIFICATE, layout_elements
from ..use_cases.layouts import LayoutEditor, load_layout_use_case, save_layout_use_case
from ..use_cases.members import get_member_use_case

router = APIRouter(prefix="/layouts", tags=["layouts"], dependencies=[Depends(get_current_admin_uid)])


def _editor(kind: str, editors: dict[str, LayoutEditor]) -> LayoutEditor:
    editor = editors[kind]
    if not editor.loaded:
        editor.load()
    return editor


@router.get("/{kind}", response_model=LayoutResponse)
def get_layout(kind: LayoutKind, store: DocumentStore = Depends(get_store)):
    """Saved layout merged over defaults."""
    return LayoutResponse(kind=kind, positions=load_layout_use_case(store=store, kind=kind))


@router.put("/{kind}", response_model=LayoutResponse)
def save_layout(kind: LayoutKind, data: LayoutUpdate, store: DocumentStore = Depends(get_store)):
    """Overwrite the saved layout."""
    return LayoutResponse(kind=kind, positions=save_layout_use_case(store=store, kind=kind, positions=data.positions))


@router.get("/{kind}/draft", response_model=LayoutResponse)
def get_draft(kind: LayoutKind, editors: dict[str, LayoutEditor] = Depends(get_layout_editors)):
    """Layout currently being edited."""
    return LayoutResponse(kind=kind, positions=_editor(kind, editors).positions)


@router.patch("/{kind}/draft/{element}", response_model=LayoutResponse)
def update_draft_element(
    kind: LayoutKind,
    element: str,
    changes: dict[str, Any],
    editors: dict[str, LayoutEditor] = Depends(get_layout_editors),
):
    """Move or restyle one element of the draft."""
    editor = _editor(kind, editors)
    editor.update_element(element, changes)
    return LayoutResponse(kind=kind, positions=editor.positions)


@router.post("/{kind}/draft/save", response_model=ToastResponse)
def save_draft(kind: LayoutKind, editors: dict[str, LayoutEditor] = Depends(get_layout_editors)):
    """Persist the draft; on failure the draft stays as it is."""
    return _editor(kind, editors).save()


@router.get("/{kind}/preview/{member_id}", response_class=HTMLResponse)
def preview(
    kind: LayoutKind,
    member_id: str,
    selected: Optional[str] = None,
    source: Literal["draft", "saved"] = "draft",
    store: DocumentStore = Depends(get_store),
    editors: dict[str, LayoutEditor] = Depends(get_layout_editors),
):
    """Render a member's card with the draft (or saved) layout, highlighting `selected`."""
    if selected is not None and selected not in layout_elements(kind):
        raise DomainError(
            code="VALIDATION_FAILED",
            http_status=422,
            message="Unknown layout element",
            details={"selected": selected},
        )
    member = get_member_use_case(store=store, member_id=member_id)
    if source == "draft":
        positions = _editor(kind, editors).positions
    else:
        positions = load_layout_use_case(store=store, kind=kind)

    if kind == CERTIFICATE:
        return HTMLResponse(render_certificate(member, positions, selected))
    return HTMLResponse(render_id_card_front(member, positions, selected) + render_id_card_back())
