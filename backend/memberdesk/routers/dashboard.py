"""Dashboard endpoints."""
from fastapi import APIRouter, Depends

from ..auth import get_current_admin_uid
from ..dependencies import get_store
from ..schemas import DashboardSummary
from ..services.document_store import DocumentStore
from ..use_cases.dashboard import dashboard_summary_use_case

router = APIRouter(prefix="/dashboard", tags=["dashboard"], dependencies=[Depends(get_current_admin_uid)])


@router.get("/summary", response_model=DashboardSummary)
def get_summary(store: DocumentStore = Depends(get_store)):
    """Member totals and distributions."""
    return dashboard_summary_use_case(store=store)
