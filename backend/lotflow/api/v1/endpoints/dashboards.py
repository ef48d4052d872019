"""
Dashboard Endpoints

Pipeline navigation between production stages.
"""
from fastapi import APIRouter, Depends

from lotflow.db.firestore import DocumentStore, get_db
from lotflow.exceptions import NotFoundError
from lotflow.schemas.common import ErrorResponse
from lotflow.schemas.dashboard import DashboardResponse
from lotflow.services.dashboard_order import get_next_dashboard

router = APIRouter(prefix="/dashboards", tags=["Dashboards"])


@router.get(
    "/{dashboard_id}/next",
    response_model=DashboardResponse,
    responses={404: {"model": ErrorResponse, "description": "No active stage after this one"}},
)
def get_next(dashboard_id: str, db: DocumentStore = Depends(get_db)):
    """Next active stage after `dashboard_id`; 404 at the end of the pipeline."""
    next_dashboard = get_next_dashboard(db, dashboard_id)
    if next_dashboard is None:
        raise NotFoundError("Next dashboard", dashboard_id)
    return next_dashboard
