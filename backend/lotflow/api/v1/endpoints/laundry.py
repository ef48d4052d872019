"""
Laundry Endpoints

Sent/returned figures for the lots of a laundry stage.
"""
from fastapi import APIRouter, Depends

from lotflow.db.firestore import DocumentStore, get_db
from lotflow.db.paths import lots_path
from lotflow.logging_config import get_logger
from lotflow.schemas.laundry import LaundrySummaryResponse
from lotflow.services.laundry_service import summarize_laundry

logger = get_logger(__name__)

router = APIRouter(prefix="/laundry", tags=["Laundry"])


@router.get("/dashboards/{dashboard_id}/summary", response_model=LaundrySummaryResponse)
def get_laundry_summary(dashboard_id: str, db: DocumentStore = Depends(get_db)):
    lots = db.list(lots_path(dashboard_id))
    summary = summarize_laundry(lots)
    return LaundrySummaryResponse(dashboardId=dashboard_id, **summary)
