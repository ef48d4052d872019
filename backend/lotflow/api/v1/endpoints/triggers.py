"""
Lot Trigger Endpoints

Receives lot document update events (before/after snapshots) and runs
the stage migration for them.
"""
from fastapi import APIRouter, Depends

from lotflow.api.v1.deps import require_trigger_key
from lotflow.db.firestore import DocumentStore, get_db
from lotflow.logging_config import get_logger
from lotflow.schemas.lot import LotChangeEvent, LotMigrationResponse
from lotflow.services.lot_migration import handle_lot_update

logger = get_logger(__name__)

router = APIRouter(
    prefix="/triggers",
    tags=["Triggers"],
    dependencies=[Depends(require_trigger_key)],
)


@router.post(
    "/dashboards/{dashboard_id}/lots/{lot_id}",
    response_model=LotMigrationResponse,
)
def on_lot_updated(
    dashboard_id: str,
    lot_id: str,
    event: LotChangeEvent,
    db: DocumentStore = Depends(get_db),
):
    """
    Handle one lot update.

    Always answers 200: failures are logged and reported as the `failed`
    outcome so the event is not redelivered half-applied.
    """
    outcome = handle_lot_update(db, dashboard_id, lot_id, event.before, event.after)
    logger.debug(
        "Lot update handled",
        extra={"dashboard_id": dashboard_id, "lot_id": lot_id, "outcome": outcome.value},
    )
    return LotMigrationResponse(outcome=outcome)
