"""
Lot Migration Service

Advances a lot to the next dashboard when it is completed, and consumes
raw materials for the new stage.

Triggered by every lot document update (dashboards/{dashboardId}/lots/{lotId}).
Delivery is at-least-once and updates for different lots run in parallel,
so the handler is idempotent:

1. Only {future, ongoing} -> completed* transitions qualify
2. A lot already pointing at the next dashboard is left alone
3. The destination is created inside a transaction that re-reads it and
   refuses to overwrite a lot not linked back to this source
4. Bill-of-materials consumption runs only after a fresh creation, in its
   own batch; its failure never undoes the stage transition

The handler never raises: unexpected errors are logged and reported as
MigrationOutcome.FAILED so the platform does not retry a half-applied event.
"""
import copy
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from lotflow.core.settings import get_settings
from lotflow.core.status_config import LotStatus, is_migration_transition
from lotflow.db.firestore import DocumentStore, Transaction
from lotflow.db.paths import dashboard_product_path, lot_path, stock_products_path
from lotflow.exceptions import MigrationConflictError
from lotflow.schemas.stock import ActingUser
from lotflow.services.bom_service import (
    ProductCatalog,
    build_movement_details,
    build_production_details,
    calculate_consumption,
)
from lotflow.services.dashboard_order import DashboardOrderCache, dashboard_order_cache
from lotflow.services.inventory_service import StockCatalog, apply_movements
from lotflow.services.quantities import build_variation_key, normalize_quantity
from lotflow.logging_config import get_logger

logger = get_logger(__name__)

# Fields that describe where a lot is and how far it got; never carried to the next stage
RUNTIME_FIELDS = (
    "produced",
    "status",
    "startDate",
    "endDate",
    "completedAt",
    "order",
    "dashboardId",
    "migratedFromDashboard",
    "migratedToDashboardId",
    "nextDashboardLotId",
    "sourceLotId",
    "migrationMetadata",
)


class MigrationOutcome(str, Enum):
    """Which branch a lot update took"""
    SKIPPED = "skipped"
    FINAL_STAGE = "final_stage"
    ALREADY_MIGRATED = "already_migrated"
    MIGRATED = "migrated"
    CONFLICT = "conflict"
    SOURCE_MISSING = "source_missing"
    FAILED = "failed"


@dataclass
class MigrationContext:
    """Identifiers of one migration, shared by every step."""
    source_dashboard_id: str
    source_lot_id: str
    target_dashboard_id: str
    target_lot_id: str
    history_entry: Dict[str, Any]

    @property
    def source_path(self) -> str:
        return lot_path(self.source_dashboard_id, self.source_lot_id)

    @property
    def target_path(self) -> str:
        return lot_path(self.target_dashboard_id, self.target_lot_id)

    @property
    def pointer_fields(self) -> Dict[str, Any]:
        return {
            "migratedToDashboardId": self.target_dashboard_id,
            "nextDashboardLotId": self.target_lot_id,
            "migrationMetadata": dict(self.history_entry),
        }


# ============================================================================
# Migration history
# ============================================================================

def _history_identity(entry: Mapping[str, Any]) -> tuple:
    return (entry.get("fromDashboardId"), entry.get("toDashboardId"), entry.get("sourceLotId"))


def build_history_entry(
    from_dashboard_id: str,
    to_dashboard_id: str,
    source_lot_id: str,
    migrated_at: datetime,
) -> Dict[str, Any]:
    return {
        "fromDashboardId": from_dashboard_id,
        "toDashboardId": to_dashboard_id,
        "sourceLotId": source_lot_id,
        "migratedAt": migrated_at,
    }


def merge_migration_history(history: Any, entry: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """
    Append `entry` unless an entry with the same (from, to, sourceLotId)
    is already present. Existing entries keep their order.
    """
    merged = [dict(item) for item in history if isinstance(item, Mapping)] if isinstance(history, list) else []
    identity = _history_identity(entry)
    if not any(_history_identity(item) == identity for item in merged):
        merged.append(dict(entry))
    return merged


# ============================================================================
# Destination document
# ============================================================================

def build_migrated_lot(
    lot: Mapping[str, Any],
    context: MigrationContext,
    now: datetime,
) -> Dict[str, Any]:
    """
    Base document for the lot on the next dashboard.

    Deep copy of the source minus runtime/migration fields, reset to the
    stage-entry state: produced 0, status "future", no dates, ordering key
    from the current time. Variations keep a renormalized target, restart
    at produced 0 and keep (or receive) a stable variationKey.
    """
    migrated = copy.deepcopy(dict(lot))
    for name in RUNTIME_FIELDS:
        migrated.pop(name, None)

    variations = migrated.get("variations")
    if isinstance(variations, list):
        migrated["variations"] = [
            {
                **variation,
                "target": normalize_quantity(variation.get("target")),
                "produced": 0,
                "variationKey": build_variation_key(variation, index),
            }
            for index, variation in enumerate(variations)
            if isinstance(variation, Mapping)
        ]

    migrated.update({
        "id": context.target_lot_id,
        "target": normalize_quantity(lot.get("target")),
        "produced": 0,
        "status": LotStatus.FUTURE.value,
        "startDate": None,
        "endDate": None,
        "order": int(now.timestamp() * 1000),
        "createdAt": now,
        "migratedFromDashboard": context.source_dashboard_id,
        "sourceLotId": context.source_lot_id,
        "migrationHistory": merge_migration_history(lot.get("migrationHistory"), context.history_entry),
        "migrationMetadata": dict(context.history_entry),
    })
    return migrated


def is_linked_to_source(destination: Mapping[str, Any], context: MigrationContext) -> bool:
    return (
        destination.get("migratedFromDashboard") == context.source_dashboard_id
        and destination.get("sourceLotId") == context.source_lot_id
    )


def _source_needs_pointers(source: Mapping[str, Any], context: MigrationContext) -> bool:
    if source.get("migratedToDashboardId") != context.target_dashboard_id:
        return True
    if source.get("nextDashboardLotId") != context.target_lot_id:
        return True
    history = source.get("migrationHistory")
    return merge_migration_history(history, context.history_entry) != (history or [])


def _source_update(source: Mapping[str, Any], context: MigrationContext) -> Dict[str, Any]:
    return {
        **context.pointer_fields,
        "migrationHistory": merge_migration_history(source.get("migrationHistory"), context.history_entry),
    }


def commit_migration(
    db: DocumentStore,
    migrated_lot: Mapping[str, Any],
    context: MigrationContext,
) -> MigrationOutcome:
    """
    Create the destination lot and link the source, atomically.

    Inside one transaction: re-read destination and source. A destination
    already linked to this source means a previous delivery did the work
    (the source pointers are repaired if missing). A destination owned by
    another lot is a conflict: nothing is written.
    """
    def _migrate(transaction: Transaction) -> MigrationOutcome:
        destination = transaction.get(context.target_path)
        source = transaction.get(context.source_path)

        if destination is not None:
            if not is_linked_to_source(destination, context):
                raise MigrationConflictError(
                    context.target_dashboard_id,
                    context.target_lot_id,
                    existing_source_lot_id=destination.get("sourceLotId"),
                )
            if source is not None and _source_needs_pointers(source, context):
                transaction.update(context.source_path, _source_update(source, context))
            return MigrationOutcome.ALREADY_MIGRATED

        if source is None:
            return MigrationOutcome.SOURCE_MISSING

        transaction.set(context.target_path, dict(migrated_lot))
        transaction.update(context.source_path, _source_update(source, context))
        return MigrationOutcome.MIGRATED

    try:
        return db.run_transaction(_migrate)
    except MigrationConflictError as e:
        logger.error(
            f"Lot migration aborted: {e.message}",
            extra={**e.details, "source_dashboard_id": context.source_dashboard_id,
                   "source_lot_id": context.source_lot_id},
        )
        return MigrationOutcome.CONFLICT


# ============================================================================
# Bill of materials consumption
# ============================================================================

def resolve_acting_user(lot: Mapping[str, Any]) -> Optional[ActingUser]:
    """Last editor, then creator, then the configured system user."""
    for field_name in ("lastEditedBy", "updatedBy", "createdBy"):
        audit = lot.get(field_name)
        if isinstance(audit, Mapping) and audit.get("uid"):
            return ActingUser(uid=str(audit["uid"]), email=audit.get("email"))

    settings = get_settings()
    if settings.MIGRATION_SYSTEM_USER_ID:
        return ActingUser(uid=settings.MIGRATION_SYSTEM_USER_ID, email=settings.MIGRATION_SYSTEM_USER_EMAIL)
    return None


def _load_product_sources(db: DocumentStore, lot: Mapping[str, Any], context: MigrationContext) -> List[List[Dict[str, Any]]]:
    product_id = lot.get("productId")
    if not isinstance(product_id, str) or not product_id:
        return []

    dashboard_ids = [context.target_dashboard_id]
    if context.source_dashboard_id != context.target_dashboard_id:
        dashboard_ids.append(context.source_dashboard_id)

    sources = []
    for dashboard_id in dashboard_ids:
        product = db.get(dashboard_product_path(dashboard_id, product_id))
        if product:
            sources.append([product])
    return sources


def apply_migration_consumption(
    db: DocumentStore,
    migrated_lot: Mapping[str, Any],
    context: MigrationContext,
    now: datetime,
) -> bool:
    """
    Consume raw materials for the lot entering the destination dashboard.

    Catalog and stock are read outside any transaction, so the stock
    levels may be stale against concurrent consumption. Returns True when
    a batch was committed.
    """
    production_details = build_production_details(migrated_lot)
    movement_details = build_movement_details(original_details=[], updated_details=production_details)
    if not movement_details:
        return False

    product_sources = _load_product_sources(db, migrated_lot, context)
    stock_products = db.list(stock_products_path())
    if not product_sources or not stock_products:
        logger.info(
            "No product or stock data for bill of materials; consumption skipped",
            extra={"dashboard_id": context.target_dashboard_id, "lot_id": context.target_lot_id},
        )
        return False

    consumption = calculate_consumption(
        movement_details,
        ProductCatalog(*product_sources),
        context.target_dashboard_id,
    )
    if not consumption:
        return False

    batch = db.batch()
    result = apply_movements(
        batch,
        consumption,
        StockCatalog(stock_products),
        resolve_acting_user(migrated_lot),
        source_entry_id=f"lot-migration:{context.source_dashboard_id}:{context.source_lot_id}:{context.target_dashboard_id}",
        movement_timestamp=now,
    )
    if not result.has_writes:
        return False

    batch.commit()
    logger.info(
        "Bill of materials consumption applied",
        extra={
            "dashboard_id": context.target_dashboard_id,
            "lot_id": context.target_lot_id,
            "stock_updates": result.stock_updates,
            "movements": result.movements,
        },
    )
    return True


# ============================================================================
# Trigger entry point
# ============================================================================

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def handle_lot_update(
    db: DocumentStore,
    dashboard_id: str,
    lot_id: str,
    before: Optional[Mapping[str, Any]],
    after: Optional[Mapping[str, Any]],
    *,
    order_cache: Optional[DashboardOrderCache] = None,
    clock: Callable[[], datetime] = _utcnow,
) -> MigrationOutcome:
    """
    Handle one lot document update.

    Args:
        db: Document store
        dashboard_id: Dashboard owning the updated lot
        lot_id: Updated lot id
        before: Lot data before the update (None when unavailable)
        after: Lot data after the update (None when unavailable)
        order_cache: Dashboard order cache (process-wide one by default)
        clock: Source of "now" for timestamps

    Returns:
        MigrationOutcome describing the branch taken; never raises
    """
    log_context = {"dashboard_id": dashboard_id, "lot_id": lot_id}
    try:
        if before is None or after is None:
            logger.debug("Lot update without before/after data", extra=log_context)
            return MigrationOutcome.SKIPPED

        if not is_migration_transition(before.get("status"), after.get("status")):
            return MigrationOutcome.SKIPPED

        cache = order_cache or dashboard_order_cache
        next_dashboard = cache.get_next_dashboard(db, dashboard_id)
        if next_dashboard is None:
            logger.debug("Lot completed on the last dashboard", extra=log_context)
            return MigrationOutcome.FINAL_STAGE

        next_dashboard_id = next_dashboard["id"]
        if after.get("migratedToDashboardId") == next_dashboard_id:
            logger.debug(
                "Lot already migrated",
                extra={**log_context, "next_dashboard_id": next_dashboard_id},
            )
            return MigrationOutcome.ALREADY_MIGRATED

        now = clock()
        explicit_id = after.get("id")
        target_lot_id = explicit_id if isinstance(explicit_id, str) and explicit_id else lot_id
        context = MigrationContext(
            source_dashboard_id=dashboard_id,
            source_lot_id=lot_id,
            target_dashboard_id=next_dashboard_id,
            target_lot_id=target_lot_id,
            history_entry=build_history_entry(dashboard_id, next_dashboard_id, lot_id, now),
        )

        migrated_lot = build_migrated_lot(after, context, now)
        outcome = commit_migration(db, migrated_lot, context)
        if outcome != MigrationOutcome.MIGRATED:
            logger.info(
                f"Lot migration finished without creating a lot: {outcome.value}",
                extra={**log_context, "next_dashboard_id": next_dashboard_id},
            )
            return outcome

        logger.info(
            f"Lot {lot_id} migrated from {dashboard_id} to {next_dashboard_id}",
            extra={**log_context, "next_dashboard_id": next_dashboard_id, "target_lot_id": target_lot_id},
        )

        try:
            apply_migration_consumption(db, migrated_lot, context, now)
        except Exception as e:
            logger.error(
                f"Bill of materials consumption failed after migration: {e}",
                extra={**log_context, "next_dashboard_id": next_dashboard_id},
                exc_info=True,
            )
        return outcome

    except Exception as e:
        logger.error(f"Unexpected error handling lot update: {e}", extra=log_context, exc_info=True)
        return MigrationOutcome.FAILED
