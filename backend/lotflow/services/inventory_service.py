"""
Inventory Movement Service

Applies computed bill-of-materials consumption to stock:
- Stock level updates (whole embedded variations list per stock product)
- Immutable movement ledger records (Entrada / Saída)

All writes are staged on the caller's batch; nothing is committed here so
the caller decides the atomic scope.

Stock products keep their variations as an embedded list, so two batches
consuming the same stock product concurrently race and the last commit
wins. Consumption against different stock products never conflicts.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from lotflow.db.firestore import WriteBatch
from lotflow.db.paths import stock_movement_path, stock_product_path
from lotflow.schemas.stock import ActingUser, MovementType, StockMovement
from lotflow.services.bom_service import split_consumption_key
from lotflow.services.quantities import generate_id, normalize_signed_quantity, round_currency
from lotflow.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class MovementResult:
    """What apply_movements staged on the batch."""
    stock_updates: int = 0
    movements: int = 0
    skipped_keys: List[str] = field(default_factory=list)

    @property
    def has_writes(self) -> bool:
        return bool(self.stock_updates or self.movements)


class StockCatalog:
    """Snapshot of stock products indexed by product id and variation id."""

    def __init__(self, stock_products: Optional[Iterable[Mapping[str, Any]]] = None):
        self.products: Dict[str, Mapping[str, Any]] = {}
        self.variations: Dict[str, Dict[str, Mapping[str, Any]]] = {}
        for product in stock_products or []:
            if not product or not product.get("id"):
                continue
            self.products[product["id"]] = product
            variations = product.get("variations")
            self.variations[product["id"]] = {
                variation["id"]: variation
                for variation in (variations if isinstance(variations, list) else [])
                if isinstance(variation, Mapping) and variation.get("id")
            }

    def __len__(self) -> int:
        return len(self.products)

    def find_variation(self, stock_product_id: str, stock_variation_id: str) -> Optional[Mapping[str, Any]]:
        return self.variations.get(stock_product_id, {}).get(stock_variation_id)


def apply_movements(
    batch: WriteBatch,
    consumption: Mapping[str, float],
    stock_catalog: StockCatalog,
    user: Optional[ActingUser],
    *,
    source_entry_id: Optional[str] = None,
    movement_timestamp: Any = None,
    suppress_stock_updates: bool = False,
    suppress_movement_records: bool = False,
) -> MovementResult:
    """
    Stage stock updates and movement records for a consumption map.

    Positive quantities leave inventory (Saída) and lower currentStock;
    negative quantities return material (Entrada). Keys whose stock
    product or variation no longer exists are skipped.

    Args:
        batch: Unit of work to stage writes on (not committed here)
        consumption: Output of calculate_consumption
        stock_catalog: Current stock products
        user: Acting user; nothing is written without one
        source_entry_id: Correlates the movements with their triggering event
        movement_timestamp: Defaults to now (UTC)
        suppress_stock_updates: Only record movements
        suppress_movement_records: Only update stock levels

    Returns:
        MovementResult with counts of staged writes
    """
    result = MovementResult()
    if not consumption:
        return result
    if user is None or not user.uid:
        logger.warning("Skipping stock movements without an acting user")
        return result

    timestamp = movement_timestamp or datetime.now(timezone.utc)
    stock_levels: Dict[str, Dict[str, float]] = {}
    movements: List[StockMovement] = []

    for key, raw_quantity in consumption.items():
        quantity = normalize_signed_quantity(raw_quantity)
        if not quantity:
            continue

        stock_product_id, stock_variation_id = split_consumption_key(key)
        variation = stock_catalog.find_variation(stock_product_id, stock_variation_id)
        if variation is None:
            logger.warning(
                "Stock variation not found; consumption skipped",
                extra={
                    "stock_product_id": stock_product_id,
                    "stock_variation_id": stock_variation_id,
                    "quantity": quantity,
                },
            )
            result.skipped_keys.append(key)
            continue

        if not suppress_stock_updates:
            current_stock = normalize_signed_quantity(variation.get("currentStock")) or 0.0
            stock_levels.setdefault(stock_product_id, {})[stock_variation_id] = current_stock - quantity

        if not suppress_movement_records:
            movement_quantity = round_currency(abs(quantity))
            if movement_quantity == 0:
                continue
            movements.append(StockMovement(
                productId=stock_product_id,
                variationId=stock_variation_id,
                quantity=movement_quantity,
                type=MovementType.SAIDA if quantity > 0 else MovementType.ENTRADA,
                user=user.uid,
                userEmail=user.email,
                timestamp=timestamp,
                sourceEntryId=source_entry_id,
            ))

    for stock_product_id, updates in stock_levels.items():
        product = stock_catalog.products[stock_product_id]
        updated_variations = [
            {**variation, "currentStock": round_currency(updates[variation.get("id")])}
            if isinstance(variation, Mapping) and variation.get("id") in updates
            else variation
            for variation in product.get("variations") or []
        ]
        batch.update(stock_product_path(stock_product_id), {"variations": updated_variations})
        result.stock_updates += 1

    for movement in movements:
        batch.set(stock_movement_path(generate_id("mov")), movement.to_document())
        result.movements += 1

    return result
