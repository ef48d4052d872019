"""
Bill of Materials Consumption Service

Turns what a lot produced into raw-material consumption:
1. Production details - what a lot produced, per product and variation
2. Movement details - signed deltas (undo previous details, apply new ones)
3. Consumption - net quantity per stock variation, resolved through the
   product's (or the product variation's) bill of materials

Documents are handled as plain dicts exactly as stored in Firestore.
Consumption keys are "<stockProductId>::<stockVariationId>".
"""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from lotflow.services.quantities import (
    build_variation_key,
    normalize_quantity,
    normalize_signed_quantity,
    round_currency,
)
from lotflow.logging_config import get_logger

logger = get_logger(__name__)

KEY_SEPARATOR = "::"


def consumption_key(stock_product_id: str, stock_variation_id: str) -> str:
    return f"{stock_product_id}{KEY_SEPARATOR}{stock_variation_id}"


def split_consumption_key(key: str) -> tuple:
    stock_product_id, _, stock_variation_id = key.partition(KEY_SEPARATOR)
    return stock_product_id, stock_variation_id


def _string_field(data: Mapping[str, Any], name: str) -> str:
    value = data.get(name)
    return value if isinstance(value, str) else ""


def _first_positive_quantity(*values: Any) -> int:
    for value in values:
        quantity = normalize_quantity(value)
        if quantity > 0:
            return quantity
    return 0


# ============================================================================
# Production / movement details
# ============================================================================

def build_production_details(lot: Optional[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """
    Summarize what a lot produced for bill-of-materials purposes.

    Variations with a positive quantity yield a single detail carrying only
    those variations (each tagged with its variationKey); otherwise the lot
    itself counts as one undifferentiated unit. Quantities come from
    `produced`, falling back to `target` (a lot entering a new dashboard
    has produced 0, so its target is consumed).

    Returns:
        [] or a one-element list of {productId, productBaseId, produced, variations?}
    """
    if not lot:
        return []

    product_id = _string_field(lot, "productId")
    product_base_id = _string_field(lot, "productBaseId")

    raw_variations = lot.get("variations")
    if not isinstance(raw_variations, list):
        raw_variations = []

    variations = []
    for index, variation in enumerate(raw_variations):
        if not isinstance(variation, Mapping):
            continue
        quantity = _first_positive_quantity(variation.get("produced"), variation.get("target"))
        if quantity <= 0:
            continue
        variations.append({
            **variation,
            "variationKey": variation.get("variationKey") or build_variation_key(variation, index),
            "produced": quantity,
        })

    if variations:
        total = sum(variation["produced"] for variation in variations)
        if total <= 0:
            return []
        return [{
            "productId": product_id,
            "productBaseId": product_base_id,
            "produced": total,
            "variations": variations,
        }]

    quantity = _first_positive_quantity(lot.get("produced"), lot.get("target"))
    if quantity <= 0:
        return []
    return [{
        "productId": product_id,
        "productBaseId": product_base_id,
        "produced": quantity,
    }]


def _signed_detail(detail: Optional[Mapping[str, Any]], sign: int) -> Optional[Dict[str, Any]]:
    if not detail:
        return None

    variations = detail.get("variations")
    if not isinstance(variations, list):
        variations = []

    signed_variations = []
    for variation in variations:
        if not isinstance(variation, Mapping):
            continue
        produced = normalize_signed_quantity(variation.get("produced"))
        if not produced:
            continue
        signed_variations.append({**variation, "produced": sign * produced})

    produced = normalize_signed_quantity(detail.get("produced"))
    if not signed_variations and not produced:
        return None

    signed = {
        "productId": _string_field(detail, "productId"),
        "productBaseId": _string_field(detail, "productBaseId"),
        "produced": sign * produced if produced else 0,
    }
    if signed_variations:
        signed["variations"] = signed_variations
    return signed


def build_movement_details(
    original_details: Optional[Iterable[Mapping[str, Any]]] = None,
    updated_details: Optional[Iterable[Mapping[str, Any]]] = None,
) -> List[Dict[str, Any]]:
    """
    Combine previous and new production details into signed deltas.

    Every original detail is negated (its consumption is undone) and every
    updated detail is applied as-is. Details with no non-zero quantity are
    dropped. Passing the same details on both sides nets to nothing.
    """
    movements = []
    for detail in original_details or []:
        signed = _signed_detail(detail, -1)
        if signed:
            movements.append(signed)
    for detail in updated_details or []:
        signed = _signed_detail(detail, 1)
        if signed:
            movements.append(signed)
    return movements


# ============================================================================
# Product catalog
# ============================================================================

def normalize_dashboard_ids(raw_dashboard_ids: Any) -> List[str]:
    if not isinstance(raw_dashboard_ids, list):
        return []
    return [
        value.strip()
        for value in raw_dashboard_ids
        if isinstance(value, str) and value.strip()
    ]


def _bill_of_materials(item: Optional[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    if not item:
        return []
    bill = item.get("billOfMaterials")
    return bill if isinstance(bill, list) else []


@dataclass
class ProductVariationIndex:
    """Lookup of one product's variations by id and by normalized label."""
    by_id: Dict[str, Mapping[str, Any]] = field(default_factory=dict)
    by_label: Dict[str, Mapping[str, Any]] = field(default_factory=dict)

    @classmethod
    def for_product(cls, product: Mapping[str, Any]) -> "ProductVariationIndex":
        index = cls()
        variations = product.get("variations")
        for variation in variations if isinstance(variations, list) else []:
            if not isinstance(variation, Mapping):
                continue
            if variation.get("id"):
                index.by_id[variation["id"]] = variation
            label = variation.get("label")
            label = label.strip().lower() if isinstance(label, str) else ""
            if label and label not in index.by_label:
                index.by_label[label] = variation
        return index

    def resolve(self, detail_variation: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
        """
        Match a produced variation to the product's variation.

        Order: explicit variationId, the id inside an "id::" variationKey,
        then case-insensitive trimmed label.
        """
        variation_id = detail_variation.get("variationId")
        variation_id = variation_id.strip() if isinstance(variation_id, str) else ""
        if not variation_id:
            key = detail_variation.get("variationKey")
            key = key.strip() if isinstance(key, str) else ""
            if key.startswith("id::"):
                variation_id = key[len("id::"):]

        if variation_id and variation_id in self.by_id:
            return self.by_id[variation_id]

        label = detail_variation.get("label")
        label = label.strip().lower() if isinstance(label, str) else ""
        if label and label in self.by_label:
            return self.by_label[label]
        return None


class ProductCatalog:
    """
    Products merged from one or more sources (e.g. the destination and
    source dashboards' product documents), indexed by id and by family.

    Later sources override fields of earlier ones for the same product id.
    The family index keeps the first product seen per baseProductId.
    """

    def __init__(self, *sources: Optional[Iterable[Mapping[str, Any]]]):
        self.products: Dict[str, Dict[str, Any]] = {}
        self.by_base_id: Dict[str, Dict[str, Any]] = {}
        self._variation_indexes: Dict[str, ProductVariationIndex] = {}

        for source in sources:
            for product in source or []:
                if not product or not product.get("id"):
                    continue
                existing = self.products.get(product["id"], {})
                self.products[product["id"]] = {**existing, **product}

        for source in sources:
            for product in source or []:
                base_id = (product or {}).get("baseProductId")
                if base_id and base_id not in self.by_base_id:
                    self.by_base_id[base_id] = dict(product)

    def __len__(self) -> int:
        return len(self.products)

    def resolve(self, product_id: str, product_base_id: str = "") -> Optional[Dict[str, Any]]:
        """Product by id, falling back to the family index."""
        product = self.products.get(product_id) if product_id else None
        if product is None and product_base_id:
            base_product = self.by_base_id.get(product_base_id)
            if base_product is not None:
                product = self.products.get(base_product.get("id"), base_product)
        return product

    def variation_index(self, product: Mapping[str, Any]) -> ProductVariationIndex:
        cache_key = product.get("id") or ""
        if cache_key not in self._variation_indexes:
            self._variation_indexes[cache_key] = ProductVariationIndex.for_product(product)
        return self._variation_indexes[cache_key]


# ============================================================================
# Consumption
# ============================================================================

def _accumulate(
    consumption: Dict[str, float],
    bill_of_materials: Sequence[Mapping[str, Any]],
    produced: float,
    dashboard_id: Optional[str],
) -> None:
    for item in bill_of_materials:
        if not isinstance(item, Mapping):
            continue
        stock_product_id = item.get("stockProductId")
        stock_variation_id = item.get("stockVariationId")
        if not stock_product_id or not stock_variation_id:
            continue

        allowed_dashboards = normalize_dashboard_ids(item.get("dashboardIds"))
        if allowed_dashboards and (not dashboard_id or dashboard_id not in allowed_dashboards):
            continue

        quantity_per_piece = normalize_signed_quantity(item.get("quantityPerPiece"))
        if not quantity_per_piece:
            continue

        consumption[consumption_key(stock_product_id, stock_variation_id)] += (
            produced * quantity_per_piece
        )


def calculate_consumption(
    production_details: Iterable[Mapping[str, Any]],
    catalog: ProductCatalog,
    dashboard_id: Optional[str] = None,
) -> Dict[str, float]:
    """
    Net raw-material consumption for a set of (signed) production details.

    Per detail, variation-level consumption and whole-detail consumption
    are mutually exclusive: once any variation carries a non-zero quantity
    the detail's top-level `produced` is ignored, even if it disagrees.
    A variation without its own bill of materials uses the product's.
    Entries restricted by `dashboardIds` only count on those dashboards.

    Args:
        production_details: Output of build_production_details/build_movement_details
        catalog: Products available for resolution
        dashboard_id: Dashboard whose consumption rules apply

    Returns:
        {"<stockProductId>::<stockVariationId>": quantity}; positive values
        leave inventory, negative values return to it. Entries that net to
        zero (at 4 decimals) are omitted.
    """
    consumption: Dict[str, float] = defaultdict(float)

    for detail in production_details:
        if not detail:
            continue

        product = catalog.resolve(
            _string_field(detail, "productId"),
            _string_field(detail, "productBaseId"),
        )
        if product is None:
            logger.debug(
                "Skipping production detail without a catalog product",
                extra={"product_id": detail.get("productId")},
            )
            continue

        default_bill = _bill_of_materials(product)
        detail_variations = detail.get("variations")
        if not isinstance(detail_variations, list):
            detail_variations = []

        applied_variation_consumption = False
        if detail_variations:
            variation_index = catalog.variation_index(product)
            for variation in detail_variations:
                if not isinstance(variation, Mapping):
                    continue
                produced = normalize_signed_quantity(variation.get("produced"))
                if not produced:
                    continue
                applied_variation_consumption = True
                product_variation = variation_index.resolve(variation)
                bill = _bill_of_materials(product_variation) or default_bill
                _accumulate(consumption, bill, produced, dashboard_id)

        if applied_variation_consumption:
            continue

        produced = normalize_signed_quantity(detail.get("produced"))
        if not produced:
            produced = sum(
                normalize_signed_quantity(variation.get("produced")) or 0
                for variation in detail_variations
                if isinstance(variation, Mapping)
            )
        if not produced:
            continue
        _accumulate(consumption, default_bill, produced, dashboard_id)

    return {
        key: value
        for key, value in consumption.items()
        if round_currency(value) != 0
    }
