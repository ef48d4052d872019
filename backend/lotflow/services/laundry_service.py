"""
Laundry Summary Service

Figures for lots sent to and returned from the laundry: per-variation
sent/returned quantities, lot totals, turnaround time and the variations
whose returned quantity diverges the most from what was sent.
"""
import math
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from lotflow.core.status_config import is_completed_status


def to_non_negative_number(value: Any) -> float:
    """Numbers clamp at zero; strings accept a decimal comma; anything else is 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return 0.0
        return float(value) if value >= 0 else 0.0
    if isinstance(value, str):
        try:
            parsed = float(value.strip().replace(",", ".", 1))
        except ValueError:
            return 0.0
        if not math.isfinite(parsed):
            return 0.0
        return parsed if parsed >= 0 else 0.0
    return 0.0


def to_datetime(value: Any) -> Optional[datetime]:
    """Accept datetimes, ISO strings, epoch milliseconds and {seconds, nanoseconds} maps."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    if isinstance(value, Mapping) and isinstance(value.get("seconds"), (int, float)):
        seconds = value["seconds"] + (value.get("nanoseconds") or 0) / 1e9
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    return None


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _return_totals(lot: Mapping[str, Any]) -> Dict[str, Any]:
    totals = lot.get("laundryReturnQuantities")
    return totals if isinstance(totals, Mapping) else {}


def compute_variation_data(lot: Optional[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    if not lot:
        return []
    variations = lot.get("variations")
    if not isinstance(variations, list):
        return []
    totals = _return_totals(lot)

    data = []
    for index, variation in enumerate(variations):
        variation = variation if isinstance(variation, Mapping) else {}
        key = variation.get("variationId") or variation.get("id") or f"index-{index}"
        raw_label = variation.get("label")
        label = raw_label if isinstance(raw_label, str) and raw_label.strip() else f"Var. {index + 1}"

        sent = to_non_negative_number(_first_present(
            variation.get("laundrySent"),
            variation.get("sent"),
            variation.get("target"),
            variation.get("expected"),
        ))
        returned_from_totals = _first_present(
            totals.get(key),
            totals.get(variation.get("variationId")) if variation.get("variationId") else None,
            totals.get(variation.get("id")) if variation.get("id") else None,
            totals.get(label),
        )
        returned_from_variation = _first_present(
            variation.get("laundryReturned"),
            variation.get("returned"),
            variation.get("produced"),
        )
        returned = to_non_negative_number(_first_present(returned_from_totals, returned_from_variation))

        data.append({"key": key, "label": label, "sent": sent, "returned": returned})
    return data


def compute_lot_totals(lot: Mapping[str, Any]) -> Dict[str, Any]:
    variation_data = compute_variation_data(lot)
    sent_from_variations = sum(item["sent"] for item in variation_data)
    returned_from_variations = sum(item["returned"] for item in variation_data)

    fallback_sent = to_non_negative_number(_first_present(
        lot.get("laundrySentQuantity"),
        lot.get("sentQuantity"),
        lot.get("target"),
    ))
    totals = _return_totals(lot)
    aggregated_returns = (
        sum(to_non_negative_number(value) for value in totals.values()) if totals else None
    )
    fallback_returned = to_non_negative_number(_first_present(
        lot.get("laundryReturnedQuantity"),
        aggregated_returns,
        lot.get("produced"),
    ))

    return {
        "sent": sent_from_variations if sent_from_variations > 0 else fallback_sent,
        "returned": returned_from_variations if returned_from_variations > 0 else fallback_returned,
        "variations": variation_data,
    }


def is_laundry_lot_completed(lot: Optional[Mapping[str, Any]]) -> bool:
    if not lot:
        return False
    if to_datetime(lot.get("laundryReturnedAt")):
        return True
    return is_completed_status(lot.get("status"))


def compute_days_difference(start_value: Any, end_value: Any) -> Optional[float]:
    start = to_datetime(start_value)
    end = to_datetime(end_value)
    if not start or not end:
        return None
    difference = (end - start).total_seconds()
    if difference < 0:
        return None
    return difference / 86400


def summarize_laundry(lots: List[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Pending/completed counts, average turnaround in days, sent/returned
    totals per lot and per-label divergences (returned - sent) sorted by
    absolute delta, largest first.
    """
    pending = 0
    completed = 0
    durations = []
    variation_totals: Dict[str, Dict[str, Any]] = {}
    lot_totals = []

    for lot in lots:
        if not lot:
            continue
        lot_completed = is_laundry_lot_completed(lot)
        if lot_completed:
            completed += 1
        else:
            pending += 1

        totals = compute_lot_totals(lot)
        lot_totals.append({
            "lotId": lot.get("id"),
            "productName": lot.get("productName"),
            "completed": lot_completed,
            "sent": totals["sent"],
            "returned": totals["returned"],
        })

        days = compute_days_difference(lot.get("laundrySentAt"), lot.get("laundryReturnedAt"))
        if days is not None:
            durations.append(days)

        for variation in totals["variations"]:
            current = variation_totals.setdefault(
                variation["label"], {"label": variation["label"], "sent": 0.0, "returned": 0.0}
            )
            current["sent"] += variation["sent"]
            current["returned"] += variation["returned"]

    divergences = sorted(
        (
            {**item, "delta": item["returned"] - item["sent"]}
            for item in variation_totals.values()
        ),
        key=lambda item: abs(item["delta"]),
        reverse=True,
    )

    return {
        "pending": pending,
        "completed": completed,
        "averageDuration": sum(durations) / len(durations) if durations else 0.0,
        "divergences": divergences,
        "lots": lot_totals,
    }
