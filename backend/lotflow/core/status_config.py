"""Lot Status Configuration

Valid lot status values, the transition that advances a lot to the next
dashboard, and the pt-BR display labels shown on the production floor.
"""
from enum import Enum
from typing import Any, Dict, Set


class LotStatus(str, Enum):
    """Valid status values for Lots"""
    FUTURE = "future"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    COMPLETED_MISSING = "completed_missing"
    COMPLETED_EXCEEDING = "completed_exceeding"


OPEN_LOT_STATUSES: Set[str] = {LotStatus.FUTURE.value, LotStatus.ONGOING.value}

COMPLETED_LOT_STATUSES: Set[str] = {
    LotStatus.COMPLETED.value,
    LotStatus.COMPLETED_MISSING.value,
    LotStatus.COMPLETED_EXCEEDING.value,
}

LOT_STATUS_LABELS: Dict[str, str] = {
    LotStatus.FUTURE.value: "Na Fila",
    LotStatus.ONGOING.value: "Em Andamento",
    LotStatus.COMPLETED.value: "Concluído",
    LotStatus.COMPLETED_MISSING.value: "Concluído (com Falta)",
    LotStatus.COMPLETED_EXCEEDING.value: "Concluído (com Sobra)",
}


def normalize_lot_status(status: Any, default: str = LotStatus.FUTURE.value) -> str:
    """Lower-cased status string; missing or blank values become `default`."""
    if not isinstance(status, str) or not status.strip():
        return default
    return status.strip().lower()


def is_completed_status(status: Any) -> bool:
    """True for `completed` and any of its variants."""
    return isinstance(status, str) and status.strip().lower().startswith("completed")


def is_migration_transition(before_status: Any, after_status: Any) -> bool:
    """
    Check whether a status change should advance the lot to the next dashboard.

    Only {future, ongoing} -> completed* qualifies; completed -> completed
    edits and reopening a lot do not.
    """
    return (
        normalize_lot_status(before_status) in OPEN_LOT_STATUSES
        and is_completed_status(after_status)
    )


def get_lot_status_label(status: Any, fallback: str = "") -> str:
    """Display label for a lot status."""
    if not status:
        return fallback

    normalized = str(status).lower()
    if normalized in LOT_STATUS_LABELS:
        return LOT_STATUS_LABELS[normalized]

    if normalized.startswith("completed"):
        if "missing" in normalized:
            return LOT_STATUS_LABELS[LotStatus.COMPLETED_MISSING.value]
        if "exceeding" in normalized:
            return LOT_STATUS_LABELS[LotStatus.COMPLETED_EXCEEDING.value]
        return LOT_STATUS_LABELS[LotStatus.COMPLETED.value]

    return status if isinstance(status, str) else fallback
