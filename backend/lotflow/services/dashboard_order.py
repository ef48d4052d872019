"""
Dashboard Order Service

Resolves the pipeline order of dashboards (production stages) and the
next active stage after a given one.

The ordered list is cached per process for a fixed TTL. Reordering or
deactivating a dashboard is therefore seen up to one TTL late; there is
no explicit invalidation.
"""
import threading
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

from lotflow.core.settings import get_settings
from lotflow.db.firestore import DocumentStore
from lotflow.db.paths import dashboards_path
from lotflow.logging_config import get_logger

logger = get_logger(__name__)


def is_active_dashboard(dashboard: Optional[Mapping[str, Any]]) -> bool:
    """A dashboard is active unless explicitly disabled or missing its id."""
    if not dashboard or not dashboard.get("id"):
        return False
    if dashboard.get("isActive") is False or dashboard.get("active") is False:
        return False
    if dashboard.get("disabled") is True:
        return False
    return True


class DashboardOrderCache:
    """
    Time-bounded cache of the ordered dashboard list.

    Args:
        ttl_seconds: How long a fetched list is reused
        clock: Monotonic clock; injectable for tests
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds is None:
            ttl_seconds = get_settings().DASHBOARD_ORDER_CACHE_TTL_SECONDS
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Optional[List[Dict[str, Any]]] = None
        self._fetched_at: Optional[float] = None
        self._lock = threading.Lock()

    def is_fresh(self) -> bool:
        return (
            self._entries is not None
            and self._fetched_at is not None
            and self._clock() - self._fetched_at < self.ttl_seconds
        )

    def invalidate(self) -> None:
        with self._lock:
            self._entries = None
            self._fetched_at = None

    def get_ordered_dashboards(self, db: DocumentStore) -> List[Dict[str, Any]]:
        """
        Active dashboards sorted by their `order` field.

        Returns the cached list within the TTL. On a fetch failure the
        error is logged and an empty list is returned (and not cached), so
        callers see "no next stage" instead of an exception.
        """
        with self._lock:
            if self.is_fresh():
                logger.debug("Returning cached dashboard order")
                return list(self._entries)

            try:
                dashboards = db.list(dashboards_path(), order_by="order")
            except Exception as e:
                logger.error(f"Failed to load dashboard order: {e}", exc_info=True)
                return []

            self._entries = [dashboard for dashboard in dashboards if is_active_dashboard(dashboard)]
            self._fetched_at = self._clock()
            logger.debug(
                "Dashboard order refreshed",
                extra={"dashboard_count": len(self._entries)},
            )
            return list(self._entries)

    def get_next_dashboard(self, db: DocumentStore, current_dashboard_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        First active dashboard strictly after `current_dashboard_id`.

        Returns None for an empty id, an id that is unknown or inactive
        (logged as likely misconfiguration) or when the current dashboard
        is the last active one.
        """
        if not current_dashboard_id:
            return None

        ordered = self.get_ordered_dashboards(db)
        if not ordered:
            return None

        position = next(
            (index for index, dashboard in enumerate(ordered) if dashboard.get("id") == current_dashboard_id),
            None,
        )
        if position is None:
            logger.warning(
                f"Dashboard {current_dashboard_id} not found in the configured order",
                extra={"dashboard_id": current_dashboard_id},
            )
            return None

        for dashboard in ordered[position + 1:]:
            if is_active_dashboard(dashboard):
                return dashboard
        return None


# Shared by every handler invocation in this process
dashboard_order_cache = DashboardOrderCache()


def get_next_dashboard(db: DocumentStore, current_dashboard_id: Optional[str]) -> Optional[Dict[str, Any]]:
    return dashboard_order_cache.get_next_dashboard(db, current_dashboard_id)
