"""
Unit tests for dashboard pipeline order and the next-stage cache
"""
import pytest

from lotflow.services.dashboard_order import DashboardOrderCache, is_active_dashboard
from tests.factories import make_dashboard, seed_pipeline


@pytest.mark.unit
@pytest.mark.parametrize("dashboard,expected", [
    ({"id": "sew"}, True),
    ({"id": "sew", "isActive": True}, True),
    ({"id": "sew", "isActive": False}, False),
    ({"id": "sew", "active": False}, False),
    ({"id": "sew", "disabled": True}, False),
    ({"id": "sew", "disabled": False}, True),
    ({"name": "no id"}, False),
    (None, False),
])
def test_is_active_dashboard(dashboard, expected):
    assert is_active_dashboard(dashboard) is expected


class TestGetNextDashboard:

    @pytest.mark.unit
    def test_next_in_order(self, store, order_cache):
        seed_pipeline(store, ["cut", "sew", "laundry"])

        assert order_cache.get_next_dashboard(store, "cut")["id"] == "sew"
        assert order_cache.get_next_dashboard(store, "sew")["id"] == "laundry"
        assert order_cache.get_next_dashboard(store, "laundry") is None

    @pytest.mark.unit
    def test_order_field_wins_over_ids(self, store, order_cache):
        store.seed("dashboards/a", make_dashboard("a", 30))
        store.seed("dashboards/b", make_dashboard("b", 10))
        store.seed("dashboards/c", make_dashboard("c", 20))

        assert [d["id"] for d in order_cache.get_ordered_dashboards(store)] == ["b", "c", "a"]
        assert order_cache.get_next_dashboard(store, "c")["id"] == "a"

    @pytest.mark.unit
    def test_inactive_stages_are_skipped(self, store, order_cache):
        seed_pipeline(store, ["cut", "sew", "laundry"], inactive=["sew"])

        assert order_cache.get_next_dashboard(store, "cut")["id"] == "laundry"

    @pytest.mark.unit
    def test_inactive_stages_are_left_out_of_the_order(self, store, order_cache):
        seed_pipeline(store, ["a", "b", "c"], inactive=["b"])

        assert [d["id"] for d in order_cache.get_ordered_dashboards(store)] == ["a", "c"]

    @pytest.mark.unit
    def test_inactive_current_stage_has_no_next(self, store, order_cache, caplog):
        seed_pipeline(store, ["a", "b", "c"], inactive=["b"])

        with caplog.at_level("WARNING"):
            assert order_cache.get_next_dashboard(store, "b") is None
        assert "not found in the configured order" in caplog.text

    @pytest.mark.unit
    def test_unknown_or_empty_id(self, store, order_cache):
        seed_pipeline(store, ["cut", "sew"])

        assert order_cache.get_next_dashboard(store, "ghost") is None
        assert order_cache.get_next_dashboard(store, "") is None
        assert order_cache.get_next_dashboard(store, None) is None

    @pytest.mark.unit
    def test_no_dashboards(self, store, order_cache):
        assert order_cache.get_next_dashboard(store, "cut") is None


class TestDashboardOrderCache:

    @pytest.mark.unit
    def test_reused_within_ttl(self, store, order_cache, clock):
        seed_pipeline(store, ["cut", "sew"])
        order_cache.get_next_dashboard(store, "cut")

        store.seed("dashboards/sew", make_dashboard("sew", 2, isActive=False))
        clock.advance(299)

        assert order_cache.get_next_dashboard(store, "cut")["id"] == "sew"
        assert store.list_calls == ["dashboards"]

    @pytest.mark.unit
    def test_refreshed_after_ttl(self, store, order_cache, clock):
        seed_pipeline(store, ["cut", "sew"])
        order_cache.get_next_dashboard(store, "cut")

        store.seed("dashboards/sew", make_dashboard("sew", 2, isActive=False))
        clock.advance(300)

        assert order_cache.get_next_dashboard(store, "cut") is None
        assert store.list_calls == ["dashboards", "dashboards"]

    @pytest.mark.unit
    def test_invalidate(self, store, order_cache):
        seed_pipeline(store, ["cut"])
        order_cache.get_ordered_dashboards(store)
        order_cache.invalidate()

        assert not order_cache.is_fresh()
        order_cache.get_ordered_dashboards(store)
        assert len(store.list_calls) == 2

    @pytest.mark.unit
    def test_fetch_failure_returns_empty_and_is_not_cached(self, store, order_cache):
        seed_pipeline(store, ["cut", "sew"])
        store.fail_list["dashboards"] = RuntimeError("unavailable")

        assert order_cache.get_ordered_dashboards(store) == []
        assert order_cache.get_next_dashboard(store, "cut") is None

        del store.fail_list["dashboards"]
        assert order_cache.get_next_dashboard(store, "cut")["id"] == "sew"

    @pytest.mark.unit
    def test_zero_ttl_always_refetches(self, store, clock):
        cache = DashboardOrderCache(ttl_seconds=0, clock=clock)
        seed_pipeline(store, ["cut"])

        cache.get_ordered_dashboards(store)
        cache.get_ordered_dashboards(store)

        assert len(store.list_calls) == 2

    @pytest.mark.unit
    def test_returned_list_is_a_copy(self, store, order_cache):
        seed_pipeline(store, ["cut", "sew"])

        order_cache.get_ordered_dashboards(store).clear()

        assert len(order_cache.get_ordered_dashboards(store)) == 2
