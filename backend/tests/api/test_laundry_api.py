"""
Tests for laundry summary endpoint.
"""
import pytest

from tests.factories import make_lot, seed_lot


class TestLaundrySummary:
    """Tests for GET /api/v1/laundry/dashboards/{dashboard_id}/summary"""

    @pytest.mark.api
    def test_summary(self, client, store):
        seed_lot(store, "laundry", make_lot(
            "lot-1",
            status="ongoing",
            laundrySentAt="2025-01-01T00:00:00Z",
            laundryReturnedAt="2025-01-04T00:00:00Z",
            variations=[{"label": "Azul", "laundrySent": 10, "laundryReturned": 9}],
        ))
        seed_lot(store, "laundry", make_lot(
            "lot-2",
            status="ongoing",
            variations=[{"label": "Azul", "laundrySent": 6, "laundryReturned": 6}],
        ))

        response = client.get("/api/v1/laundry/dashboards/laundry/summary")

        assert response.status_code == 200
        data = response.json()
        assert data["dashboardId"] == "laundry"
        assert data["pending"] == 1
        assert data["completed"] == 1
        assert data["averageDuration"] == 3.0
        assert data["divergences"] == [{"label": "Azul", "sent": 16.0, "returned": 15.0, "delta": -1.0}]
        assert [(lot["lotId"], lot["completed"], lot["sent"], lot["returned"]) for lot in data["lots"]] == [
            ("lot-1", True, 10.0, 9.0),
            ("lot-2", False, 6.0, 6.0),
        ]
        assert data["lots"][0]["productName"] == "Camiseta Básica"

    @pytest.mark.api
    def test_empty_stage(self, client):
        response = client.get("/api/v1/laundry/dashboards/none/summary")

        assert response.status_code == 200
        assert response.json()["pending"] == 0
        assert response.json()["divergences"] == []
        assert response.json()["lots"] == []
