"""
Tests for admin password verification endpoint.
"""
import pytest

from lotflow.core.settings import get_settings
from tests.factories import ADMIN_PASSWORD

URL = "/api/v1/security/verify-admin-password"


class TestVerifyAdminPassword:
    """Tests for POST /api/v1/security/verify-admin-password"""

    @pytest.fixture(autouse=True)
    def admin_role(self, store, caller):
        store.seed(f"roles/{caller.uid}", {"role": "admin"})

    @pytest.mark.api
    def test_correct_password(self, client, admin_password_hash):
        response = client.post(URL, json={"password": ADMIN_PASSWORD})

        assert response.status_code == 200
        assert response.json() == {"valid": True}

    @pytest.mark.api
    def test_wrong_password(self, client, admin_password_hash):
        response = client.post(URL, json={"password": "chute"})

        assert response.status_code == 200
        assert response.json() == {"valid": False}

    @pytest.mark.api
    def test_empty_password(self, client, admin_password_hash):
        response = client.post(URL, json={"password": "   "})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "invalid-argument"
        assert body["message"] == "A senha é obrigatória."
        assert "timestamp" in body

    @pytest.mark.api
    def test_missing_digest(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "ADMIN_PASSWORD_HASH", None)

        response = client.post(URL, json={"password": ADMIN_PASSWORD})

        assert response.status_code == 412
        assert response.json()["code"] == "failed-precondition"

    @pytest.mark.api
    def test_caller_without_permission(self, client, store, caller, admin_password_hash):
        store.seed(f"roles/{caller.uid}", {"role": "operator"})

        response = client.post(URL, json={"password": ADMIN_PASSWORD})

        assert response.status_code == 403
        assert response.json()["code"] == "permission-denied"

    @pytest.mark.api
    def test_role_lookup_failure(self, client, store, caller, admin_password_hash):
        store.fail_get[f"roles/{caller.uid}"] = RuntimeError("unavailable")

        response = client.post(URL, json={"password": ADMIN_PASSWORD})

        assert response.status_code == 500
        assert response.json()["code"] == "internal"


class TestVerifyAdminPasswordAuth:

    @pytest.mark.api
    def test_missing_bearer_token(self, anonymous_client, admin_password_hash):
        response = anonymous_client.post(URL, json={"password": ADMIN_PASSWORD})

        assert response.status_code == 401
        assert response.json()["code"] == "unauthenticated"
