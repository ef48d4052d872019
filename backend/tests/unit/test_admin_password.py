"""
Unit tests for admin password verification
"""
import pytest

from lotflow.core.settings import get_settings
from lotflow.exceptions import (
    AuthenticationError,
    ConfigurationError,
    IntegrationError,
    PermissionDeniedError,
    ValidationError,
)
from lotflow.services.admin_password import can_manage_settings, verify_admin_password
from tests.factories import ADMIN_PASSWORD


@pytest.fixture
def admin_role(store):
    store.seed("roles/u-1", {"role": "Admin"})


class TestVerifyAdminPassword:

    @pytest.mark.unit
    def test_correct_password(self, store, admin_password_hash, admin_role):
        assert verify_admin_password(store, "u-1", ADMIN_PASSWORD) is True

    @pytest.mark.unit
    def test_password_is_trimmed(self, store, admin_password_hash, admin_role):
        assert verify_admin_password(store, "u-1", f"  {ADMIN_PASSWORD}\n") is True

    @pytest.mark.unit
    def test_wrong_password_is_not_an_error(self, store, admin_password_hash, admin_role):
        assert verify_admin_password(store, "u-1", "chute") is False

    @pytest.mark.unit
    def test_uppercase_configured_digest(self, store, admin_password_hash, admin_role, monkeypatch):
        monkeypatch.setattr(get_settings(), "ADMIN_PASSWORD_HASH", admin_password_hash.upper())
        assert verify_admin_password(store, "u-1", ADMIN_PASSWORD) is True

    @pytest.mark.unit
    def test_manage_settings_permission(self, store, admin_password_hash):
        store.seed("roles/u-2", {"role": "supervisor", "permissions": ["VIEW_LOTS", "MANAGE_SETTINGS"]})
        assert verify_admin_password(store, "u-2", ADMIN_PASSWORD) is True

    @pytest.mark.unit
    def test_unauthenticated(self, store, admin_password_hash):
        with pytest.raises(AuthenticationError) as exc_info:
            verify_admin_password(store, None, ADMIN_PASSWORD)
        assert exc_info.value.callable_code == "unauthenticated"

    @pytest.mark.unit
    @pytest.mark.parametrize("password", ["", "   ", None, 123])
    def test_empty_password(self, store, admin_password_hash, admin_role, password):
        with pytest.raises(ValidationError) as exc_info:
            verify_admin_password(store, "u-1", password)
        assert exc_info.value.message == "A senha é obrigatória."
        assert exc_info.value.callable_code == "invalid-argument"

    @pytest.mark.unit
    @pytest.mark.parametrize("configured", [None, "", "not-a-digest", "a" * 63])
    def test_missing_or_malformed_digest(self, store, admin_role, monkeypatch, configured):
        monkeypatch.setattr(get_settings(), "ADMIN_PASSWORD_HASH", configured)

        with pytest.raises(ConfigurationError) as exc_info:
            verify_admin_password(store, "u-1", ADMIN_PASSWORD)
        assert exc_info.value.callable_code == "failed-precondition"

    @pytest.mark.unit
    def test_role_lookup_failure(self, store, admin_password_hash):
        store.fail_get["roles/u-1"] = RuntimeError("unavailable")

        with pytest.raises(IntegrationError) as exc_info:
            verify_admin_password(store, "u-1", ADMIN_PASSWORD)
        assert exc_info.value.callable_code == "internal"

    @pytest.mark.unit
    def test_no_role_document(self, store, admin_password_hash):
        with pytest.raises(PermissionDeniedError):
            verify_admin_password(store, "u-404", ADMIN_PASSWORD)

    @pytest.mark.unit
    def test_operator_without_permission(self, store, admin_password_hash):
        store.seed("roles/u-3", {"role": "operator", "permissions": ["VIEW_LOTS"]})

        with pytest.raises(PermissionDeniedError) as exc_info:
            verify_admin_password(store, "u-3", "chute")
        assert exc_info.value.callable_code == "permission-denied"


@pytest.mark.unit
def test_can_manage_settings():
    assert can_manage_settings({"role": "ADMIN"})
    assert can_manage_settings({"permissions": ["MANAGE_SETTINGS"]})
    assert not can_manage_settings({"role": "operator", "permissions": "MANAGE_SETTINGS"})
    assert not can_manage_settings(None)
