"""
Admin password verification

Confirms a plaintext password against the configured SHA-256 digest for
callers holding the admin role or the MANAGE_SETTINGS permission.
"""
import hashlib
import hmac
from typing import Any, Mapping, Optional

from lotflow.core.settings import get_settings
from lotflow.db.firestore import DocumentStore
from lotflow.db.paths import role_path
from lotflow.exceptions import (
    AuthenticationError,
    ConfigurationError,
    IntegrationError,
    PermissionDeniedError,
    ValidationError,
)
from lotflow.logging_config import get_logger

logger = get_logger(__name__)

MANAGE_SETTINGS_PERMISSION = "MANAGE_SETTINGS"
ADMIN_ROLE = "admin"


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def can_manage_settings(role_data: Optional[Mapping[str, Any]]) -> bool:
    """Admin role (case-insensitive) or an explicit MANAGE_SETTINGS permission."""
    if not role_data:
        return False
    role = role_data.get("role")
    if isinstance(role, str) and role.lower() == ADMIN_ROLE:
        return True
    permissions = role_data.get("permissions")
    return isinstance(permissions, list) and MANAGE_SETTINGS_PERMISSION in permissions


def verify_admin_password(db: DocumentStore, user_id: Optional[str], password: Any) -> bool:
    """
    Check `password` against the configured admin digest.

    Raises:
        AuthenticationError: No caller identity
        ValidationError: Empty password
        ConfigurationError: Digest missing or not a SHA-256 hex string
        IntegrationError: Role document could not be read
        PermissionDeniedError: Caller is neither admin nor MANAGE_SETTINGS
    """
    if not user_id:
        raise AuthenticationError("Autenticação necessária.")

    password = password.strip() if isinstance(password, str) else ""
    if not password:
        raise ValidationError("A senha é obrigatória.", field="password")

    configured_hash = get_settings().admin_password_hash
    if not configured_hash:
        logger.error("Admin password hash is missing or invalid")
        raise ConfigurationError(
            "Configuração de segurança indisponível.", setting="ADMIN_PASSWORD_HASH"
        )

    try:
        role_data = db.get(role_path(user_id)) or {}
    except Exception as e:
        logger.error(f"Failed to load role for user {user_id}: {e}", exc_info=True)
        raise IntegrationError(
            "Firestore", "Não foi possível validar as permissões do usuário."
        ) from e

    if not can_manage_settings(role_data):
        raise PermissionDeniedError(
            "Você não tem permissão para executar esta ação.",
            action=MANAGE_SETTINGS_PERMISSION,
        )

    return hmac.compare_digest(hash_password(password), configured_hash)
