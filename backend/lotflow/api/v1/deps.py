"""
API Dependencies

Caller authentication (Firebase ID tokens) and the trigger shared secret.
"""
import hmac
from typing import Annotated, Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth as firebase_auth

from lotflow.core.settings import get_settings
from lotflow.db.firestore import initialize_firebase
from lotflow.exceptions import AuthenticationError
from lotflow.logging_config import get_logger
from lotflow.schemas.auth import CallerIdentity

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def verify_id_token(token: str) -> dict:
    """Decode a Firebase ID token; raises AuthenticationError when invalid."""
    initialize_firebase()
    try:
        return firebase_auth.verify_id_token(token)
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.CertificateFetchError) as e:
        logger.warning(f"Rejected ID token: {e}")
        raise AuthenticationError("Autenticação necessária.") from e


async def get_current_caller(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> CallerIdentity:
    """
    Dependency to get the caller identity from the Authorization header

    Raises:
        AuthenticationError: Missing or invalid bearer token
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Autenticação necessária.")

    decoded = verify_id_token(credentials.credentials)
    uid = decoded.get("uid") or decoded.get("sub")
    if not uid:
        raise AuthenticationError("Autenticação necessária.")
    return CallerIdentity(uid=uid, email=decoded.get("email"))


async def require_trigger_key(
    x_api_key: Annotated[Optional[str], Header()] = None,
) -> None:
    """Require X-API-Key to match TRIGGER_API_KEY when one is configured."""
    expected = get_settings().TRIGGER_API_KEY
    if not expected:
        return
    if not x_api_key or not hmac.compare_digest(x_api_key, expected):
        raise AuthenticationError("Invalid trigger API key")
