"""
Security Endpoints

Admin password confirmation for sensitive settings screens.
"""
from fastapi import APIRouter, Depends, Request

from lotflow.api.v1.deps import get_current_caller
from lotflow.core.limiter import limiter
from lotflow.core.settings import get_settings
from lotflow.db.firestore import DocumentStore, get_db
from lotflow.logging_config import get_logger
from lotflow.schemas.common import ErrorResponse
from lotflow.schemas.auth import (
    CallerIdentity,
    VerifyAdminPasswordRequest,
    VerifyAdminPasswordResponse,
)
from lotflow.services.admin_password import verify_admin_password

logger = get_logger(__name__)

router = APIRouter(prefix="/security", tags=["Security"])


@router.post(
    "/verify-admin-password",
    response_model=VerifyAdminPasswordResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Empty password"},
        401: {"model": ErrorResponse, "description": "Missing or invalid ID token"},
        403: {"model": ErrorResponse, "description": "Caller cannot manage settings"},
        412: {"model": ErrorResponse, "description": "Admin password digest not configured"},
    },
)
@limiter.limit(lambda: get_settings().ADMIN_PASSWORD_RATE_LIMIT)
def verify_admin_password_endpoint(
    request: Request,
    payload: VerifyAdminPasswordRequest,
    caller: CallerIdentity = Depends(get_current_caller),
    db: DocumentStore = Depends(get_db),
):
    """
    Check the admin password for an admin or MANAGE_SETTINGS caller.

    A wrong password is not an error: it answers {"valid": false}.
    """
    valid = verify_admin_password(db, caller.uid, payload.password)
    if not valid:
        logger.warning("Admin password mismatch", extra={"user_id": caller.uid})
    return VerifyAdminPasswordResponse(valid=valid)
