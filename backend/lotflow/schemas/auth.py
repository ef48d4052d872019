"""
Pydantic schemas for caller identity and admin password verification
"""
from typing import Any, Optional

from pydantic import BaseModel, Field


class CallerIdentity(BaseModel):
    """Identity extracted from a verified Firebase ID token."""
    uid: str
    email: Optional[str] = None


class VerifyAdminPasswordRequest(BaseModel):
    # Any JSON value is accepted; non-strings count as an empty password
    password: Any = Field(None, description="Plaintext admin password")


class VerifyAdminPasswordResponse(BaseModel):
    valid: bool
