"""
Common API Response Schemas

Standardized error body returned by the exception handlers.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Error response for all API errors.

    Example:
        {
            "error": "PERMISSION_DENIED",
            "code": "permission-denied",
            "message": "Você não tem permissão para executar esta ação.",
            "details": {"action": "MANAGE_SETTINGS"},
            "timestamp": "2025-12-23T10:30:00Z"
        }
    """
    error: str = Field(..., description="Machine-readable error code")
    code: Optional[str] = Field(None, description="Callable-style error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional context")
    timestamp: str = Field(..., description="ISO-8601 UTC timestamp")
