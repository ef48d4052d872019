"""
LotFlow - Custom Exception Hierarchy

Provides structured, typed exceptions with error codes for consistent
error handling across the application.

Every exception carries two codes:
    error_code     machine-readable code used in JSON error bodies
    callable_code  the callable-function style code ("permission-denied",
                   "failed-precondition", ...) surfaced to admin callers

Usage:
    from lotflow.exceptions import PermissionDeniedError, ValidationError

    raise ValidationError("A senha é obrigatória.", field="password")
"""
from typing import Any, Dict, Optional


class LotFlowException(Exception):
    """
    Base exception for all LotFlow errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NOT_FOUND", "VALIDATION_ERROR")
        callable_code: Callable-style error code (e.g., "not-found", "invalid-argument")
        status_code: HTTP status code to return
        details: Additional context for debugging
    """

    error_code: str = "LOTFLOW_ERROR"
    callable_code: str = "internal"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "code": self.callable_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ===================
# 400 Bad Request Errors
# ===================


class ValidationError(LotFlowException):
    """Raised when input validation fails."""

    error_code = "VALIDATION_ERROR"
    callable_code = "invalid-argument"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details=details)


# ===================
# 401 Unauthorized Errors
# ===================


class AuthenticationError(LotFlowException):
    """Raised when authentication fails."""

    error_code = "AUTHENTICATION_ERROR"
    callable_code = "unauthenticated"
    status_code = 401

    def __init__(
        self,
        message: str = "Authentication required",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


# ===================
# 403 Forbidden Errors
# ===================


class PermissionDeniedError(LotFlowException):
    """Raised when user lacks permission for an action."""

    error_code = "PERMISSION_DENIED"
    callable_code = "permission-denied"
    status_code = 403

    def __init__(
        self,
        message: str = "Permission denied",
        *,
        action: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if action:
            details["action"] = action
        super().__init__(message, details=details)


# ===================
# 404 Not Found Errors
# ===================


class NotFoundError(LotFlowException):
    """Raised when a resource is not found."""

    error_code = "NOT_FOUND"
    callable_code = "not-found"
    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Any = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details=details)


# ===================
# 409 Conflict Errors
# ===================


class ConflictError(LotFlowException):
    """Raised when there's a resource conflict."""

    error_code = "CONFLICT"
    callable_code = "aborted"
    status_code = 409

    def __init__(
        self,
        message: str = "Resource conflict",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class MigrationConflictError(ConflictError):
    """Raised when a destination lot id is already taken by an unrelated lot."""

    error_code = "MIGRATION_CONFLICT"

    def __init__(
        self,
        dashboard_id: str,
        lot_id: str,
        *,
        existing_source_lot_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["dashboard_id"] = dashboard_id
        details["lot_id"] = lot_id
        if existing_source_lot_id:
            details["existing_source_lot_id"] = existing_source_lot_id
        super().__init__(
            f"Lot {lot_id} already exists on dashboard {dashboard_id} and is not linked to this source",
            details=details,
        )


# ===================
# 412 Precondition Errors
# ===================


class ConfigurationError(LotFlowException):
    """Raised when an operator-side setting is missing or invalid."""

    error_code = "CONFIGURATION_ERROR"
    callable_code = "failed-precondition"
    status_code = 412

    def __init__(
        self,
        message: str = "Service is not configured",
        *,
        setting: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if setting:
            details["setting"] = setting
        super().__init__(message, details=details)


# ===================
# 500 Internal Server Errors
# ===================


class IntegrationError(LotFlowException):
    """Raised when an external service (Firestore, Firebase Auth) fails."""

    error_code = "INTEGRATION_ERROR"
    callable_code = "internal"
    status_code = 500

    def __init__(
        self,
        service: str,
        message: str = "External service error",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["service"] = service
        super().__init__(f"{service}: {message}", details=details)
