"""
Domain exceptions for the BizChat API.

Each class maps to one HTTP status; main.py's handler turns them into the
standard error envelope using the class name as the error code
(NotFoundError -> "notfound", FeatureDisabledError -> "featuredisabled").
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: dict | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details or {}


class NotFoundError(DomainError):
    """Resource not found (404)."""
    def __init__(self, resource_type: str, identifier: str | int, details: dict | None = None):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class ValidationError(DomainError):
    """Request is well-formed but semantically invalid (400)."""
    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            details = {**(details or {}), "field": field}
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class UnauthorizedError(DomainError):
    """Missing, invalid or expired session (401)."""
    def __init__(self, message: str = "Authentication required", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED, details=details)


class PermissionDeniedError(DomainError):
    """Authenticated but not allowed (403)."""
    def __init__(self, message: str = "Permission denied", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN, details=details)


class FeatureDisabledError(PermissionDeniedError):
    """Feature flag switched off by an admin (403)."""
    def __init__(self, feature_key: str):
        super().__init__(
            f"Feature '{feature_key}' is currently disabled",
            details={"feature": feature_key},
        )


class ConflictError(DomainError):
    """Resource conflict (409)."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_409_CONFLICT, details=details)


class InvalidTransitionError(ConflictError):
    """Status change not allowed from the current state (409)."""
    def __init__(self, resource_type: str, current: str, requested: str):
        super().__init__(
            f"{resource_type} cannot move from '{current}' to '{requested}'",
            details={"current": current, "requested": requested},
        )


class RateLimitError(DomainError):
    """Rate limit exceeded (429)."""
    def __init__(self, message: str = "Rate limit exceeded", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_429_TOO_MANY_REQUESTS, details=details)


class UpstreamServiceError(DomainError):
    """Third-party provider failure: email, WhatsApp gateway, media host (502)."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_502_BAD_GATEWAY, details=details)
