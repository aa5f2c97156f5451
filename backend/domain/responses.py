"""
Response envelope helpers.

- Success: { "success": true, "data": <payload>, "meta": {...} }
- Error:   { "success": false, "error": { "code", "message", "details" } }
"""
import math
from typing import Any

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    code: str = Field(..., description="Error code (e.g., 'notfound', 'validation')")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(default=None, description="Additional error context")


class StandardErrorResponse(BaseModel):
    """Documented in OpenAPI for every router via main.py."""
    success: bool = Field(False, description="Always false for errors")
    error: ErrorDetail


def success_response(data: Any, meta: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Create a standardized success response.

    Args:
        data: The response payload
        meta: Optional metadata (pagination, counters, ...)
    """
    response = {"success": True, "data": data}
    if meta:
        response["meta"] = meta
    return response


def paginated_response(items: list[Any], *, page: int, limit: int, total: int) -> dict[str, Any]:
    """Page-based pagination as used by the admin tables."""
    meta = {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }
    return success_response(data=items, meta=meta)
