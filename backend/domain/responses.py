"""
Response envelopes for the registry API.

- Success: { "success": true, "data": <payload>, "meta": {...} }
- Error:   { "success": false, "error": { "code": "...", "message": "...", "details": {...} } }

Error codes are derived from the exception class: TokenNotFoundError ->
"token_not_found", BoundTokenTransferDeniedError -> "bound_token_transfer_denied".
"""
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class ErrorDetail(BaseModel):
    code: str = Field(..., description="Error code (e.g., 'token_not_found', 'unauthorized')")
    message: str
    details: dict[str, Any] | None = None


class StandardErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail


class PageMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    limit: int
    offset: int
    total: int
    has_more: bool = Field(..., alias="hasMore")


def error_code_for(exc: Exception) -> str:
    name = exc.__class__.__name__.removesuffix("Error")
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def success_response(data: Any, meta: dict[str, Any] | None = None) -> dict[str, Any]:
    response = {"success": True, "data": data}
    if meta:
        response["meta"] = meta
    return response


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    return StandardErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details or None),
    ).model_dump()


def paginated_response(items: list[Any], limit: int, offset: int, total: int) -> dict[str, Any]:
    """One page of `items` out of `total` matching rows."""
    meta = PageMeta(limit=limit, offset=offset, total=total, has_more=offset + len(items) < total)
    return success_response(data=items, meta=meta.model_dump(by_alias=True))
