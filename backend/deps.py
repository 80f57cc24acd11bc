"""
Shared FastAPI dependencies.

Routers import DB session, caller identity and pagination from here.
"""

from __future__ import annotations

from typing import TypedDict

from fastapi import Depends, Query

from middleware.auth import require_authenticated_wallet
from utils.validators import validate_algorand_address


class Pagination(TypedDict):
    limit: int
    offset: int


def pagination_params(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=100_000),
) -> Pagination:
    return {"limit": limit, "offset": offset}


async def require_caller(
    wallet: str = Depends(require_authenticated_wallet),
) -> str:
    """
    The authenticated caller wallet for state-changing registry calls.

    Whether the caller may perform the operation (admin, owner, approved,
    operator) is decided by registry_service, not here.
    """
    return validate_algorand_address(wallet, field="caller")
