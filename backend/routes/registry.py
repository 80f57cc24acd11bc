"""
Soulbound Token Registry endpoints.

Endpoints:
    GET  /registry                                       — Registry info
    POST /registry/tokens                                — Mint + bind (admin)
    GET  /registry/tokens/by-index/{index}               — Enumerate all tokens
    GET  /registry/tokens/{token_id}                     — Token details
    GET  /registry/tokens/{token_id}/uri                 — Metadata URI
    GET  /registry/tokens/{token_id}/bound/{wallet}      — isBound query
    POST /registry/tokens/{token_id}/unbind              — Clear binding (admin)
    POST /registry/tokens/{token_id}/transfer            — Guarded transfer
    POST /registry/tokens/{token_id}/approve             — Single-token approval
    GET  /registry/owners/{wallet}                       — Balance + token IDs
    GET  /registry/owners/{wallet}/tokens/{index}        — Enumerate owner tokens
    GET  /registry/owners/{wallet}/operators/{operator}  — isApprovedForAll
    PUT  /registry/operators/{operator}                  — setApprovalForAll
    POST /registry/admin/transfer                        — Hand over admin (admin)
    POST /registry/admin/renounce                        — Renounce admin (admin)
    GET  /registry/events                                — Event log

State-changing endpoints need a Bearer token; each runs in one transaction.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db, transaction
from db_models import Token
from deps import Pagination, pagination_params, require_caller
from domain.enums import RegistryEventType
from domain.responses import success_response, paginated_response
from models import (
    MintRequest,
    TransferRequest,
    ApproveRequest,
    OperatorApprovalRequest,
    AdminTransferRequest,
    RegistryInfoResponse,
    TokenResponse,
    BoundResponse,
    OwnerResponse,
    EventResponse,
)
from services import registry_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/registry", tags=["registry"])


def _token_payload(token: Token, uri: str) -> dict:
    return TokenResponse(
        token_id=token.token_id,
        owner=token.owner_wallet,
        bound_to=token.bound_to,
        is_bound=token.is_bound,
        approved=token.approved_wallet,
        token_uri=uri,
        minted_at=token.minted_at,
    ).model_dump(mode="json", by_alias=True)


async def _registry_payload(db: AsyncSession) -> dict:
    state = await registry_service.get_registry(db)
    supply = await registry_service.total_supply(db)
    return RegistryInfoResponse(
        name=state.name,
        symbol=state.symbol,
        base_uri=state.base_uri,
        admin=state.admin_wallet,
        total_supply=supply,
        next_token_id=state.next_token_id,
    ).model_dump(mode="json", by_alias=True)


# ── GET /registry ──────────────────────────────────────────────────
@router.get("")
async def get_registry_info(db: AsyncSession = Depends(get_db)):
    return success_response(await _registry_payload(db))


# ── POST /registry/tokens ──────────────────────────────────────────
@router.post("/tokens", status_code=201)
async def mint_token(
    request: MintRequest,
    caller: str = Depends(require_caller),
    db: AsyncSession = Depends(get_db),
):
    """Mint the next token ID to `to` and bind it there. Admin only."""
    async with transaction(db):
        token = await registry_service.mint(db, caller, request.to)
    uri = await registry_service.token_uri(db, token.token_id)
    return success_response(_token_payload(token, uri))


# ── GET /registry/tokens/by-index/{index} ──────────────────────────
@router.get("/tokens/by-index/{index}")
async def get_token_by_index(
    index: int = Path(..., ge=0),
    db: AsyncSession = Depends(get_db),
):
    token_id = await registry_service.token_by_index(db, index)
    return success_response({"index": index, "tokenId": token_id})


# ── GET /registry/tokens/{token_id} ────────────────────────────────
@router.get("/tokens/{token_id}")
async def get_token(
    token_id: int = Path(..., ge=0),
    db: AsyncSession = Depends(get_db),
):
    token = await registry_service.get_token(db, token_id)
    uri = await registry_service.token_uri(db, token_id)
    return success_response(_token_payload(token, uri))


# ── GET /registry/tokens/{token_id}/uri ────────────────────────────
@router.get("/tokens/{token_id}/uri")
async def get_token_uri(
    token_id: int = Path(..., ge=0),
    db: AsyncSession = Depends(get_db),
):
    uri = await registry_service.token_uri(db, token_id)
    return success_response({"tokenId": token_id, "tokenUri": uri})


# ── GET /registry/tokens/{token_id}/bound/{wallet} ─────────────────
@router.get("/tokens/{token_id}/bound/{wallet}")
async def get_is_bound(
    wallet: str,
    token_id: int = Path(..., ge=0),
    db: AsyncSession = Depends(get_db),
):
    bound = await registry_service.is_bound(db, token_id, wallet)
    return success_response(
        BoundResponse(token_id=token_id, wallet=wallet, is_bound=bound).model_dump(by_alias=True)
    )


# ── POST /registry/tokens/{token_id}/unbind ────────────────────────
@router.post("/tokens/{token_id}/unbind")
async def unbind_token(
    token_id: int = Path(..., ge=0),
    caller: str = Depends(require_caller),
    db: AsyncSession = Depends(get_db),
):
    """Release a soulbound token so it becomes transferable. Admin only."""
    async with transaction(db):
        token = await registry_service.unbind(db, caller, token_id)
    uri = await registry_service.token_uri(db, token_id)
    return success_response(_token_payload(token, uri))


# ── POST /registry/tokens/{token_id}/transfer ──────────────────────
@router.post("/tokens/{token_id}/transfer")
async def transfer_token(
    request: TransferRequest,
    token_id: int = Path(..., ge=0),
    caller: str = Depends(require_caller),
    db: AsyncSession = Depends(get_db),
):
    async with transaction(db):
        token = await registry_service.transfer(
            db, caller, request.from_wallet, request.to_wallet, token_id,
        )
    uri = await registry_service.token_uri(db, token_id)
    return success_response(_token_payload(token, uri))


# ── POST /registry/tokens/{token_id}/approve ───────────────────────
@router.post("/tokens/{token_id}/approve")
async def approve_token(
    request: ApproveRequest,
    token_id: int = Path(..., ge=0),
    caller: str = Depends(require_caller),
    db: AsyncSession = Depends(get_db),
):
    async with transaction(db):
        token = await registry_service.approve(db, caller, request.approved, token_id)
    uri = await registry_service.token_uri(db, token_id)
    return success_response(_token_payload(token, uri))


# ── GET /registry/owners/{wallet} ──────────────────────────────────
@router.get("/owners/{wallet}")
async def get_owner(wallet: str, db: AsyncSession = Depends(get_db)):
    tokens = await registry_service.tokens_of_owner(db, wallet)
    return success_response(
        OwnerResponse(
            wallet=wallet,
            balance=len(tokens),
            token_ids=[t.token_id for t in tokens],
        ).model_dump(by_alias=True)
    )


# ── GET /registry/owners/{wallet}/tokens/{index} ───────────────────
@router.get("/owners/{wallet}/tokens/{index}")
async def get_owner_token_by_index(
    wallet: str,
    index: int = Path(..., ge=0),
    db: AsyncSession = Depends(get_db),
):
    token_id = await registry_service.token_of_owner_by_index(db, wallet, index)
    return success_response({"wallet": wallet, "index": index, "tokenId": token_id})


# ── GET /registry/owners/{wallet}/operators/{operator} ─────────────
@router.get("/owners/{wallet}/operators/{operator}")
async def get_operator_approval(
    wallet: str,
    operator: str,
    db: AsyncSession = Depends(get_db),
):
    approved = await registry_service.is_approved_for_all(db, wallet, operator)
    return success_response({"owner": wallet, "operator": operator, "approved": approved})


# ── PUT /registry/operators/{operator} ─────────────────────────────
@router.put("/operators/{operator}")
async def set_operator_approval(
    operator: str,
    request: OperatorApprovalRequest,
    caller: str = Depends(require_caller),
    db: AsyncSession = Depends(get_db),
):
    """Grant or revoke `operator` over all of the caller's tokens."""
    async with transaction(db):
        await registry_service.set_approval_for_all(db, caller, operator, request.approved)
    return success_response({"owner": caller, "operator": operator, "approved": request.approved})


# ── POST /registry/admin/transfer ──────────────────────────────────
@router.post("/admin/transfer")
async def transfer_registry_admin(
    request: AdminTransferRequest,
    caller: str = Depends(require_caller),
    db: AsyncSession = Depends(get_db),
):
    async with transaction(db):
        await registry_service.transfer_admin(db, caller, request.new_admin)
    return success_response(await _registry_payload(db))


# ── POST /registry/admin/renounce ──────────────────────────────────
@router.post("/admin/renounce")
async def renounce_registry_admin(
    caller: str = Depends(require_caller),
    db: AsyncSession = Depends(get_db),
):
    async with transaction(db):
        await registry_service.renounce_admin(db, caller)
    return success_response(await _registry_payload(db))


# ── GET /registry/events ───────────────────────────────────────────
@router.get("/events")
async def get_events(
    token_id: Optional[int] = Query(None, alias="tokenId", ge=0),
    event_type: Optional[RegistryEventType] = Query(None, alias="type"),
    page: Pagination = Depends(pagination_params),
    db: AsyncSession = Depends(get_db),
):
    events, total = await registry_service.list_events(
        db,
        token_id=token_id,
        event_type=event_type,
        limit=page["limit"],
        offset=page["offset"],
    )
    items = [
        EventResponse(
            id=e.id,
            event_type=e.event_type,
            token_id=e.token_id,
            from_wallet=e.from_wallet,
            to_wallet=e.to_wallet,
            approved=e.approved,
            created_at=e.created_at,
        ).model_dump(mode="json", by_alias=True)
        for e in events
    ]
    return paginated_response(items, limit=page["limit"], offset=page["offset"], total=total)
