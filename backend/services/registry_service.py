"""
Soulbound Token Registry — ownership bookkeeping plus a per-token binding
ledger that vetoes transfers.

Lifecycle:
    mint (admin)  →  bound to recipient  →  unbind (admin)  →  transferable

Rules:
    - Token IDs come from registry_state.next_token_id (0, 1, 2, ...) and are
      never reused.
    - A token's bound_to is either ZERO_ADDRESS or the wallet it was minted to.
    - Only the admin may mint, unbind, or hand over administration.
    - A transfer from a wallet the token is bound to is always rejected.

Every function validates before it mutates, so a raised DomainError leaves
the session untouched. Callers commit (see database.transaction()).
"""
import logging
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import RegistryState, Token, OperatorApproval, RegistryEvent
from domain.constants import ZERO_ADDRESS, REGISTRY_STATE_ID, FIRST_TOKEN_ID
from domain.enums import RegistryEventType
from domain.errors import (
    UnauthorizedError,
    TokenNotFoundError,
    NotBoundError,
    BoundTokenTransferDeniedError,
    NotOwnerOrApprovedError,
    IncorrectOwnerError,
    InvalidAddressError,
    IndexOutOfBoundsError,
    RegistryNotInitializedError,
)
from utils.validators import validate_algorand_address, validate_recipient_address

logger = logging.getLogger(__name__)


# ── Registry state ─────────────────────────────────────────────────


async def init_registry(
    db: AsyncSession,
    admin_wallet: str,
    base_uri: str = "",
    name: str = "Soulbound Registry",
    symbol: str = "SOUL",
) -> RegistryState:
    """
    Create the registry row. Idempotent: an existing registry is returned
    unchanged, so restarting with different settings never rewrites it.
    """
    existing = await db.get(RegistryState, REGISTRY_STATE_ID, populate_existing=True)
    if existing:
        return existing

    validate_recipient_address(admin_wallet, field="admin_wallet")
    state = RegistryState(
        id=REGISTRY_STATE_ID,
        name=name,
        symbol=symbol,
        base_uri=base_uri,
        admin_wallet=admin_wallet,
        next_token_id=FIRST_TOKEN_ID,
    )
    db.add(state)
    await db.flush()
    await _record_event(
        db, RegistryEventType.ADMIN_TRANSFERRED,
        from_wallet=ZERO_ADDRESS, to_wallet=admin_wallet,
    )

    logger.info(f"Registry '{name}' ({symbol}) initialized — admin {admin_wallet[:8]}...")
    return state


async def get_registry(db: AsyncSession) -> RegistryState:
    state = await db.get(RegistryState, REGISTRY_STATE_ID, populate_existing=True)
    if not state:
        raise RegistryNotInitializedError()
    return state


async def _require_admin(db: AsyncSession, caller: str, operation: str) -> RegistryState:
    state = await get_registry(db)
    if caller != state.admin_wallet or state.admin_wallet == ZERO_ADDRESS:
        logger.warning(f"Rejected {operation}: {str(caller)[:8]}... is not admin")
        raise UnauthorizedError(caller, operation)
    return state


async def _get_token(db: AsyncSession, token_id: int) -> Token:
    # Always the committed row, never a copy cached earlier in this session
    token = await db.get(Token, token_id, populate_existing=True)
    if not token:
        raise TokenNotFoundError(token_id)
    return token


async def _record_event(
    db: AsyncSession,
    event_type: RegistryEventType,
    token_id: Optional[int] = None,
    from_wallet: Optional[str] = None,
    to_wallet: Optional[str] = None,
    approved: Optional[bool] = None,
) -> RegistryEvent:
    event = RegistryEvent(
        event_type=event_type.value,
        token_id=token_id,
        from_wallet=from_wallet,
        to_wallet=to_wallet,
        approved=approved,
    )
    db.add(event)
    await db.flush()
    return event


# ── Binding state machine ──────────────────────────────────────────


async def mint(db: AsyncSession, caller: str, to_wallet: str) -> Token:
    """
    Mint the next token to `to_wallet` and bind it there.

    Emits TRANSFER (zero → to) and BOUND (token_id, to).

    Raises:
        UnauthorizedError: caller is not the admin
        InvalidAddressError: `to_wallet` is malformed or the zero address
    """
    state = await _require_admin(db, caller, "mint")
    validate_recipient_address(to_wallet, field="to")

    token_id = state.next_token_id
    token = Token(
        token_id=token_id,
        owner_wallet=to_wallet,
        bound_to=to_wallet,
        approved_wallet=None,
    )
    db.add(token)
    state.next_token_id = token_id + 1
    await db.flush()

    await _record_event(
        db, RegistryEventType.TRANSFER,
        token_id=token_id, from_wallet=ZERO_ADDRESS, to_wallet=to_wallet,
    )
    await _record_event(db, RegistryEventType.BOUND, token_id=token_id, to_wallet=to_wallet)

    logger.info(f"Minted token #{token_id} → {to_wallet[:8]}... (bound)")
    return token


async def is_bound(db: AsyncSession, token_id: int, wallet: str) -> bool:
    """True iff `token_id` exists and is currently bound to `wallet`."""
    validate_algorand_address(wallet, field="wallet")
    if wallet == ZERO_ADDRESS:
        return False
    token = await db.get(Token, token_id)
    if not token:
        return False
    return token.bound_to == wallet


async def unbind(db: AsyncSession, caller: str, token_id: int) -> Token:
    """
    Clear a token's binding so normal transfer rules apply.

    Raises:
        UnauthorizedError: caller is not the admin
        TokenNotFoundError: token was never minted
        NotBoundError: binding is clear or no longer matches the owner
    """
    await _require_admin(db, caller, "unbind")
    token = await _get_token(db, token_id)

    if token.bound_to == ZERO_ADDRESS or token.bound_to != token.owner_wallet:
        logger.warning(f"Rejected unbind: token #{token_id} is not bound")
        raise NotBoundError(token_id)

    token.bound_to = ZERO_ADDRESS
    await db.flush()
    await _record_event(db, RegistryEventType.UNBOUND, token_id=token_id)

    logger.info(f"Unbound token #{token_id} (owner {token.owner_wallet[:8]}...)")
    return token


# ── Ownership & approvals ──────────────────────────────────────────


async def _is_operator(db: AsyncSession, owner_wallet: str, operator_wallet: str) -> bool:
    result = await db.execute(
        select(OperatorApproval.id).where(
            OperatorApproval.owner_wallet == owner_wallet,
            OperatorApproval.operator_wallet == operator_wallet,
        )
    )
    return result.scalar_one_or_none() is not None


async def _is_owner_or_approved(db: AsyncSession, token: Token, caller: str) -> bool:
    if caller == token.owner_wallet:
        return True
    if token.approved_wallet and caller == token.approved_wallet:
        return True
    return await _is_operator(db, token.owner_wallet, caller)


async def transfer(
    db: AsyncSession,
    caller: str,
    from_wallet: str,
    to_wallet: str,
    token_id: int,
) -> Token:
    """
    Move `token_id` from `from_wallet` to `to_wallet`.

    The binding guard runs first: a token bound to `from_wallet` never moves.
    After that the usual rules apply (from must own it, caller must be the
    owner, the approved wallet, or an operator of the owner).

    Emits TRANSFER and clears any single-token approval.
    """
    token = await _get_token(db, token_id)
    validate_algorand_address(from_wallet, field="from")

    if token.bound_to != ZERO_ADDRESS and token.bound_to == from_wallet:
        logger.warning(f"Rejected transfer of token #{token_id}: bound to {from_wallet[:8]}...")
        raise BoundTokenTransferDeniedError(token_id, from_wallet)

    if token.owner_wallet != from_wallet:
        raise IncorrectOwnerError(token_id, from_wallet)
    validate_recipient_address(to_wallet, field="to")
    if not await _is_owner_or_approved(db, token, caller):
        logger.warning(f"Rejected transfer of token #{token_id}: caller {caller[:8]}... not approved")
        raise NotOwnerOrApprovedError(token_id, caller)

    token.owner_wallet = to_wallet
    token.approved_wallet = None
    await db.flush()
    await _record_event(
        db, RegistryEventType.TRANSFER,
        token_id=token_id, from_wallet=from_wallet, to_wallet=to_wallet,
    )

    logger.info(f"Transferred token #{token_id}: {from_wallet[:8]}... → {to_wallet[:8]}...")
    return token


async def approve(db: AsyncSession, caller: str, approved_wallet: str, token_id: int) -> Token:
    """
    Approve `approved_wallet` to move `token_id`; ZERO_ADDRESS clears it.

    Approving a bound token is allowed. The binding still blocks the move.
    """
    token = await _get_token(db, token_id)
    validate_algorand_address(approved_wallet, field="approved")
    if approved_wallet == token.owner_wallet:
        raise InvalidAddressError("Cannot approve the current owner", field="approved")
    if caller != token.owner_wallet and not await _is_operator(db, token.owner_wallet, caller):
        raise NotOwnerOrApprovedError(token_id, caller)

    token.approved_wallet = None if approved_wallet == ZERO_ADDRESS else approved_wallet
    await db.flush()
    await _record_event(
        db, RegistryEventType.APPROVAL,
        token_id=token_id, from_wallet=token.owner_wallet, to_wallet=approved_wallet,
    )
    return token


async def set_approval_for_all(
    db: AsyncSession,
    caller: str,
    operator_wallet: str,
    approved: bool,
) -> None:
    """Grant or revoke `operator_wallet` over all of the caller's tokens."""
    validate_recipient_address(operator_wallet, field="operator")
    if operator_wallet == caller:
        raise InvalidAddressError("Cannot set yourself as operator", field="operator")

    result = await db.execute(
        select(OperatorApproval).where(
            OperatorApproval.owner_wallet == caller,
            OperatorApproval.operator_wallet == operator_wallet,
        )
    )
    existing = result.scalar_one_or_none()
    if approved and not existing:
        db.add(OperatorApproval(owner_wallet=caller, operator_wallet=operator_wallet))
    elif not approved and existing:
        await db.delete(existing)
    await db.flush()

    await _record_event(
        db, RegistryEventType.APPROVAL_FOR_ALL,
        from_wallet=caller, to_wallet=operator_wallet, approved=approved,
    )
    logger.info(
        f"Operator {operator_wallet[:8]}... {'approved' if approved else 'revoked'} "
        f"for {caller[:8]}..."
    )


async def get_approved(db: AsyncSession, token_id: int) -> str:
    token = await _get_token(db, token_id)
    return token.approved_wallet or ZERO_ADDRESS


async def is_approved_for_all(db: AsyncSession, owner_wallet: str, operator_wallet: str) -> bool:
    validate_algorand_address(owner_wallet, field="owner")
    validate_algorand_address(operator_wallet, field="operator")
    return await _is_operator(db, owner_wallet, operator_wallet)


async def owner_of(db: AsyncSession, token_id: int) -> str:
    token = await _get_token(db, token_id)
    return token.owner_wallet


async def balance_of(db: AsyncSession, owner_wallet: str) -> int:
    validate_recipient_address(owner_wallet, field="owner")
    result = await db.execute(
        select(func.count(Token.token_id)).where(Token.owner_wallet == owner_wallet)
    )
    return result.scalar_one()


# ── Enumeration ────────────────────────────────────────────────────


async def total_supply(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(Token.token_id)))
    return result.scalar_one()


async def token_by_index(db: AsyncSession, index: int) -> int:
    """Token ID at position `index` of all tokens, in ID order."""
    size = await total_supply(db)
    if index < 0 or index >= size:
        raise IndexOutOfBoundsError(index, size)
    result = await db.execute(
        select(Token.token_id).order_by(Token.token_id).offset(index).limit(1)
    )
    return result.scalar_one()


async def token_of_owner_by_index(db: AsyncSession, owner_wallet: str, index: int) -> int:
    """Token ID at position `index` of `owner_wallet`'s tokens, in ID order."""
    size = await balance_of(db, owner_wallet)
    if index < 0 or index >= size:
        raise IndexOutOfBoundsError(index, size)
    result = await db.execute(
        select(Token.token_id)
        .where(Token.owner_wallet == owner_wallet)
        .order_by(Token.token_id)
        .offset(index)
        .limit(1)
    )
    return result.scalar_one()


async def tokens_of_owner(db: AsyncSession, owner_wallet: str) -> list:
    validate_recipient_address(owner_wallet, field="owner")
    result = await db.execute(
        select(Token).where(Token.owner_wallet == owner_wallet).order_by(Token.token_id)
    )
    return result.scalars().all()


async def get_token(db: AsyncSession, token_id: int) -> Token:
    return await _get_token(db, token_id)


async def token_uri(db: AsyncSession, token_id: int) -> str:
    """Base URI + decimal token ID; empty when no base URI is configured."""
    await _get_token(db, token_id)
    state = await get_registry(db)
    if not state.base_uri:
        return ""
    return f"{state.base_uri}{token_id}"


# ── Administration ─────────────────────────────────────────────────


async def transfer_admin(db: AsyncSession, caller: str, new_admin: str) -> RegistryState:
    state = await _require_admin(db, caller, "transfer_admin")
    validate_recipient_address(new_admin, field="new_admin")

    previous = state.admin_wallet
    state.admin_wallet = new_admin
    await db.flush()
    await _record_event(
        db, RegistryEventType.ADMIN_TRANSFERRED, from_wallet=previous, to_wallet=new_admin,
    )

    logger.info(f"Registry admin transferred: {previous[:8]}... → {new_admin[:8]}...")
    return state


async def renounce_admin(db: AsyncSession, caller: str) -> RegistryState:
    """Leave the registry without an admin. Mint and unbind are then closed for good."""
    state = await _require_admin(db, caller, "renounce_admin")

    previous = state.admin_wallet
    state.admin_wallet = ZERO_ADDRESS
    await db.flush()
    await _record_event(
        db, RegistryEventType.ADMIN_TRANSFERRED, from_wallet=previous, to_wallet=ZERO_ADDRESS,
    )

    logger.warning(f"Registry admin renounced by {previous[:8]}...")
    return state


# ── Event log ──────────────────────────────────────────────────────


async def list_events(
    db: AsyncSession,
    token_id: Optional[int] = None,
    event_type: Optional[RegistryEventType] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list, int]:
    """Events oldest first, optionally filtered. Returns (page, total)."""
    query = select(RegistryEvent)
    count_query = select(func.count(RegistryEvent.id))
    if token_id is not None:
        query = query.where(RegistryEvent.token_id == token_id)
        count_query = count_query.where(RegistryEvent.token_id == token_id)
    if event_type is not None:
        query = query.where(RegistryEvent.event_type == event_type.value)
        count_query = count_query.where(RegistryEvent.event_type == event_type.value)

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(
        query.order_by(RegistryEvent.id).offset(offset).limit(limit)
    )
    return result.scalars().all(), total
