"""
Wallet login: nonce challenge, signature verification, access token.

Flow:
  1) create_challenge(wallet)  -> stored nonce valid for auth_challenge_ttl_minutes
  2) client signs the nonce bytes with algosdk util.sign_bytes (b"MX" prefix)
  3) verify_challenge(...)     -> marks the nonce used, returns a JWT

The role in the token is "admin" when the wallet is the current registry
admin at login time, "holder" otherwise.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from algosdk import util as algo_util
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from db_models import AuthChallenge, RegistryState
from domain.constants import REGISTRY_STATE_ID
from domain.errors import ChallengeExpiredError, InvalidChallengeError, InvalidSignatureError
from middleware.auth import issue_access_token
from utils.validators import validate_algorand_address

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_HOLDER = "holder"


@dataclass
class IssuedToken:
    wallet_address: str
    role: str
    access_token: str
    expires_in_seconds: int


def challenge_message(wallet_address: str, nonce: str, expires_at: datetime) -> str:
    """Human-readable text a wallet UI shows next to the nonce."""
    return (
        f"{settings.registry_name} authentication\n"
        f"Wallet: {wallet_address}\n"
        f"Nonce: {nonce}\n"
        f"ExpiresAt: {expires_at.isoformat()}\n"
    )


async def create_challenge(db: AsyncSession, wallet_address: str) -> AuthChallenge:
    validate_algorand_address(wallet_address, field="walletAddress")

    expires_at = datetime.utcnow() + timedelta(minutes=settings.auth_challenge_ttl_minutes)
    challenge = AuthChallenge(
        wallet_address=wallet_address,
        nonce=secrets.token_urlsafe(32)[:64],
        expires_at=expires_at,
    )
    db.add(challenge)
    await db.flush()
    return challenge


async def _role_for(db: AsyncSession, wallet_address: str) -> str:
    state = await db.get(RegistryState, REGISTRY_STATE_ID)
    if state is not None and state.admin_wallet == wallet_address:
        return ROLE_ADMIN
    return ROLE_HOLDER


async def verify_challenge(
    db: AsyncSession, wallet_address: str, nonce: str, signature: str
) -> IssuedToken:
    """
    Exchange a signed, unexpired, unused nonce for an access token.

    Raises:
        InvalidChallengeError: nonce unknown for this wallet or already used
        ChallengeExpiredError: nonce older than its TTL
        InvalidSignatureError: signature not made by the wallet's key
    """
    validate_algorand_address(wallet_address, field="walletAddress")

    result = await db.execute(
        select(AuthChallenge).where(
            AuthChallenge.wallet_address == wallet_address,
            AuthChallenge.nonce == nonce,
            AuthChallenge.used_at.is_(None),
        )
    )
    challenge = result.scalars().first()
    if challenge is None:
        raise InvalidChallengeError()

    now = datetime.utcnow()
    if challenge.expires_at <= now:
        raise ChallengeExpiredError()

    if not algo_util.verify_bytes(nonce.encode("utf-8"), signature, wallet_address):
        logger.warning(f"Signature verification failed for {wallet_address[:8]}...")
        raise InvalidSignatureError(wallet_address)

    challenge.used_at = now
    role = await _role_for(db, wallet_address)
    token = issue_access_token(wallet_address=wallet_address, role=role)

    logger.info(f"Issued access token for {wallet_address[:8]}... ({role})")
    return IssuedToken(
        wallet_address=wallet_address,
        role=role,
        access_token=token,
        expires_in_seconds=settings.jwt_access_ttl_minutes * 60,
    )
