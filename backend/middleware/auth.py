"""
Access tokens for wallet-authenticated registry calls.

A wallet proves control once (signature over a nonce, services/auth_service.py)
and receives a short-lived HS256 JWT. State-changing registry endpoints read
the caller from

    Authorization: Bearer <jwt>

The subject claim is the caller wallet; the role claim ("admin" or "holder")
is informational only. registry_service re-checks admin rights against the
stored admin on every call, so a token minted before an admin hand-over
grants nothing.
"""
import logging
from datetime import datetime, timezone, timedelta
from typing import Optional

import jwt
from fastapi import Header
from pydantic import BaseModel

from config import settings
from domain.errors import (
    AccessTokenExpiredError,
    AuthenticationRequiredError,
    AuthMisconfiguredError,
    InvalidAccessTokenError,
)

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["exp", "iat", "iss", "sub"]


class AccessClaims(BaseModel):
    sub: str
    role: str = "holder"
    iss: str
    iat: int
    exp: int

    @property
    def wallet(self) -> str:
        return self.sub


def _secret() -> str:
    if not settings.jwt_secret:
        raise AuthMisconfiguredError()
    return settings.jwt_secret


def _bearer(authorization: Optional[str]) -> Optional[str]:
    """Token part of 'Bearer <token>', None for anything else."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def issue_access_token(*, wallet_address: str, role: str) -> str:
    now = datetime.now(timezone.utc).replace(microsecond=0)
    claims = AccessClaims(
        sub=wallet_address,
        role=role,
        iss=settings.jwt_issuer,
        iat=int(now.timestamp()),
        exp=int((now + timedelta(minutes=settings.jwt_access_ttl_minutes)).timestamp()),
    )
    return jwt.encode(claims.model_dump(), _secret(), algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> AccessClaims:
    try:
        payload = jwt.decode(
            token,
            _secret(),
            algorithms=[JWT_ALGORITHM],
            issuer=settings.jwt_issuer,
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise AccessTokenExpiredError()
    except jwt.InvalidTokenError as exc:
        logger.info(f"Rejected access token: {exc}")
        raise InvalidAccessTokenError()
    return AccessClaims(**payload)


async def get_authenticated_wallet(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> Optional[str]:
    """Wallet from a Bearer JWT, or None when no token was sent."""
    token = _bearer(authorization)
    if token is None:
        return None
    return decode_access_token(token).wallet


async def require_authenticated_wallet(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> str:
    wallet = await get_authenticated_wallet(authorization=authorization)
    if not wallet:
        raise AuthenticationRequiredError()
    return wallet
