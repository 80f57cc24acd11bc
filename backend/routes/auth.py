"""
Auth endpoints — wallet signature challenge/verify.

  POST /auth/challenge  -> nonce + message to sign
  POST /auth/verify     -> JWT access token for the registry endpoints
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db, transaction
from middleware.rate_limit import rate_limit
from services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


class ChallengeRequest(BaseModel):
    wallet_address: str = Field(..., alias="walletAddress", min_length=58, max_length=58)


class ChallengeResponse(BaseModel):
    wallet_address: str = Field(..., alias="walletAddress")
    nonce: str
    expires_at: str = Field(..., alias="expiresAt")
    message: str


class VerifyRequest(BaseModel):
    wallet_address: str = Field(..., alias="walletAddress", min_length=58, max_length=58)
    nonce: str = Field(..., min_length=16, max_length=128)
    signature: str = Field(
        ...,
        min_length=16,
        description="Base64 signature over the nonce bytes (utf-8), as produced by algosdk sign_bytes.",
    )


class VerifyResponse(BaseModel):
    wallet_address: str = Field(..., alias="walletAddress")
    role: str
    access_token: str = Field(..., alias="accessToken")
    token_type: str = Field("Bearer", alias="tokenType")
    expires_in_seconds: int = Field(..., alias="expiresInSeconds")


_challenge_limit = rate_limit(
    "auth:challenge", settings.auth_challenge_rate_limit, settings.rate_limit_window_seconds
)
_verify_limit = rate_limit(
    "auth:verify", settings.auth_verify_rate_limit, settings.rate_limit_window_seconds
)


@router.post("/challenge", response_model=ChallengeResponse)
async def create_challenge(
    request: ChallengeRequest,
    db: AsyncSession = Depends(get_db),
    _rate=Depends(_challenge_limit),
):
    async with transaction(db):
        challenge = await auth_service.create_challenge(db, request.wallet_address)

    return ChallengeResponse(
        walletAddress=challenge.wallet_address,
        nonce=challenge.nonce,
        expiresAt=challenge.expires_at.isoformat(),
        message=auth_service.challenge_message(
            challenge.wallet_address, challenge.nonce, challenge.expires_at
        ),
    )


@router.post("/verify", response_model=VerifyResponse)
async def verify_challenge(
    request: VerifyRequest,
    db: AsyncSession = Depends(get_db),
    _rate=Depends(_verify_limit),
):
    async with transaction(db):
        issued = await auth_service.verify_challenge(
            db, request.wallet_address, request.nonce, request.signature
        )

    return VerifyResponse(
        walletAddress=issued.wallet_address,
        role=issued.role,
        accessToken=issued.access_token,
        expiresInSeconds=issued.expires_in_seconds,
    )
