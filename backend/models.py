"""
Pydantic models for request/response validation.

Field names are snake_case in Python and camelCase on the wire.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class RegistryBase(BaseModel):
    """Shared base — allows construction by Python name or alias, and from ORM rows."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ── Requests ────────────────────────────────────────────────────────

class MintRequest(RegistryBase):
    """Mint the next token and bind it to `to`."""
    to: str = Field(..., description="Recipient wallet (token is bound to it)")


class TransferRequest(RegistryBase):
    """Transfer a token. Rejected while the token is bound to `from`."""
    from_wallet: str = Field(..., alias="from", description="Current owner")
    to_wallet: str = Field(..., alias="to", description="New owner")


class ApproveRequest(RegistryBase):
    approved: str = Field(
        ...,
        description="Wallet allowed to transfer this token (zero address clears the approval)",
    )


class OperatorApprovalRequest(RegistryBase):
    approved: bool = Field(..., description="Grant (true) or revoke (false) operator rights")


class AdminTransferRequest(RegistryBase):
    new_admin: str = Field(..., alias="newAdmin", description="Wallet that becomes the registry admin")


# ── Responses ───────────────────────────────────────────────────────

class RegistryInfoResponse(RegistryBase):
    name: str
    symbol: str
    base_uri: str = Field(..., alias="baseUri")
    admin: str = Field(..., alias="admin")
    total_supply: int = Field(..., alias="totalSupply")
    next_token_id: int = Field(..., alias="nextTokenId")


class TokenResponse(RegistryBase):
    token_id: int = Field(..., alias="tokenId")
    owner: str
    bound_to: str = Field(..., alias="boundTo")
    is_bound: bool = Field(..., alias="isBound")
    approved: Optional[str] = None
    token_uri: str = Field("", alias="tokenUri")
    minted_at: Optional[datetime] = Field(default=None, alias="mintedAt")


class BoundResponse(RegistryBase):
    token_id: int = Field(..., alias="tokenId")
    wallet: str
    is_bound: bool = Field(..., alias="isBound")


class OwnerResponse(RegistryBase):
    wallet: str
    balance: int
    token_ids: list[int] = Field(default_factory=list, alias="tokenIds")


class EventResponse(RegistryBase):
    id: int
    event_type: str = Field(..., alias="eventType")
    token_id: Optional[int] = Field(default=None, alias="tokenId")
    from_wallet: Optional[str] = Field(default=None, alias="from")
    to_wallet: Optional[str] = Field(default=None, alias="to")
    approved: Optional[bool] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
