"""
SQLAlchemy ORM models for the Soulbound Token Registry.

Tables:
    registry_state     — single row: name, symbol, base URI, admin, ID counter
    tokens             — one row per minted token (owner, binding, approval)
    operator_approvals — owner → operator grants (manage all tokens)
    registry_events    — append-only log of Bound/Unbound/Transfer/... events
    auth_challenges    — wallet login nonces for signature verification
"""
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text,
    UniqueConstraint, Index,
)

from database import Base
from domain.constants import ZERO_ADDRESS


class RegistryState(Base):
    """The registry itself. Exactly one row (id=1) once initialized."""
    __tablename__ = "registry_state"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    symbol = Column(String(20), nullable=False)
    base_uri = Column(Text, nullable=False, default="")
    admin_wallet = Column(String(58), nullable=False)
    next_token_id = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    # Bumped on every UPDATE; a writer holding an older version gets StaleDataError
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class Token(Base):
    """A minted token. bound_to == ZERO_ADDRESS means transferable."""
    __tablename__ = "tokens"

    token_id = Column(Integer, primary_key=True, autoincrement=False)
    owner_wallet = Column(String(58), nullable=False, index=True)
    bound_to = Column(String(58), nullable=False, default=ZERO_ADDRESS)
    approved_wallet = Column(String(58), nullable=True)
    minted_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    version = Column(Integer, nullable=False)

    __table_args__ = (
        # For enumeration of an owner's tokens in ID order
        Index("ix_tokens_owner_token", "owner_wallet", "token_id"),
    )
    __mapper_args__ = {"version_id_col": version}

    @property
    def is_bound(self) -> bool:
        return self.bound_to != ZERO_ADDRESS


class OperatorApproval(Base):
    """Operator allowed to manage every token of an owner."""
    __tablename__ = "operator_approvals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_wallet = Column(String(58), nullable=False, index=True)
    operator_wallet = Column(String(58), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("owner_wallet", "operator_wallet", name="uq_operator_owner_operator"),
    )


class RegistryEvent(Base):
    """
    Observable registry events, oldest first by id.

    BOUND:            token_id, to_wallet=owner
    UNBOUND:          token_id
    TRANSFER:         token_id, from_wallet, to_wallet (from=zero on mint)
    APPROVAL:         token_id, from_wallet=owner, to_wallet=approved
    APPROVAL_FOR_ALL: from_wallet=owner, to_wallet=operator, approved
    ADMIN_TRANSFERRED: from_wallet=old admin, to_wallet=new admin
    """
    __tablename__ = "registry_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(String(30), nullable=False, index=True)
    token_id = Column(Integer, nullable=True, index=True)
    from_wallet = Column(String(58), nullable=True)
    to_wallet = Column(String(58), nullable=True)
    approved = Column(Boolean, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class AuthChallenge(Base):
    """
    Short-lived nonce used for wallet signature-based authentication.

    Flow:
      1) Client requests challenge for a wallet.
      2) Client signs nonce bytes with the wallet key.
      3) Backend verifies signature and issues JWT access token.
    """

    __tablename__ = "auth_challenges"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_address = Column(String(58), nullable=False, index=True)
    nonce = Column(String(128), nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("wallet_address", "nonce", name="uq_auth_challenge_wallet_nonce"),
    )
