"""
Pytest configuration and shared fixtures for the Soulbound Token Registry.

Provides an in-memory SQLite session, an httpx client bound to the FastAPI
app, freshly generated Algorand accounts, and JWT helpers.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
from typing import AsyncGenerator

from algosdk import account
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import db_models  # noqa: F401  (registers tables on Base.metadata)
from config import settings
from database import Base, get_db
from main import app
from middleware.auth import issue_access_token
from middleware.rate_limit import reset_rate_limits
from services import registry_service

# ── Test Configuration ───────────────────────────────────────────────
# Set test-only values for settings that would normally come from .env
if not settings.jwt_secret:
    settings.jwt_secret = "test-jwt-secret-for-pytest-only"

BASE_URI = "ipfs://registry-metadata/"


def make_account() -> tuple[str, str]:
    """(private_key, address) of a brand-new Algorand account."""
    return account.generate_account()


def auth_headers(wallet: str, role: str = "holder") -> dict:
    """Authorization header carrying a valid access token for `wallet`."""
    token = issue_access_token(wallet_address=wallet, role=role)
    return {"Authorization": f"Bearer {token}"}


# ── Database Fixtures ────────────────────────────────────────────────


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create an in-memory SQLite database session for each test.

    Uses StaticPool to allow in-memory SQLite with async SQLAlchemy.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx client for the FastAPI app with the in-memory database.

    Overrides get_db so requests and the test share one session.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    reset_rate_limits()
    yield
    reset_rate_limits()


# ── Account Fixtures ─────────────────────────────────────────────────


@pytest.fixture
def admin_account() -> tuple[str, str]:
    return make_account()


@pytest.fixture
def admin_wallet(admin_account) -> str:
    return admin_account[1]


@pytest.fixture
def alice() -> str:
    return make_account()[1]


@pytest.fixture
def bob() -> str:
    return make_account()[1]


@pytest.fixture
def carol() -> str:
    return make_account()[1]


# ── Registry Fixtures ────────────────────────────────────────────────


@pytest.fixture
async def registry(db_session: AsyncSession, admin_wallet: str):
    """Initialized registry with `admin_wallet` as admin and BASE_URI."""
    state = await registry_service.init_registry(
        db_session,
        admin_wallet=admin_wallet,
        base_uri=BASE_URI,
        name="Test Registry",
        symbol="TSOUL",
    )
    await db_session.commit()
    return state


@pytest.fixture
def admin_headers(admin_wallet: str) -> dict:
    return auth_headers(admin_wallet, role="admin")


@pytest.fixture
def headers_for():
    """Factory: headers_for(wallet) -> Authorization header for that wallet."""
    return auth_headers


@pytest.fixture
def new_account():
    """Factory: new_account() -> (private_key, address)."""
    return make_account
