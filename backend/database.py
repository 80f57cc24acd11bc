"""
Database engine and session management for the Soulbound Token Registry.

The registry state, tokens, approvals and the event log all live in one
SQLAlchemy database (aiosqlite by default). Tables are created on startup
by init_db().

Every state-changing registry call runs inside transaction():
    - calls in this process run one at a time (write lock)
    - a failed check leaves no partial write and no event behind
    - rows changed underneath by another process surface as a 409
      (version columns on Token and RegistryState)
"""
import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.orm.exc import StaleDataError

from config import settings
from domain.errors import ConcurrentUpdateError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


engine = create_async_engine(settings.async_database_url, echo=settings.database_echo)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

# One lock per event loop; asyncio.Lock must not be shared across loops
_write_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock]" = (
    weakref.WeakKeyDictionary()
)


def _write_lock() -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    lock = _write_locks.get(loop)
    if lock is None:
        lock = _write_locks[loop] = asyncio.Lock()
    return lock


async def init_db() -> None:
    """Create registry tables that do not exist yet."""
    import db_models  # noqa: F401  (registers tables on Base.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Registry tables ready ({engine.url.get_backend_name()})")


async def dispose_db() -> None:
    await engine.dispose()


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency — one session per request."""
    async with async_session() as session:
        yield session


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    All-or-nothing, serialized registry call. Not re-entrant.

    Commits when the block finishes. On any exception the session is rolled
    back, so token rows, counters and events written so far are discarded.
    Version or uniqueness conflicts with a concurrent writer are raised as
    ConcurrentUpdateError; every other exception propagates unchanged.

    Services re-read the rows they check (populate_existing) once the lock
    is held, so a session that loaded a token earlier never acts on a copy
    another call has since changed.
    """
    async with _write_lock():
        try:
            yield db
            await db.commit()
        except (StaleDataError, IntegrityError) as exc:
            await db.rollback()
            logger.warning(f"Concurrent registry write rejected: {type(exc).__name__}")
            raise ConcurrentUpdateError() from exc
        except Exception as exc:
            await db.rollback()
            logger.debug(f"Rolled back registry call: {type(exc).__name__}")
            raise
