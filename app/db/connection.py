"""
Async engine and session handling.

DATABASE_URL selects the backend: sqlite+aiosqlite for development and tests,
postgresql+asyncpg in production. The API uses one module-level engine set up
by init_db(); tools such as the CLI build their own with create_engine_for_url().
"""
import logging
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.db.models import Base

logger = logging.getLogger(__name__)

engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker] = None


def create_engine_for_url(database_url: str) -> AsyncEngine:
    """Async engine tuned for the backend named in the URL"""
    if database_url.startswith("sqlite"):
        # One shared connection so in-memory databases survive across sessions
        return create_async_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_async_engine(
        database_url,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


def create_session_maker(bind: AsyncEngine) -> async_sessionmaker:
    # Loaded attributes stay usable after commit; nothing lazy-loads in async code
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


async def create_tables(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db(database_url: str = None) -> None:
    """Create the application engine and any missing tables."""
    global engine, async_session_maker

    database_url = database_url or settings.database_url
    logger.info(f"Connecting to {database_url.split('://')[0]} database")

    engine = create_engine_for_url(database_url)
    async_session_maker = create_session_maker(engine)
    await create_tables(engine)

    logger.info("✅ Database ready")


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency yielding one session per request.

    Commits when the request succeeds and rolls back when anything raises,
    so services only flush.
    """
    if async_session_maker is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with async_session_maker() as session:
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.debug(f"Rolled back request session: {e!r}")
            raise
        else:
            await session.commit()


async def close_db() -> None:
    """Dispose of the application engine."""
    global engine, async_session_maker
    if engine is None:
        return

    await engine.dispose()
    engine = None
    async_session_maker = None
    logger.info("Database connection closed")
