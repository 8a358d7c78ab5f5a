"""Database session management."""

from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker

from config import settings

# Async engine for the API
# - pool_pre_ping: Verifies connections are alive before using them
# - echo: Logs all SQL when debug is on
engine = create_async_engine(
    settings.database_url,
    pool_pre_ping=True,
    echo=settings.debug,
)

# - expire_on_commit=False: Objects remain usable after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.

    Usage in FastAPI:
        @app.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db_session)):
            ...

    Commits when the request handler returns, rolls back on error.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def sync_database_url(database_url: str | None = None) -> str:
    """Celery workers talk to the same database through a sync driver."""
    url = database_url or settings.database_url
    return url.replace("+asyncpg", "+psycopg2").replace("+aiosqlite", "")


@lru_cache(maxsize=1)
def get_sync_session_factory() -> sessionmaker[Session]:
    """Synchronous session factory for Celery tasks, created on first use."""
    sync_engine = create_engine(sync_database_url(), pool_pre_ping=True)
    return sessionmaker(bind=sync_engine, expire_on_commit=False)
