# legaldocs/db.py
import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)
from legaldocs.config import settings
from legaldocs.models import Base

logger = logging.getLogger(__name__)

engine: AsyncEngine = None
AsyncSessionLocal: async_sessionmaker = None


def configure_engine(database_url: str, **engine_kwargs) -> AsyncEngine:
    """
    (Re)build the module engine and session factory.
    Called once at import with settings.database_url; tests point it at SQLite.
    """
    global engine, AsyncSessionLocal
    engine = create_async_engine(database_url, echo=False, future=True, **engine_kwargs)
    AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    return engine


configure_engine(settings.database_url)


async def init_models() -> None:
    """
    Development helper that creates tables from ORM metadata.
    In production, run `alembic upgrade head` instead.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created/checked")


async def ping() -> bool:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


async def close_engine() -> None:
    """Call this on app shutdown to cleanly dispose connection pool."""
    await engine.dispose()
    logger.info("Database engine disposed")


# FastAPI dependency
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yields one session per request; rolled back if the request fails.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
