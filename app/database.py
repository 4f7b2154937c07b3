"""
Async SQLAlchemy engine and session handling for ADPA.

PostgreSQL (asyncpg) in production, SQLite (aiosqlite) for tests and local
runs.  Tables are created at startup; there are no migrations.
"""
from typing import AsyncGenerator, Callable
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from app.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,
    pool_pre_ping=True,
    poolclass=NullPool,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.  Commits when the endpoint returns, rolls back
    if it raises.

    Example:
        @router.get("/templates")
        async def list_templates(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(Template))
            return result.scalars().all()
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as exc:
            await session.rollback()
            logger.error("Database session rolled back: %s", exc)
            raise


def get_session_factory() -> Callable[[], AsyncSession]:
    """Session factory for background generation jobs, which outlive the request session."""
    return AsyncSessionLocal


async def ping(session: AsyncSession) -> bool:
    """True if a trivial query round-trips."""
    try:
        await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("✗ Database ping failed: %s", exc)
        return False
    return True


async def init_db() -> None:
    """Create the templates, documents, reviewers, reviews and feedback tables."""
    # Registers the ORM classes on Base.metadata
    from app.models import database_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✓ Database tables created/verified (%d)", len(Base.metadata.tables))


async def close_db() -> None:
    await engine.dispose()
    logger.info("Database connections closed")
