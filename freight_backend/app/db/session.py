"""
Database session configuration.

This module handles database engine creation and session management
using SQLAlchemy with async support for PostgreSQL.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm.exc import StaleDataError
from freight_backend.app.core.config import settings
from freight_backend.app.core.exceptions import ConcurrentUpdateError

# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    future=True,
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Create declarative base for models
Base = declarative_base()


async def get_db():
    """
    FastAPI dependency for database sessions.

    Yields an async database session and ensures it's properly closed.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def commit_or_conflict(db: AsyncSession, resource: str, resource_id=None) -> None:
    """
    Commit, translating a lost optimistic-lock race into ConcurrentUpdateError.
    The transaction is rolled back before the error propagates.
    """
    try:
        await db.commit()
    except StaleDataError:
        await db.rollback()
        raise ConcurrentUpdateError(resource, resource_id)
