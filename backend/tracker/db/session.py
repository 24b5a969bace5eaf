"""
Database session management.

WHY: Each request works in exactly one AsyncSession. Everything a request
writes (a ticket status and the review comment annotating it, a ticket
delete and its cascade) commits or rolls back together.
"""

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from tracker.core.config import settings


# Create async engine
# WHY: pool_pre_ping recycles stale connections after database restarts.
engine = create_async_engine(
    settings.async_database_url,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
)

# Create session factory
# WHY: expire_on_commit=False keeps loaded tickets usable for the response
# after the commit, without lazy loads outside the greenlet.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.

    Commits when the request handler returns, rolls back if it raises.

    Yields:
        AsyncSession: Database session for the request
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
