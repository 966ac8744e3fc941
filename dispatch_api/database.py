"""
Database Connection and Session Management

This module sets up SQLAlchemy's async database engine and provides
a dependency injection function for FastAPI routes to access database sessions.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from dispatch_api.config import settings


# Async engine; the driver comes from DATABASE_URL
# (asyncpg in production, aiosqlite in tests)
engine = create_async_engine(settings.DATABASE_URL, echo=False)


# expire_on_commit=False keeps attributes readable after commit.
# Async sessions cannot lazily refresh expired objects.
AsyncSessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_db():
    """
    Database session dependency for FastAPI routes.

    Yields one session per request. FastAPI caches the dependency, so the
    authentication dependency and the route handler share the same session.
    """
    async with AsyncSessionLocal() as session:
        yield session
