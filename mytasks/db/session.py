"""
Async SQLAlchemy engine and session factory.
Provides the get_db dependency; the request's unit of work commits on success.
"""
from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from mytasks.core.config import settings
from mytasks.core.exceptions import DatabaseError

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    pool_recycle=3600,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a database session for one request.
    Storage side effects committed before a failure are not undone by the rollback.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            raise DatabaseError(f"Failed to commit transaction: {exc}") from exc
        except Exception:
            await session.rollback()
            raise
