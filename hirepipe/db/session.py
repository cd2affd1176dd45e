"""
Database engine and session factory construction.

Nothing here runs at import time: the application entry point builds the
engine once and hands the session factory to the components that need it.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from hirepipe.db.base import Base


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async database engine."""
    return create_async_engine(
        database_url,
        echo=echo,  # When DEBUG=True, prints SQL queries to console
        future=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to `engine`."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Keeps data accessible after commit
    )


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Context manager helper for async DB sessions (used in services/tests/scripts)."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def create_all(engine: AsyncEngine) -> None:
    """Create every table known to the metadata. Tests and scripts only; prod uses Alembic."""
    # local import so every model is registered on Base.metadata
    import hirepipe.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
