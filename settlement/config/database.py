"""
Database configuration.

Async engine and session maker. Sessions keep loaded attributes after
commit so results can be used once the transaction is closed.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from settlement.config.settings import Settings, settings as default_settings


def create_engine(
    settings: Settings = default_settings, null_pool: bool = False
) -> AsyncEngine:
    """
    Create async engine.

    Args:
        settings: Application settings
        null_pool: Disable pooling (worker threads with their own loops)

    Returns:
        AsyncEngine
    """
    if null_pool:
        return create_async_engine(
            settings.database_url,
            echo=settings.database_echo,
            poolclass=NullPool,
        )
    return create_async_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


def create_session_maker(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create session maker bound to engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
