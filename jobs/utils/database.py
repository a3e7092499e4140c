"""Database initialization for tasks."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from settlement.config.database import create_engine, create_session_maker
from settlement.config.settings import settings


def create_task_engine() -> AsyncEngine:
    """Create engine for tasks (no pooling across worker threads)."""
    return create_engine(settings, null_pool=True)


def create_task_session_maker(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create session maker for tasks."""
    if engine is None:
        engine = create_task_engine()
    return create_session_maker(engine)


# Ready-to-use instances
task_engine = create_task_engine()
task_session_maker = create_task_session_maker(task_engine)
