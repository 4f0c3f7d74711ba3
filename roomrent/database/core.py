from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy.orm import DeclarativeBase
from roomrent.config import config


class Base(DeclarativeBase):
    pass


def build_engine(url: str) -> AsyncEngine:
    # Connections to PostgreSQL can go stale between daily cron runs
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)
    return create_async_engine(url, echo=False, pool_pre_ping=True)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    """Objects stay readable after commit; services commit per operation."""
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


async def create_tables(bind: AsyncEngine):
    """Create the schema directly (tests and local SQLite runs); production uses the migrations."""
    # Models register on Base.metadata when imported
    from roomrent.database import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


engine = build_engine(config.DATABASE_URL)
AsyncSessionLocal = build_session_factory(engine)
