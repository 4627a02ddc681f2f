from functools import lru_cache

from sqlalchemy import MetaData, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from caseload.core.config import settings

DATABASE_SCHEMA = settings.DATABASE_SCHEMA or None

Base = declarative_base(metadata=MetaData(schema=DATABASE_SCHEMA))


@lru_cache(maxsize=4)
def _engine_for(url: str) -> AsyncEngine:
    return create_async_engine(url, echo=False)


def get_engine(url: str | None = None) -> AsyncEngine:
    # Created on first use so importing the ORM models never needs a DB driver.
    return _engine_for(url or settings.DATABASE_URL)


def get_sessionmaker(engine: AsyncEngine | None = None) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine or get_engine(), class_=AsyncSession, expire_on_commit=False)


async def ensure_schema(conn) -> None:
    """Create the service-specific schema if it does not exist (idempotent)."""
    if DATABASE_SCHEMA:
        await conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {DATABASE_SCHEMA}"))


async def init_database(engine: AsyncEngine | None = None) -> None:
    # Registers the ORM tables on Base.metadata
    import caseload.modules.assignment.infrastructure.orm_models  # noqa: F401

    async with (engine or get_engine()).begin() as conn:
        await ensure_schema(conn)
        await conn.run_sync(Base.metadata.create_all)
