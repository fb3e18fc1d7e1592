"""Async Database Setup

Engines and session factories are built explicitly from a URL and handed to
the SQL stores; nothing here is created at import time.
"""
from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

from core.logging import db_logger

log = db_logger()

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamps on every dialect.

    Stored as naive UTC; values read back are tagged as UTC.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None or value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    engine_kwargs = {"echo": echo}

    if "sqlite" not in database_url:
        engine_kwargs.update({
            "pool_pre_ping": True,
            "pool_size": 5,
            "max_overflow": 10,
        })

    return create_async_engine(database_url, **engine_kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create every mapped table that does not exist yet."""
    # Registers the mapped classes on Base.metadata
    import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("tables_ready", tables=sorted(Base.metadata.tables))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
