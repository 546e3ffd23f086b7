# clinicslots/db/sql.py
from __future__ import annotations

import logging
from typing import AsyncIterator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from clinicslots.core.config import settings

logger = logging.getLogger(__name__)


def _use_immediate_transactions(engine: AsyncEngine) -> None:
    """
    Make SQLite transactions take the write lock up front.

    pysqlite defers BEGIN and breaks SAVEPOINT; emitting BEGIN IMMEDIATE
    ourselves lets concurrent writers queue on the busy timeout instead of
    failing on a read->write lock upgrade.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def make_engine(dsn: str | None = None, **kwargs) -> AsyncEngine:
    dsn = dsn or settings.SQL_DSN
    if dsn.startswith("sqlite"):
        engine = create_async_engine(dsn, echo=settings.DB_ECHO, **kwargs)
        _use_immediate_transactions(engine)
        return engine

    return create_async_engine(
        dsn,
        echo=settings.DB_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        **kwargs,
    )


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession,
    )


engine = make_engine()
AsyncSessionLocal = make_session_factory(engine)


async def get_session() -> AsyncIterator[AsyncSession]:
    """
    Provide a DB session for each request.
    Commits on success, rolls back and re-raises on any error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping_db(session: AsyncSession) -> str:
    """SELECT 1 on the session's connection; returns the dialect name."""
    await session.execute(text("SELECT 1"))
    return session.get_bind().dialect.name


async def init_db(bind: AsyncEngine | None = None, *, drop: bool = False) -> None:
    """
    Create all tables registered on Base.metadata.
    """
    from clinicslots.db.base import Base

    # Import all models so they get registered on the metadata
    from clinicslots.modules.providers import models as _providers  # noqa: F401
    from clinicslots.modules.calendar import models as _calendar  # noqa: F401
    from clinicslots.modules.appointments import models as _appointments  # noqa: F401
    from clinicslots.modules.slots import models as _slots  # noqa: F401

    bind = bind or engine
    async with bind.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready (drop=%s)", drop)
