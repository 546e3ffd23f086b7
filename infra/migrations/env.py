# infra/migrations/env.py
from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from clinicslots.core.config import settings
from clinicslots.db.base import Base

# Autogenerate only sees tables whose model modules are imported
from clinicslots.modules.appointments import models as _appointments  # noqa: F401
from clinicslots.modules.calendar import models as _calendar  # noqa: F401
from clinicslots.modules.providers import models as _providers  # noqa: F401
from clinicslots.modules.slots import models as _slots  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# alembic.ini carries no URL; the DSN is the application's
DSN = settings.SQL_DSN
config.set_main_option("sqlalchemy.url", DSN)


def _run(**options) -> None:
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        compare_server_default=True,
        # SQLite has no ALTER CONSTRAINT; rebuild tables instead
        render_as_batch=DSN.startswith("sqlite"),
        **options,
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    _run(connection=connection)


async def _run_async() -> None:
    engine = create_async_engine(DSN, poolclass=pool.NullPool)
    try:
        async with engine.connect() as conn:
            await conn.run_sync(_run_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _run(url=DSN, literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    asyncio.run(_run_async())
