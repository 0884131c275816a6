"""Alembic environment — migrations for the audit_events schema.

Design Decisions:
    - The URL comes from chatshop.config.Settings, so DATABASE_URL and the
      postgresql:// -> postgresql+asyncpg:// rewrite behave exactly as in the app;
      sqlalchemy.url in alembic.ini is only used when Settings cannot load
    - Online mode runs the sync migration context inside an async connection
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

import chatshop.models  # noqa: F401  (populates Base.metadata)
from chatshop.config import get_settings
from chatshop.db.base import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _database_url() -> str:
    try:
        return get_settings().database_url
    except ValueError:
        return config.get_main_option("sqlalchemy.url")


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        render_as_batch=_database_url().startswith("sqlite"),
        **kwargs,
    )


def run_offline() -> None:
    """Emit SQL to stdout without connecting."""
    _configure(url=_database_url(), literal_binds=True,
               dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_online() -> None:
    engine = create_async_engine(_database_url(), poolclass=pool.NullPool)
    async with engine.connect() as connection:
        await connection.run_sync(_migrate)
    await engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    asyncio.run(run_online())
