import asyncio
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(__file__)))  # backend/ holds groupladder

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from groupladder.db import Base, database_url
from groupladder import models  # noqa: F401  # registers the ledger tables

config = context.config

if config.config_file_name and config.get_section("loggers") is not None:
    from logging.config import fileConfig

    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)
    with context.begin_transaction():
        context.run_migrations()


async def _run_online(url: str) -> None:
    engine = create_async_engine(url, poolclass=pool.NullPool)
    async with engine.connect() as connection:
        await connection.run_sync(lambda conn: _configure(connection=conn))
    await engine.dispose()


if context.is_offline_mode():
    _configure(url=database_url(), literal_binds=True)
else:
    asyncio.run(_run_online(database_url()))
