# backend/alembic/env.py
"""Alembic environment for the eventreg schema.

The database URL comes from eventreg.db (DATABASE_URL), converted to a
blocking driver since migrations run synchronously.
"""
from logging.config import fileConfig

from sqlalchemy import create_engine, pool
from alembic import context

from eventreg.db import RAW_DATABASE_URL, ensure_sync_driver
from eventreg.models import Base

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
MIGRATION_URL = ensure_sync_driver(RAW_DATABASE_URL)


def run_migrations_offline():
    """Emit the migration SQL without connecting."""
    context.configure(
        url=MIGRATION_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = create_engine(MIGRATION_URL, poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()
    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
