"""Alembic environment for the SAT Tracker schema.

Migrations run through the sync psycopg2 driver against the URL built by
sattrack.config (DATABASE_URL_OVERRIDE or the POSTGRES_* parts).
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from sattrack.config import get_settings
from sattrack.db.base import Base
from sattrack.db import models  # noqa: F401 - Import models to register them

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

settings = get_settings()


def get_url() -> str:
    """Sync URL for migrations; the hosted database keeps its sslmode query string."""
    return settings.database_url_sync


def run_migrations_offline() -> None:
    """Emit the migration SQL to the script output without connecting."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a short-lived sync connection."""
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
