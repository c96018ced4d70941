"""Alembic environment for the CartDrop schema.

    cd backend && alembic upgrade head

Migrations run over the synchronous driver (DATABASE_URL_SYNC).
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

import cartdrop.models  # noqa: F401  register every table on Base.metadata
from cartdrop.config import settings
from cartdrop.database import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

OPTIONS = {"target_metadata": Base.metadata, "compare_type": True}


def run_offline() -> None:
    context.configure(url=settings.database_url_sync, literal_binds=True, **OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    engine = create_engine(settings.database_url_sync, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **OPTIONS)
        with context.begin_transaction():
            context.run_migrations()
    engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
