"""Alembic environment for the rules schema.

Migrations run through a blocking driver; the async URL from DATABASE_URL is
mapped by Settings.sync_database_url.
"""

import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import create_engine

API_DIR = Path(__file__).resolve().parent.parent
if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))

import models  # noqa: E402,F401  (registers tables on Base.metadata)
from alembic import context  # noqa: E402
from core.config import get_settings  # noqa: E402
from core.database import Base  # noqa: E402

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def _configure(**kwargs) -> None:
    context.configure(target_metadata=Base.metadata, compare_type=True, **kwargs)


def run_offline(url: str) -> None:
    _configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_online(url: str) -> None:
    engine = create_engine(url)
    try:
        with engine.connect() as connection:
            # SQLite cannot ALTER constraints in place
            _configure(
                connection=connection,
                render_as_batch=connection.dialect.name == "sqlite",
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


database_url = get_settings().sync_database_url
if context.is_offline_mode():
    run_offline(database_url)
else:
    run_online(database_url)
