"""
Alembic environment for the BidWatch schema.

The database URL comes from the CLI (passed in as a config attribute),
then ``-x db_url=...``, then $BIDWATCH_DATABASE_URL,
then the ``sqlalchemy.url`` main option. Tables outside the ORM metadata
(an APScheduler data store may share the file) are left alone by autogenerate.
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context

from bidwatch.persistence.db import DEFAULT_DATABASE_URL, create_db_engine
from bidwatch.persistence.models import Base

config = context.config

if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def database_url() -> str:
    url = config.attributes.get("db_url") or context.get_x_argument(as_dictionary=True).get("db_url")
    return url or os.environ.get("BIDWATCH_DATABASE_URL") or config.get_main_option(
        "sqlalchemy.url", DEFAULT_DATABASE_URL
    )


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    if type_ == "table" and reflected and compare_to is None:
        return name in target_metadata.tables
    return True


def configure(**options) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        compare_type=True,
        **options,
    )
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    configure(url=database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    engine = create_db_engine(database_url())
    try:
        with engine.connect() as connection:
            # SQLite cannot ALTER most columns in place
            configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
    finally:
        engine.dispose()
