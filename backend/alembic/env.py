"""
Alembic environment for the FactoryFlow schema.

The URL always comes from app settings (DATABASE_URL or DB_*), never from
alembic.ini, so migrations hit the same database the API does.
"""
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from app.core.config import settings
from app.db.base import Base
import app.models  # noqa: F401

config = context.config
config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

COMPARE_OPTIONS = {
    "target_metadata": Base.metadata,
    "compare_type": True,
    "compare_server_default": True,
}


def _run(**configure_kwargs):
    context.configure(**COMPARE_OPTIONS, **configure_kwargs)
    with context.begin_transaction():
        context.run_migrations()


def run_offline():
    """Emit SQL to stdout instead of executing it."""
    _run(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )


def run_online():
    engine = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        # SQLite cannot ALTER most constraints in place
        _run(connection=connection, render_as_batch=connection.dialect.name == "sqlite")


if context.is_offline_mode():
    run_offline()
else:
    run_online()
