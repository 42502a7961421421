"""Alembic env for the Study Buddy schema.

Migrations run on a sync driver: the async URL the app uses is mapped to its
sync counterpart. SQLite needs batch mode for ALTER TABLE.
"""
from logging.config import fileConfig
import os

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import make_url

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from studybuddy.db.base import Base  # noqa: E402
from studybuddy.core.config import get_settings  # noqa: E402

target_metadata = Base.metadata

SYNC_DRIVERS = {
    "sqlite+aiosqlite": "sqlite",
    "postgresql+asyncpg": "postgresql+psycopg2",
}


def database_url() -> str:
    """ALEMBIC_DATABASE_URL wins, then the app setting, then alembic.ini."""
    raw = os.getenv("ALEMBIC_DATABASE_URL") or get_settings().database_url
    if not raw:
        return config.get_main_option("sqlalchemy.url")
    url = make_url(raw)
    sync_driver = SYNC_DRIVERS.get(url.drivername)
    if sync_driver:
        url = url.set(drivername=sync_driver)
    return url.render_as_string(hide_password=False)


def _configure(**kwargs) -> None:
    url = make_url(database_url())
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=url.get_backend_name() == "sqlite",
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(url=database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = database_url()
    engine = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with engine.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
