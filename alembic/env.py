"""Alembic migration runner for the Realms schema."""

from logging.config import fileConfig

from sqlalchemy import engine_from_config, event, pool
from alembic import context

from realms.infra.config import settings
from realms.models.db_models import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Migrations run synchronously; the app itself talks to the same database via aiosqlite/asyncpg.
config.set_main_option("sqlalchemy.url", settings.database_url_sync)

target_metadata = Base.metadata

# SQLite cannot ALTER most columns in place, so every operation goes through batch mode.
MIGRATION_OPTIONS = {"target_metadata": target_metadata, "render_as_batch": True}


def _enforce_sqlite_foreign_keys(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def run_migrations_offline() -> None:
    """Emit SQL for the configured URL without connecting."""
    context.configure(url=config.get_main_option("sqlalchemy.url"), literal_binds=True, **MIGRATION_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enforce_sqlite_foreign_keys)

    with engine.connect() as connection:
        context.configure(connection=connection, compare_type=True, **MIGRATION_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
