import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

# Make the project root importable when alembic runs from elsewhere
sys.path.append(os.getcwd())

from app.core.config import settings
from app.core.database import Base

# Every model module, so their tables are registered on Base.metadata
from app.models import ai_plan, calendar_event, calendar_integration, task, user, user_preferences  # noqa: F401,E402

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Migrations run on the sync drivers (psycopg2, sqlite3)
SYNC_DRIVERS = {
    "postgresql+asyncpg://": "postgresql://",
    "postgres://": "postgresql://",
    "sqlite+aiosqlite://": "sqlite://",
}


def sync_database_url(url: str) -> str:
    for async_prefix, sync_prefix in SYNC_DRIVERS.items():
        if url.startswith(async_prefix):
            url = url.replace(async_prefix, sync_prefix, 1)
            break
    # Hosted Postgres requires SSL
    if url.startswith("postgresql://") and "localhost" not in url and "sslmode" not in url:
        url += ("&" if "?" in url else "?") + "sslmode=require"
    return url


# '%' must be escaped for alembic's ConfigParser
config.set_main_option("sqlalchemy.url", sync_database_url(settings.DATABASE_URL).replace("%", "%%"))


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            # SQLite cannot ALTER most constraints in place
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
