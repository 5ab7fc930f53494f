from datetime import timezone
from sqlalchemy import DateTime
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator
from app.core.config import settings


def normalize_database_url(url: str) -> str:
    """
    Async SQLAlchemy requires the asyncpg driver name in the URL.
    Supabase hands out 'postgresql://' and Heroku 'postgres://'.
    """
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


def create_engine_for(url: str):
    url = normalize_database_url(url)
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False, future=True)

    return create_async_engine(
        url,
        echo=False,
        future=True,
        # Hosted Postgres (Supabase/Railway) requires SSL
        connect_args={"ssl": "require"} if "localhost" not in url else {},
        pool_pre_ping=True,  # Check connection health before using
        pool_recycle=300     # Recycle connections every 5 mins to avoid timeouts
    )


def create_session_factory(bind):
    return async_sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
        class_=AsyncSession,
        expire_on_commit=False
    )


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware DateTime that always hands back UTC.

    Naive values are taken to be UTC. SQLite drops the offset on write, so
    results without tzinfo are tagged as UTC on the way out.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# Engine is created lazily by the driver, no connection is opened at import
engine = create_engine_for(settings.DATABASE_URL)

AsyncSessionLocal = create_session_factory(engine)

Base = declarative_base()


async def create_tables(bind=None):
    """Create every table registered on Base.metadata (no-op for existing ones)."""
    # Models must be imported so they register on Base.metadata
    from app.models import ai_plan, calendar_event, calendar_integration, task, user, user_preferences  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
