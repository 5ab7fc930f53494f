"""Shared test fixtures and configuration.

Environment is patched BEFORE any app imports so settings pick up the
in-memory backend, a throwaway SQLite URL and no AI provider key.
"""

import os

os.environ["STORAGE_BACKEND"] = "memory"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["GROQ_API_KEY"] = ""
os.environ["GOOGLE_CLIENT_ID"] = ""
os.environ["OUTLOOK_CLIENT_ID"] = ""
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool


@pytest.fixture
def storage():
    """Fresh MemoryStorage per test."""
    from app.storage.memory import MemoryStorage
    return MemoryStorage()


@pytest.fixture
async def db_storage():
    """DatabaseStorage on a private in-memory SQLite database."""
    from app.core.database import create_session_factory, create_tables
    from app.storage.database import DatabaseStorage

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(engine)
    yield DatabaseStorage(create_session_factory(engine))
    await engine.dispose()


@pytest.fixture
async def user(storage):
    return await storage.create_user({"email": "ada@example.com", "first_name": "Ada"})


@pytest.fixture
async def other_user(storage):
    return await storage.create_user({"email": "grace@example.com", "first_name": "Grace"})


@pytest.fixture
def auth_headers(user):
    from app.core.security import create_access_token
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
async def client(storage):
    """HTTP client wired to the app with the test storage installed."""
    from app.main import app
    from app.storage.factory import set_storage

    set_storage(storage)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    set_storage(None)
