"""
Shared fixtures: an isolated SQLite database per test, the app wired to it,
and helpers for admin auth and frozen clocks.
"""
import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-at-least-32-characters")
os.environ.setdefault("ANONYMIZATION_SALT", "test-anonymization-salt")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import footfall.models  # noqa: F401  (registers every table on Base.metadata)
from footfall.core.config import IngestionConfig
from footfall.core.database import Base, create_engine, get_db_session
from footfall.core.security import create_access_token
from footfall.main import create_app

TEST_SALT = "test-anonymization-salt"


def frozen(moment: datetime):
    """Clock returning a fixed moment."""
    return lambda: moment


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 3, 12, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'footfall.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def ingestion_config() -> IngestionConfig:
    """Every click is sampled so heatmap assertions are deterministic."""
    return IngestionConfig(salt=TEST_SALT, sampling_rate=1.0)


@pytest.fixture
def app(session_factory, ingestion_config):
    app = create_app(ingestion_config)

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    return app


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def admin_headers() -> dict[str, str]:
    token = create_access_token({"sub": "analyst@example.com", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_batch() -> dict:
    return {
        "events": [
            {
                "event_type": "page_view",
                "page_path": "/villages/hunza",
                "session_id": "sess-abc",
                "referrer": "https://www.google.com/search?q=hunza",
            },
            {
                "event_type": "click",
                "page_path": "/villages/hunza",
                "session_id": "sess-abc",
                "click_x": 120,
                "click_y": 460,
                "viewport_width": 1280,
                "element_id": "book-now",
            },
        ]
    }
