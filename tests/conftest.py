"""
Pytest fixtures for TaskTrack tests.
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Ensure test config is set before importing tasktrack modules.
os.environ.setdefault("TASKTRACK_ALLOW_INSECURE_DEV", "true")
os.environ.setdefault("TASKTRACK_ENV", "development")
os.environ.setdefault(
    "TASKTRACK_DATABASE_URL",
    os.getenv("TASKTRACK_TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:"),
)

from tasktrack.config import settings
from tasktrack.db.base import Base, build_engine
import tasktrack.db.tables  # noqa: F401
from tasktrack.observability.metrics import metrics


def _ensure_test_database_url(database_url: str) -> None:
    if "test" not in database_url and ":memory:" not in database_url:
        raise RuntimeError(
            "Refusing to run TaskTrack tests against a non-test database. "
            "Set TASKTRACK_TEST_DATABASE_URL to a dedicated test database."
        )


@pytest.fixture
async def engine():
    """Create a fresh schema and wire the engine into tasktrack.db.base."""
    _ensure_test_database_url(settings.database_url)
    engine = build_engine(settings.database_url, settings.debug)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    # Override global engine/session factory for dependency injection.
    from tasktrack import db as db_module

    db_module.base.engine = engine
    db_module.base.async_session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    """Provide a database session per test."""
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield


@pytest.fixture
async def client(session):
    """Async test client with overridden dependencies."""
    from tasktrack.api.deps import get_db_session, verify_api_key
    from tasktrack.main import app

    async def override_get_db_session():
        yield session

    async def override_verify_api_key():
        return None

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[verify_api_key] = override_verify_api_key

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
