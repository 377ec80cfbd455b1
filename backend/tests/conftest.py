import os
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app modules
os.environ.setdefault("DATABASE_URL", "postgresql+asyncpg://content:content@db:5432/content_test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


def make_result(rows: list | None = None) -> MagicMock:
    """Build a mock SQLAlchemy Result whose fetchall() returns ``rows``."""
    result = MagicMock()
    result.fetchall.return_value = rows if rows is not None else []
    return result


def make_mock_session(*results: MagicMock) -> AsyncMock:
    """Build a mock AsyncSession; successive execute() calls return ``results``."""
    session = AsyncMock()
    if not results:
        results = (make_result([]),)
    session.execute = AsyncMock(side_effect=list(results))
    return session


def make_session_factory(session: AsyncMock) -> MagicMock:
    """Build a session factory whose ``async with factory()`` yields ``session``."""
    context = AsyncMock()
    context.__aenter__.return_value = session
    context.__aexit__.return_value = False
    factory = MagicMock(return_value=context)
    return factory


@pytest_asyncio.fixture(scope="function")
async def test_app():
    """Provide the FastAPI app with a mock database session for /api/health."""
    from app.database import get_db
    from app.main import app

    session = AsyncMock()

    async def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.test_session = session
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client bound to the app (lifespan not started)."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
