"""Shared test fixtures."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.bm_common.database import get_db_session
from src.bm_gateway.middleware.rate_limit import enforce_quote_rate_limit
from src.main import app


async def _fake_db_session() -> AsyncGenerator[AsyncMock, None]:
    yield AsyncMock()


async def _no_rate_limit() -> None:
    return None


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for FastAPI endpoints; DB and Redis are stubbed out."""
    app.dependency_overrides[get_db_session] = _fake_db_session
    app.dependency_overrides[enforce_quote_rate_limit] = _no_rate_limit
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
