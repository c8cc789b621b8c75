"""
Shared fixtures for the bonus tax optimizer test suite.
"""
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from bonustax.main import app


@pytest_asyncio.fixture
async def client():
    """Async httpx client using ASGI transport: no live server needed."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
