"""Shared fixtures: fake text backend, app, async HTTP client."""

import httpx
import pytest
import pytest_asyncio

from helpers import FakeBackend
from studio_bridge.api.main import create_app
from studio_bridge.config import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(long_poll_seconds=0.2)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def app(settings, backend):
    return create_app(settings, backend=backend)


@pytest_asyncio.fixture
async def client(app):
    """Async client with the app lifespan running."""
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
