"""
Social API — Test Configuration (conftest.py)
===============================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── test_settings:  Settings isolated from the developer's .env
    ├── health_up / health_down: ServerHealth cells in a known state
    ├── slow_route_table: /test/slow handler that blocks until released
    ├── test_app:       App wired to health_up and the default routes
    └── test_client:    HTTPX AsyncClient talking to test_app in-process
"""

import asyncio
import os
from dataclasses import dataclass

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

# Override settings for testing BEFORE any app imports
os.environ["PORT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DATABASE_URL"] = ""
os.environ["LISTENER_FAILURE_POLICY"] = "log"

from social_api.config import Settings  # noqa: E402
from social_api.health import ServerHealth  # noqa: E402
from social_api.main import create_app  # noqa: E402
from social_api.routing import Route, VersionedRouteTable  # noqa: E402
from social_api.schemas.envelope import MessageResponse, json_response  # noqa: E402


@pytest.fixture
def test_settings() -> Settings:
    """Settings that ignore any .env file in the working directory."""
    return Settings(_env_file=None, port=0, log_level="WARNING")


@pytest.fixture
def health_up() -> ServerHealth:
    health = ServerHealth()
    health.mark_up()
    return health


@pytest.fixture
def health_down() -> ServerHealth:
    return ServerHealth()


@dataclass
class SlowRoute:
    """Handles for a /test/slow endpoint: entered is set once the handler runs."""
    table: VersionedRouteTable
    entered: asyncio.Event
    release: asyncio.Event


@pytest.fixture
def slow_route_table() -> SlowRoute:
    """
    Route table with GET /test/slow, which waits for `release` (or 60s).

    Usage:
        slow = slow_route_table
        task = asyncio.create_task(client.get("/test/slow"))
        await slow.entered.wait()
        slow.release.set()
    """
    entered = asyncio.Event()
    release = asyncio.Event()

    async def slow(request: Request):
        entered.set()
        try:
            await asyncio.wait_for(release.wait(), 60)
        except asyncio.TimeoutError:
            pass
        return json_response(200, MessageResponse(msg="done"))

    table = VersionedRouteTable()
    table.register("/test", [Route("/slow", frozenset({"GET"}), slow)])
    return SlowRoute(table=table, entered=entered, release=release)


@pytest.fixture
def test_app(health_up, test_settings):
    return create_app(health_up, app_settings=test_settings)


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    Provides an async HTTP test client for endpoint testing.

    Uses ASGITransport to route requests directly to the app; the client
    address the app sees is 127.0.0.1:123.
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
