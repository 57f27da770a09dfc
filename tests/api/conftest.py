"""Shared fixtures for API endpoint tests."""

import asyncio

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from ledgerpulse.api.errors import register_exception_handlers
from ledgerpulse.api.middleware.rate_limit import limiter, setup_rate_limiting
from ledgerpulse.api.routers import backfill, cache, events, jobs, notifications, reports
from ledgerpulse.main import attach_services


class StubRenderer:
    """Renderer that records requests instead of producing files."""

    def __init__(self):
        self.formats = []

    async def render(self, format, summary, entries):
        self.formats.append(format)
        return f"https://files.example/{len(entries)}.{format}"


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to avoid 429s."""
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def renderer():
    return StubRenderer()


@pytest_asyncio.fixture
async def api_app(app_config, test_database, renderer):
    """App with every router and service, minus the lifespan and scheduler thread."""
    app = FastAPI()
    setup_rate_limiting(app)
    register_exception_handlers(app)
    for module in (events, reports, backfill, jobs, notifications, cache):
        app.include_router(module.router)
    attach_services(app, app_config, test_database, loop=asyncio.get_running_loop(), renderer=renderer)
    yield app
    app.state.cache.close()


@pytest_asyncio.fixture
async def client(api_app):
    transport = httpx.ASGITransport(app=api_app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
