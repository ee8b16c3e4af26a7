"""
tests.conftest

Shared fixtures: an app bound to a throwaway SQLite file, an in-process HTTP client,
the sample dataset, and bearer headers for the seeded customer and admin.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from e3d_commerce.api.app import create_app
from e3d_commerce.db.session import session_scope
from e3d_commerce.seed import seed
from e3d_commerce.settings import Settings
from helpers import ADMIN, CUSTOMER, login


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'e3d-test.db'}",
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings)
    # httpx ASGITransport does not run lifespan events; drive them explicitly.
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def seeded(app: FastAPI, settings: Settings) -> None:
    async with session_scope(app.state.sessionmaker) as session:
        await seed(session, settings)


@pytest_asyncio.fixture
async def customer_headers(client: httpx.AsyncClient, seeded: None) -> dict[str, str]:
    return await login(client, *CUSTOMER)


@pytest_asyncio.fixture
async def admin_headers(client: httpx.AsyncClient, seeded: None) -> dict[str, str]:
    return await login(client, *ADMIN)
