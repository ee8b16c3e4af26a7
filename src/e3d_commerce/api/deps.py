"""
e3d_commerce.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and DB sessions.
- Encapsulate app.state access patterns (settings/engine/sessionmaker).
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from e3d_commerce.settings import Settings


def settings_dep(request: Request) -> Settings:
    # The app factory stores the settings it was built with on app.state.
    return request.app.state.settings  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # The sessionmaker is created in the lifespan of `e3d_commerce.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commit/rollback is managed explicitly by the service layer.
    async with session_factory() as session:
        yield session


# --- Module Notes -----------------------------------------------------------
# Services are constructed per request inside routers from these dependencies.
