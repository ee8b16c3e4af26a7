"""
e3d_commerce.api.app

FastAPI app factory for the storefront API.

Responsibilities:
- Build the FastAPI application and register routers/middleware/error handlers.
- Initialize and dispose shared infrastructure (DB engine/session factory).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from e3d_commerce import __version__
from e3d_commerce.api.errors import register_error_handlers
from e3d_commerce.api.routers.admin import router as admin_router
from e3d_commerce.api.routers.auth import router as auth_router
from e3d_commerce.api.routers.cart import router as cart_router
from e3d_commerce.api.routers.catalog import router as catalog_router
from e3d_commerce.api.routers.checkout import router as checkout_router
from e3d_commerce.api.routers.health import router as health_router
from e3d_commerce.api.routers.orders import router as orders_router
from e3d_commerce.api.routers.products import router as products_router
from e3d_commerce.db.init_db import init_db
from e3d_commerce.db.session import create_engine, create_sessionmaker
from e3d_commerce.observability.logging import configure_logging, get_logger
from e3d_commerce.observability.middleware import RequestContextMiddleware
from e3d_commerce.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        # Routers obtain sessions via dependencies (see `e3d_commerce.api.deps`).
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod uses Alembic migrations.
            await init_db(engine)
        try:
            yield
        finally:
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="E3D Commerce API",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    register_error_handlers(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(products_router)
    app.include_router(catalog_router)
    app.include_router(cart_router)
    app.include_router(checkout_router)
    app.include_router(orders_router)
    app.include_router(admin_router)

    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; business rules stay in services.
