"""ASGI application factory for the sign-in endpoints."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Callable

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from auth_facade.core.provider import AuthProvider
from auth_facade.core.service import BaseAuthService, build_auth_service
from auth_facade.utils.environment import build_store_from_env, get_http_base_path
from auth_facade.utils.logging import configure_logging

from .auth import register_auth_routes
from .correlation import CorrelationIdMiddleware

logger = logging.getLogger("auth-facade.server.main")

ServiceFactory = Callable[[], BaseAuthService]


async def health_check(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def create_app(
    service: BaseAuthService | None = None,
    *,
    service_factory: ServiceFactory | None = None,
    base_path: str | None = None,
) -> Starlette:
    """Return a Starlette app serving the sign-in endpoints.

    Pass a ready *service*, or a *service_factory* that is invoked inside the
    application lifespan (services need a running event loop) and closed on
    shutdown.
    """
    if service is None and service_factory is None:
        raise ValueError("either service or service_factory is required")

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        owned: BaseAuthService | None = None
        if getattr(app.state, "auth_service", None) is None:
            owned = service_factory()  # type: ignore[misc]
            app.state.auth_service = owned
            logger.info("Auth service started (%s)", type(owned).__name__)
        try:
            yield
        finally:
            if owned is not None:
                app.state.auth_service = None
                await owned.aclose()
                logger.info("Auth service stopped")

    app = Starlette(
        middleware=[Middleware(CorrelationIdMiddleware)],
        lifespan=lifespan,
    )
    app.state.auth_service = service
    app.add_route("/health", health_check, methods=["GET"])
    register_auth_routes(
        app, base_path=get_http_base_path() if base_path is None else base_path
    )
    return app


def create_app_from_env(provider_factory: Callable[[], AuthProvider]) -> Starlette:
    """Build the app with storage and logging configured from the environment."""
    configure_logging()
    store = build_store_from_env()
    return create_app(service_factory=lambda: build_auth_service(provider_factory(), store))
