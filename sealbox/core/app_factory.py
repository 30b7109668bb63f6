from __future__ import annotations

"""Application factory for the FastAPI app.

Centralizes app construction (state, middleware, handlers, routers) so tests
can build isolated instances with their own settings, limiter and store.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from sealbox.adapters.rate_limit.in_memory import InMemoryWindowRateLimiter
from sealbox.api.routes import feedback_router, pages_router, public_key_router
from sealbox.api.routes.pages import PublicAssets
from sealbox.core.config import Settings, settings as default_settings
from sealbox.core.exception_handlers import setup_exception_handlers
from sealbox.core.middleware import request_id_middleware, security_headers_middleware
from sealbox.services.feedback_store import AppendOnlyFeedbackStore
from sealbox.utils.pgp_validators import PGPMessageValidator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "app.startup",
        extra={
            "rate_limit_enabled": app.state.settings.app.rate_limit_enabled,
            "rate_limit_max": app.state.settings.app.rate_limit_max,
        },
    )
    try:
        yield
    finally:
        # Counters only live as long as the process
        app.state.rate_limiter.reset()
        logger.info("app.shutdown")


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to build from; the global settings by default.

    Returns:
        Configured FastAPI app with state, middleware, handlers and routers.
    """
    cfg = app_settings or default_settings

    # No docs or schema routes: every path outside the API is a plain 404
    app = FastAPI(
        title="Sealbox",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    app.state.settings = cfg
    app.state.rate_limiter = InMemoryWindowRateLimiter(
        limit=cfg.app.rate_limit_max,
        window_seconds=cfg.app.rate_limit_window_seconds,
    )
    app.state.feedback_store = AppendOnlyFeedbackStore(cfg.storage.feedback_path)
    app.state.message_validator = PGPMessageValidator(
        max_chars=cfg.app.max_message_chars,
        min_chars=cfg.app.min_message_chars,
        min_content_chars=cfg.app.min_envelope_content_chars,
    )

    # Middleware (last added runs first)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(public_key_router)
    app.include_router(feedback_router)
    app.include_router(pages_router)

    # Static assets last so API routes and the entry page win
    static_path = cfg.storage.static_path
    if static_path.is_dir():
        app.mount(
            "/",
            PublicAssets(directory=static_path, routes=app.router.routes),
            name="static",
        )
    else:
        logger.warning("app.static_dir_missing", extra={"path": str(static_path)})

    return app
