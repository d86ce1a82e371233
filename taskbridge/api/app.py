"""FastAPI application for the LINE webhook endpoint and health probes."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from taskbridge import __version__
from taskbridge.cache.client import RedisManager
from taskbridge.db.engine import build_engine, build_session_factory
from taskbridge.observability import configure_logging
from taskbridge.settings import Settings, load_settings

logger = logging.getLogger(__name__)


async def _open_resources(app: FastAPI, settings: Settings) -> None:
    app.state.settings = settings
    app.state.engine = None
    app.state.session_factory = None
    if settings.database_url:
        app.state.engine = build_engine(settings)
        app.state.session_factory = build_session_factory(app.state.engine)
    else:
        logger.warning("app_startup: database_url not configured, /ready will fail")

    app.state.redis = None
    if settings.redis_url:
        app.state.redis = RedisManager(settings.redis_url, key_prefix=settings.redis_key_prefix)
        # Connect eagerly so the first webhook does not pay for it.
        await app.state.redis.get_client()


async def _close_resources(app: FastAPI) -> None:
    if app.state.redis is not None:
        await app.state.redis.close()
    if app.state.engine is not None:
        await app.state.engine.dispose()
        logger.info("app_shutdown: engine disposed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Hold the engine, session factory and Redis manager on ``app.state``."""
    await _open_resources(app, load_settings())
    logger.info(
        f"app_startup_complete: database={app.state.engine is not None}, "
        f"redis={app.state.redis is not None}"
    )
    try:
        yield
    finally:
        await _close_resources(app)


def create_app() -> FastAPI:
    """Build the application with middleware and routers mounted."""
    settings = load_settings()
    configure_logging(settings)

    from taskbridge.api.middleware.error_handler import error_handling_middleware
    from taskbridge.api.middleware.observability import RequestLoggingMiddleware
    from taskbridge.api.middleware.request_id import RequestIdMiddleware
    from taskbridge.api.routers import health_router, webhooks_router

    app = FastAPI(
        title="TaskBridge API",
        version=__version__,
        description="Receives LINE webhooks and turns group chat into tasks",
        lifespan=lifespan,
    )

    # Added innermost first: the error handler wraps request id and logging.
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.middleware("http")(error_handling_middleware)

    app.include_router(health_router, tags=["health"])
    app.include_router(webhooks_router, tags=["webhooks"])

    logger.info(f"app_created: env={settings.app_env}, version={__version__}")
    return app
