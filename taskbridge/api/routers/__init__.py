"""FastAPI routers."""

from taskbridge.api.routers.health import router as health_router
from taskbridge.api.routers.webhooks import router as webhooks_router

__all__ = [
    "health_router",
    "webhooks_router",
]
