"""FastAPI application for inbound LINE webhooks."""

from taskbridge.api.app import create_app, lifespan
from taskbridge.api.dependencies import get_db, get_job_queue, get_redis_manager, get_settings

__all__ = [
    "create_app",
    "lifespan",
    "get_db",
    "get_job_queue",
    "get_settings",
    "get_redis_manager",
]
