"""Celery application for the messaging pipeline."""

import logging
from typing import Optional

from celery import Celery

logger = logging.getLogger(__name__)

_app: Optional[Celery] = None

TASK_PREFIX = "workers.tasks.messaging_tasks"

# Inbound webhook work and outbound LINE calls run on separate queues so a
# slow LINE API cannot delay webhook processing.
TASK_ROUTES = {
    f"{TASK_PREFIX}.process_webhook_event": {"queue": "webhooks"},
    f"{TASK_PREFIX}.extract_message_tasks": {"queue": "webhooks"},
    f"{TASK_PREFIX}.send_notification": {"queue": "outbound"},
    f"{TASK_PREFIX}.setup_webhook": {"queue": "outbound"},
}


def get_celery_app() -> Celery:
    """Singleton app configured for at-least-once delivery.

    Late acks with prefetch 1 mean a crashed worker's task is redelivered;
    every task body is idempotent for that reason.
    """
    global _app
    if _app is not None:
        return _app

    from taskbridge.observability import configure_logging
    from taskbridge.settings import load_settings
    from workers.schedules import configure_beat_schedule

    settings = load_settings()
    configure_logging(settings)
    broker_url = settings.redis_url or "redis://localhost:6379/0"

    app = Celery("taskbridge")
    app.conf.update(
        broker_url=broker_url,
        result_backend=broker_url,
        result_expires=3600,
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        worker_prefetch_multiplier=1,
        task_default_queue="default",
        task_routes=TASK_ROUTES,
        broker_connection_retry_on_startup=True,
        timezone="UTC",
    )
    app.autodiscover_tasks(["workers.tasks"], related_name="messaging_tasks")

    if settings.feature_flags.enable_health_checks:
        configure_beat_schedule(app)

    # Credentials live before the "@"; keep them out of the log.
    logger.info("celery_app_created: broker=%s", broker_url.rsplit("@", 1)[-1])
    _app = app
    return app
