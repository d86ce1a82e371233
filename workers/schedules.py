"""Periodic jobs run by Celery beat."""

import logging
from typing import Any

from celery import Celery
from celery.schedules import crontab

logger = logging.getLogger(__name__)

HEALTH_SWEEP_MINUTES = 15

BEAT_SCHEDULE: dict[str, dict[str, Any]] = {
    "check-integration-health": {
        "task": "workers.tasks.messaging_tasks.check_integration_health",
        "schedule": crontab(minute=f"*/{HEALTH_SWEEP_MINUTES}"),
        # A sweep that misses its slot is superseded by the next one.
        "options": {"queue": "default", "expires": HEALTH_SWEEP_MINUTES * 60},
    },
}


def configure_beat_schedule(app: Celery) -> None:
    app.conf.beat_schedule = dict(BEAT_SCHEDULE)
    logger.info("beat_schedule_configured: entries=%s", ",".join(BEAT_SCHEDULE))
