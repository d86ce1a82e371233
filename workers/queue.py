"""JobQueue backed by Celery ``.delay`` calls."""

import logging
from typing import Optional
from uuid import UUID

logger = logging.getLogger(__name__)


class CeleryJobQueue:
    """Submits pipeline follow-up work as Celery tasks."""

    def __init__(self) -> None:
        from workers.celery_app import get_celery_app

        # Binds shared tasks to the configured broker in non-worker processes.
        get_celery_app()

    def enqueue_extraction(self, message_id: UUID) -> None:
        from workers.tasks.messaging_tasks import extract_message_tasks

        extract_message_tasks.delay(str(message_id))
        logger.debug("job_enqueued: task=extract_message_tasks, message_id=%s", message_id)

    def enqueue_notification(
        self,
        integration_id: UUID,
        text: str,
        target_group_id: Optional[str] = None,
        urgent: bool = False,
    ) -> None:
        from workers.tasks.messaging_tasks import send_notification

        send_notification.delay(str(integration_id), text, target_group_id, urgent)
        logger.debug(
            "job_enqueued: task=send_notification, integration_id=%s, target_group_id=%s",
            integration_id,
            target_group_id,
        )

    def enqueue_webhook_event(self, event: dict, integration_id: Optional[UUID] = None) -> None:
        from workers.tasks.messaging_tasks import process_webhook_event

        process_webhook_event.delay(event, str(integration_id) if integration_id else None)
