"""Celery tasks for the LINE messaging pipeline."""

import logging
from datetime import timedelta
from functools import partial
from typing import Any, Optional
from uuid import UUID

from celery import shared_task

from workers.utils import get_task_session_factory, get_task_settings, run_async

logger = logging.getLogger(__name__)


@shared_task(
    name="workers.tasks.messaging_tasks.process_webhook_event",
    bind=True,
    max_retries=5,
    soft_time_limit=60,
    acks_late=True,
)
def process_webhook_event(
    self,  # type: ignore[no-untyped-def]
    event: dict,
    integration_id: Optional[str] = None,
) -> dict[str, Any]:
    """Route one webhook event through the pipeline.

    Args:
        self: Celery task instance (for retries).
        event: Raw LINE event object.
        integration_id: Integration whose endpoint received the event.

    Returns:
        Dict with event_type and dispatch status.
    """
    event_type = event.get("type")
    logger.info(
        "process_webhook_event_started: event_type=%s, integration_id=%s",
        event_type,
        integration_id,
    )

    try:
        result = run_async(_async_process_webhook_event(event, integration_id))
        logger.info("process_webhook_event_completed: result=%s", result)
        return result
    except Exception as exc:
        logger.warning(
            "process_webhook_event_failed: event_type=%s, error=%s, retry=%d/%d",
            event_type,
            str(exc),
            self.request.retries,
            self.max_retries,
        )
        raise self.retry(exc=exc, countdown=30 * (2**self.request.retries))


async def _async_process_webhook_event(
    event: dict, integration_id: Optional[str]
) -> dict[str, Any]:
    from taskbridge.messaging.dispatcher import EventDispatcher
    from taskbridge.messaging.ingestor import MessageIngestor
    from taskbridge.messaging.ports import build_adapter
    from taskbridge.messaging.resolver import GroupResolver, build_strategies
    from workers.queue import CeleryJobQueue

    settings = get_task_settings()
    session_factory = get_task_session_factory()
    queue = CeleryJobQueue()

    async with session_factory() as session:
        resolver = GroupResolver(
            session,
            strategies=build_strategies(settings.group_resolution_strategies),
            adapter_factory=partial(build_adapter, settings=settings),
        )
        ingestor = MessageIngestor(
            session,
            queue,
            extraction_enabled=settings.feature_flags.enable_task_extraction,
        )
        dispatcher = EventDispatcher(session, queue, resolver=resolver, ingestor=ingestor)
        status = await dispatcher.dispatch(
            event, UUID(integration_id) if integration_id else None
        )

    return {"event_type": event.get("type"), "status": status}


@shared_task(
    name="workers.tasks.messaging_tasks.extract_message_tasks",
    bind=True,
    max_retries=3,
    soft_time_limit=120,
    acks_late=True,
)
def extract_message_tasks(
    self,  # type: ignore[no-untyped-def]
    message_id: str,
) -> dict[str, Any]:
    """Run task extraction for a stored message.

    Extraction exceptions are retried with backoff; an unsuccessful
    classification completes normally.

    Args:
        self: Celery task instance (for retries).
        message_id: MessageORM UUID as string.

    Returns:
        Dict with message_id, status, intent_type and task_id.
    """
    logger.info("extract_message_tasks_started: message_id=%s", message_id)

    try:
        result = run_async(_async_extract_message_tasks(message_id))
        logger.info(
            "extract_message_tasks_completed: message_id=%s, status=%s",
            message_id,
            result["status"],
        )
        return result
    except Exception as exc:
        logger.warning(
            "extract_message_tasks_failed: message_id=%s, error=%s, retry=%d/%d",
            message_id,
            str(exc),
            self.request.retries,
            self.max_retries,
        )
        raise self.retry(exc=exc, countdown=60 * (2**self.request.retries))


async def _async_extract_message_tasks(message_id: str) -> dict[str, Any]:
    from taskbridge.messaging.extraction import HttpTaskExtractor, TaskExtractionTrigger
    from workers.queue import CeleryJobQueue

    settings = get_task_settings()
    session_factory = get_task_session_factory()
    extractor = HttpTaskExtractor(settings.extraction_service_url, settings.extraction_timeout)

    async with session_factory() as session:
        trigger = TaskExtractionTrigger(
            session,
            extractor,
            CeleryJobQueue(),
            max_errors=settings.max_processing_errors,
        )
        outcome = await trigger.run(UUID(message_id))

    return {
        "message_id": message_id,
        "status": outcome.status,
        "intent_type": outcome.intent_type,
        "task_id": str(outcome.task_id) if outcome.task_id else None,
    }


@shared_task(
    name="workers.tasks.messaging_tasks.send_notification",
    bind=True,
    max_retries=3,
    soft_time_limit=30,
    acks_late=True,
)
def send_notification(
    self,  # type: ignore[no-untyped-def]
    integration_id: str,
    text: str,
    target_group_id: Optional[str] = None,
    urgent: bool = False,
) -> dict[str, Any]:
    """Send a notification through an integration.

    Args:
        self: Celery task instance (for retries).
        integration_id: IntegrationORM UUID as string.
        text: Message body.
        target_group_id: LINE group ID, or None for every active group.
        urgent: Bypass quiet hours.

    Returns:
        Dict with integration_id, status, delivery counts and the number of
        per-group jobs a broadcast was split into.
    """
    logger.info(
        "send_notification_started: integration_id=%s, target_group_id=%s, urgent=%s",
        integration_id,
        target_group_id,
        urgent,
    )

    try:
        result = run_async(
            _async_send_notification(integration_id, text, target_group_id, urgent)
        )
        logger.info("send_notification_completed: result=%s", result)
        return result
    except Exception as exc:
        logger.warning(
            "send_notification_failed: integration_id=%s, error=%s, retry=%d/%d",
            integration_id,
            str(exc),
            self.request.retries,
            self.max_retries,
        )
        raise self.retry(exc=exc, countdown=30 * (2**self.request.retries))


async def _async_send_notification(
    integration_id: str,
    text: str,
    target_group_id: Optional[str],
    urgent: bool,
) -> dict[str, Any]:
    from taskbridge.cache.client import RedisManager
    from taskbridge.cache.rate_limiter import RateLimiter
    from taskbridge.messaging.health import IntegrationHealthMonitor
    from taskbridge.messaging.notifications import NotificationDispatcher
    from taskbridge.messaging.ports import build_adapter
    from workers.queue import CeleryJobQueue

    settings = get_task_settings()
    session_factory = get_task_session_factory()
    redis_manager = RedisManager(settings.redis_url, settings.redis_key_prefix)

    try:
        async with session_factory() as session:
            dispatcher = NotificationDispatcher(
                session,
                adapter_factory=partial(build_adapter, settings=settings),
                health=IntegrationHealthMonitor(
                    session, staleness=timedelta(minutes=settings.health_staleness_minutes)
                ),
                rate_limiter=RateLimiter(redis_manager),
                queue=CeleryJobQueue(),
                timezone_name=settings.quiet_hours_timezone,
                rate_limit=settings.notification_rate_limit,
                rate_window_seconds=settings.notification_rate_window_seconds,
            )
            outcome = await dispatcher.send(
                UUID(integration_id), text, target_group_id=target_group_id, urgent=urgent
            )
    finally:
        await redis_manager.close()

    return {
        "integration_id": integration_id,
        "status": outcome.status,
        "delivered": len(outcome.delivered),
        "rejected": len(outcome.rejected),
        "queued": len(outcome.queued),
    }


@shared_task(
    name="workers.tasks.messaging_tasks.setup_webhook",
    bind=True,
    max_retries=0,
    soft_time_limit=30,
    acks_late=True,
)
def setup_webhook(
    self,  # type: ignore[no-untyped-def]
    integration_id: str,
    force: bool = False,
) -> dict[str, Any]:
    """Register the LINE webhook for an integration.

    Not retried: a failure leaves the integration in ``error`` until an
    operator requests registration again with ``force=True``.

    Args:
        self: Celery task instance.
        integration_id: IntegrationORM UUID as string.
        force: Re-register an integration that is in ``error``.

    Returns:
        Dict with integration_id, status, webhook_url and error.
    """
    logger.info("setup_webhook_started: integration_id=%s, force=%s", integration_id, force)

    try:
        result = run_async(_async_setup_webhook(integration_id, force))
    except Exception as exc:
        logger.error("setup_webhook_failed: integration_id=%s, error=%s", integration_id, str(exc))
        raise

    logger.info("setup_webhook_completed: result=%s", result)
    return result


async def _async_setup_webhook(integration_id: str, force: bool) -> dict[str, Any]:
    from taskbridge.messaging.ports import build_adapter
    from taskbridge.messaging.registrar import WebhookRegistrar

    settings = get_task_settings()
    session_factory = get_task_session_factory()

    async with session_factory() as session:
        registrar = WebhookRegistrar(
            session,
            public_base_url=settings.public_base_url,
            adapter_factory=partial(build_adapter, settings=settings),
        )
        outcome = await registrar.register(UUID(integration_id), force=force)

    if outcome is None:
        return {"integration_id": integration_id, "status": "not_found"}
    return {
        "integration_id": integration_id,
        "status": outcome.status,
        "webhook_url": outcome.webhook_url,
        "error": outcome.error,
    }


@shared_task(
    name="workers.tasks.messaging_tasks.check_integration_health",
    bind=True,
    max_retries=0,
    soft_time_limit=60,
    acks_late=True,
)
def check_integration_health(self) -> dict[str, Any]:  # type: ignore[no-untyped-def]
    """Escalate integrations with a failed send and a stale webhook.

    Runs every 15 minutes from Celery Beat.

    Returns:
        Dict with the escalated integration IDs.
    """
    logger.info("check_integration_health_started")
    result = run_async(_async_check_integration_health())
    logger.info("check_integration_health_completed: escalated=%d", len(result["escalated"]))
    return result


async def _async_check_integration_health() -> dict[str, Any]:
    from taskbridge.messaging.health import IntegrationHealthMonitor

    settings = get_task_settings()
    session_factory = get_task_session_factory()

    async with session_factory() as session:
        monitor = IntegrationHealthMonitor(
            session, staleness=timedelta(minutes=settings.health_staleness_minutes)
        )
        escalated = await monitor.sweep()

    return {"escalated": [str(integration_id) for integration_id in escalated]}
