"""Routing of LINE webhook events to the pipeline stages."""

import logging
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from integrations.base import MessagingAPIError
from taskbridge.db.models.messaging import IntegrationORM
from taskbridge.messaging.ingestor import MessageIngestor
from taskbridge.messaging.ports import JobQueue
from taskbridge.messaging.resolver import GroupResolver
from taskbridge.messaging.schemas import WebhookEvent

logger = logging.getLogger(__name__)

DispatchOutcome = Literal[
    "ingested",
    "duplicate",
    "handled",
    "ignored",
    "invalid",
    "unresolved",
    "group_unavailable",
    "failed",
]

GROUP_EVENTS = frozenset({"message", "join", "leave", "memberJoined", "memberLeft"})
USER_EVENTS = frozenset({"follow", "unfollow"})

WELCOME_MESSAGE = (
    "Hello! I'll keep track of tasks for this group.\n"
    "\n"
    "How to use:\n"
    "- Add a task: \"Task: prepare the weekly report\"\n"
    "- Set a due date: \"Due Friday: prepare the weekly report\"\n"
    "- Assign someone: \"@Alex please prepare the weekly report\"\n"
    "- Check progress: \"What tasks are open?\""
)


class EventDispatcher:
    """Classifies one webhook event and hands it to the matching handler.

    Message handling propagates errors so the job is retried. Membership and
    lifecycle handlers are non-fatal: failures are logged and the event is
    dropped. Unknown event types are ignored.
    """

    def __init__(
        self,
        session: AsyncSession,
        queue: JobQueue,
        resolver: Optional[GroupResolver] = None,
        ingestor: Optional[MessageIngestor] = None,
    ) -> None:
        self._session = session
        self._queue = queue
        self._resolver = resolver or GroupResolver(session)
        self._ingestor = ingestor or MessageIngestor(session, queue)

    async def dispatch(
        self, payload: dict[str, Any], receiver_id: Optional[UUID] = None
    ) -> DispatchOutcome:
        """Process one event from a webhook batch.

        Args:
            payload: Raw event object as delivered by LINE.
            receiver_id: Integration whose webhook endpoint received the event.

        Returns:
            What was done with the event.
        """
        try:
            event = WebhookEvent.model_validate(payload)
        except ValidationError as exc:
            logger.warning("webhook_event_invalid: error_count=%d", exc.error_count())
            return "invalid"

        if event.type in USER_EVENTS:
            logger.info(
                "webhook_user_event: type=%s, user_id=%s", event.type, event.source.user_id
            )
            return "handled"

        if event.type not in GROUP_EVENTS:
            logger.warning("webhook_event_unknown_type: type=%s", event.type)
            return "ignored"

        group_id = event.source.group_id
        if event.source.type != "group" or not group_id:
            logger.info(
                "webhook_event_ignored: type=%s, source_type=%s", event.type, event.source.type
            )
            return "ignored"

        resolution = await self._resolver.resolve_integration(group_id, receiver_id)
        if resolution is None:
            return "unresolved"
        integration = resolution.integration

        if event.type == "message":
            return await self._on_message(integration, event)

        handler = {
            "join": self._on_join,
            "leave": self._on_leave,
            "memberJoined": self._on_member_change,
            "memberLeft": self._on_member_change,
        }[event.type]
        try:
            return await handler(integration, group_id)
        except Exception:
            logger.exception(
                "webhook_event_handler_failed: type=%s, integration_id=%s, group_id=%s",
                event.type,
                integration.id,
                group_id,
            )
            await self._session.rollback()
            return "failed"

    async def _on_message(
        self, integration: IntegrationORM, event: WebhookEvent
    ) -> DispatchOutcome:
        if not event.message or "id" not in event.message:
            logger.warning("webhook_message_missing: integration_id=%s", integration.id)
            return "ignored"

        group = await self._resolver.get_or_create_group(integration, event.source.group_id)
        if group is None:
            return "group_unavailable"

        user_id = await self._resolver.resolve_user(integration, event.source.user_id)
        result = await self._ingestor.ingest(
            group,
            user_id,
            event.message,
            event.timestamp,
            sender_external_user_id=event.source.user_id,
        )
        return "ingested" if result.created else "duplicate"

    async def _on_join(self, integration: IntegrationORM, group_id: str) -> DispatchOutcome:
        existing = await self._resolver.find_group(integration, group_id)
        if existing is not None and existing.is_active:
            logger.info("bot_join_repeated: integration_id=%s, group_id=%s", integration.id, group_id)
            return "handled"

        if existing is None:
            group = await self._resolver.get_or_create_group(integration, group_id)
            if group is None:
                return "group_unavailable"
        else:
            group = existing
            group.is_active = True
            # Reactivation must survive a failed metadata refresh.
            await self._session.commit()
            try:
                await self._resolver.refresh_group(integration, group)
            except MessagingAPIError as e:
                await self._session.rollback()
                logger.warning(
                    "group_refresh_failed: integration_id=%s, group_id=%s, error=%s",
                    integration.id,
                    group_id,
                    e,
                )

        logger.info("bot_joined_group: integration_id=%s, group_id=%s", integration.id, group_id)
        self._queue.enqueue_notification(integration.id, WELCOME_MESSAGE, target_group_id=group_id)
        return "handled"

    async def _on_leave(self, integration: IntegrationORM, group_id: str) -> DispatchOutcome:
        group = await self._resolver.find_group(integration, group_id)
        if group is None or not group.is_active:
            return "handled"
        group.is_active = False
        await self._session.commit()
        logger.info("bot_left_group: integration_id=%s, group_id=%s", integration.id, group_id)
        return "handled"

    async def _on_member_change(self, integration: IntegrationORM, group_id: str) -> DispatchOutcome:
        group = await self._resolver.find_group(integration, group_id)
        if group is None:
            group = await self._resolver.get_or_create_group(integration, group_id)
            if group is None:
                return "group_unavailable"
            return "handled"
        count = await self._resolver.refresh_member_count(integration, group)
        logger.info(
            "group_member_count_updated: integration_id=%s, group_id=%s, member_count=%d",
            integration.id,
            group_id,
            count,
        )
        return "handled"
