"""Idempotent persistence of inbound chat messages."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskbridge.db.models.messaging import GroupORM
from taskbridge.db.repositories.messaging_repo import MessageRepository
from taskbridge.messaging.ports import JobQueue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    """What happened to one inbound message."""

    external_message_id: str
    message_id: Optional[UUID]
    created: bool
    extraction_enqueued: bool = False


def message_text(message: dict[str, Any]) -> str:
    """Return the message text, or a descriptive placeholder for non-text kinds."""
    kind = message.get("type", "unknown")
    if kind == "text" and message.get("text"):
        return message["text"]
    if kind == "sticker":
        return f"[Sticker: {message.get('packageId')}/{message.get('stickerId')}]"
    if kind == "image":
        return "[Image message]"
    if kind == "video":
        return "[Video message]"
    if kind == "audio":
        return "[Audio message]"
    if kind == "file":
        return f"[File: {message.get('fileName')}]"
    if kind == "location":
        return f"[Location: {message.get('title')}]"
    return f"[{kind} message]"


def from_epoch_millis(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)


class MessageIngestor:
    """Stores each external message once and hands text messages to extraction.

    Redelivery of an already stored external id is the expected outcome of
    at-least-once delivery and is reported as ``created=False``.
    """

    def __init__(
        self,
        session: AsyncSession,
        queue: JobQueue,
        extraction_enabled: bool = True,
    ) -> None:
        self._session = session
        self._queue = queue
        self._extraction_enabled = extraction_enabled
        self._messages = MessageRepository(session)

    async def ingest(
        self,
        group: GroupORM,
        user_id: Optional[UUID],
        message: dict[str, Any],
        timestamp_ms: int,
        sender_external_user_id: Optional[str] = None,
    ) -> IngestResult:
        """Persist one inbound message.

        Args:
            group: Group the message was posted in.
            user_id: Resolved internal user, if any.
            message: Raw LINE message object (``id``, ``type``, kind-specific fields).
            timestamp_ms: Event timestamp in epoch milliseconds.
            sender_external_user_id: LINE user id of the sender.

        Returns:
            IngestResult describing whether a row was created and extraction enqueued.
        """
        external_id = str(message["id"])
        kind = message.get("type", "unknown")
        sent_at = from_epoch_millis(timestamp_ms)

        message_id = await self._messages.insert_if_absent(
            group_id=group.id,
            external_message_id=external_id,
            message_text=message_text(message),
            message_kind=kind,
            user_id=user_id,
            sender_external_user_id=sender_external_user_id,
            sent_at=sent_at,
        )
        if message_id is None:
            logger.info(
                "message_ingest_duplicate: external_message_id=%s, group_id=%s",
                external_id,
                group.id,
            )
            return IngestResult(external_message_id=external_id, message_id=None, created=False)

        group.last_activity_at = sent_at
        await self._session.commit()
        logger.info(
            "message_ingested: message_id=%s, external_message_id=%s, group_id=%s, kind=%s",
            message_id,
            external_id,
            group.id,
            kind,
        )

        enqueued = False
        if kind == "text" and group.auto_parse_enabled and self._extraction_enabled:
            enqueued = self._enqueue_extraction(message_id)

        return IngestResult(
            external_message_id=external_id,
            message_id=message_id,
            created=True,
            extraction_enqueued=enqueued,
        )

    def _enqueue_extraction(self, message_id: UUID) -> bool:
        try:
            self._queue.enqueue_extraction(message_id)
        except Exception as exc:
            logger.warning(
                "extraction_enqueue_failed: message_id=%s, error=%s", message_id, str(exc)
            )
            return False
        return True
