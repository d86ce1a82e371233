"""Task extraction for stored messages and confirmation replies."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Literal, Optional
from uuid import UUID

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from taskbridge.db.models.messaging import IntentTypeEnum, MessageORM
from taskbridge.db.repositories.messaging_repo import GroupRepository, MessageRepository
from taskbridge.messaging.ports import JobQueue, TaskExtractor
from taskbridge.messaging.schemas import (
    ExtractedTask,
    ExtractionResult,
    ProcessingError,
    ProcessingErrorKind,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ERRORS = 20

ExtractionStatus = Literal["processed", "failed", "skipped_not_found", "skipped_processed"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ExtractionOutcome:
    message_id: UUID
    status: ExtractionStatus
    intent_type: Optional[str] = None
    task_id: Optional[UUID] = None
    confirmation_enqueued: bool = False


def build_confirmation(intent_type: str, task: ExtractedTask, now: datetime) -> str:
    """Render the group reply confirming what was done with a message."""
    due = task.due_date.isoformat() if task.due_date else "not set"
    if intent_type == "task_creation":
        return (
            "Task created\n"
            f"Title: {task.title}\n"
            f"Due: {due}\n"
            f"Assignee: {task.assignee_name or 'unassigned'}\n"
            f"Priority: {task.priority or 'normal'}\n"
            f"Status: {task.status or 'open'}"
        )
    if intent_type == "task_completion":
        return (
            "Task completed\n"
            f"Title: {task.title}\n"
            f"Completed by: {task.assignee_name or 'unknown'}\n"
            f"Completed at: {now.strftime('%Y-%m-%d %H:%M')}"
        )
    if intent_type == "task_assignment":
        return (
            "Task assigned\n"
            f"Title: {task.title}\n"
            f"Assignee: {task.assignee_name or 'unassigned'}\n"
            f"Due: {due}"
        )
    return f"Message processed: {intent_type}"


class HttpTaskExtractor:
    """Calls the extraction service over HTTP.

    The service receives the message text and context and answers with an
    ``ExtractionResult`` document.
    """

    def __init__(self, base_url: str, timeout: float = 30.0) -> None:
        if not base_url:
            raise ValueError("extraction service URL is not configured")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def extract(self, message: MessageORM) -> ExtractionResult:
        payload = {
            "message_id": str(message.id),
            "group_id": str(message.group_id),
            "user_id": str(message.user_id) if message.user_id else None,
            "text": message.message_text,
            "sent_at": message.sent_at.isoformat() if message.sent_at else None,
        }
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(f"{self._base_url}/extract", json=payload)
            response.raise_for_status()
            return ExtractionResult.model_validate(response.json())


class TaskExtractionTrigger:
    """Runs extraction for one stored message and records the result.

    Extractor exceptions are recorded on the message and re-raised so the
    job can be retried. An unsuccessful classification is recorded and not
    retried.
    """

    def __init__(
        self,
        session: AsyncSession,
        extractor: TaskExtractor,
        queue: JobQueue,
        clock: Callable[[], datetime] = _utcnow,
        max_errors: int = DEFAULT_MAX_ERRORS,
    ) -> None:
        self._session = session
        self._extractor = extractor
        self._queue = queue
        self._clock = clock
        self._max_errors = max_errors
        self._messages = MessageRepository(session)
        self._groups = GroupRepository(session)

    async def run(self, message_id: UUID) -> ExtractionOutcome:
        message = await self._messages.get_by_id(message_id)
        if message is None:
            logger.warning("task_extraction_skipped: message_id=%s, reason=not_found", message_id)
            return ExtractionOutcome(message_id=message_id, status="skipped_not_found")
        if message.is_processed:
            logger.info("task_extraction_skipped: message_id=%s, reason=processed", message_id)
            return ExtractionOutcome(message_id=message_id, status="skipped_processed")

        try:
            result = await self._extractor.extract(message)
        except Exception as exc:
            self._record_error(message, "exception", f"Processing failed: {exc}")
            await self._session.commit()
            logger.error("task_extraction_error: message_id=%s, error=%s", message_id, str(exc))
            raise

        if not result.success:
            self._record_error(message, "classification", result.error or "Classification failed")
            await self._session.commit()
            logger.info(
                "task_extraction_unclassified: message_id=%s, error=%s", message_id, result.error
            )
            return ExtractionOutcome(
                message_id=message_id, status="failed", intent_type=result.intent_type
            )

        message.is_processed = True
        message.intent_type = IntentTypeEnum(result.intent_type)
        message.confidence_score = result.confidence_score
        message.parsed_content = result.parsed_content
        message.task_id = result.task.id if result.task is not None else None
        await self._session.commit()
        logger.info(
            "task_extraction_processed: message_id=%s, intent=%s, confidence=%.2f, task_id=%s",
            message_id,
            result.intent_type,
            result.confidence_score,
            message.task_id,
        )

        enqueued = False
        if result.task is not None and result.intent_type != "status_inquiry":
            enqueued = await self._enqueue_confirmation(message, result)

        return ExtractionOutcome(
            message_id=message_id,
            status="processed",
            intent_type=result.intent_type,
            task_id=message.task_id,
            confirmation_enqueued=enqueued,
        )

    def _record_error(self, message: MessageORM, kind: ProcessingErrorKind, text: str) -> None:
        entry = ProcessingError(kind=kind, message=text, occurred_at=self._clock())
        errors = list(message.processing_errors or [])
        errors.append(entry.model_dump(mode="json"))
        # Reassign so the JSONB column is flagged dirty.
        message.processing_errors = errors[-self._max_errors:]

    async def _enqueue_confirmation(self, message: MessageORM, result: ExtractionResult) -> bool:
        group = await self._groups.get_by_id(message.group_id)
        if group is None or not group.notifications_enabled:
            return False

        text = build_confirmation(result.intent_type, result.task, self._clock())
        try:
            self._queue.enqueue_notification(
                group.integration_id, text, target_group_id=group.external_group_id
            )
        except Exception as exc:
            logger.warning(
                "confirmation_enqueue_failed: message_id=%s, error=%s", message.id, str(exc)
            )
            return False
        return True
