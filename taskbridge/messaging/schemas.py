"""Pydantic models for webhook events, preferences, and extraction results."""

import re
from datetime import date, datetime, timezone
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

HHMM_PATTERN = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d$")

EventType = Literal[
    "message", "join", "leave", "memberJoined", "memberLeft", "follow", "unfollow"
]
IntentType = Literal[
    "task_creation", "task_completion", "task_assignment", "status_inquiry", "unknown"
]
ProcessingErrorKind = Literal["classification", "exception"]


class EventSource(BaseModel):
    """Origin of a LINE webhook event."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str
    group_id: Optional[str] = Field(None, alias="groupId")
    user_id: Optional[str] = Field(None, alias="userId")


class WebhookEvent(BaseModel):
    """One event from a LINE webhook batch.

    Only the fields the pipeline reads are declared; the rest of the payload
    is kept as extra attributes.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str
    source: EventSource
    timestamp: int = Field(..., description="Epoch milliseconds")
    message: Optional[dict] = None
    webhook_event_id: Optional[str] = Field(None, alias="webhookEventId")

    @property
    def occurred_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000.0, tz=timezone.utc)


class TimeWindow(BaseModel):
    """A daily window between two zero-padded ``HH:MM`` times.

    Zero padding is validated here because membership is decided by plain
    string comparison.
    """

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _validate_hhmm(cls, value: str) -> str:
        if not HHMM_PATTERN.match(value):
            raise ValueError(f"time must be zero-padded HH:MM, got {value!r}")
        return value

    @property
    def wraps_midnight(self) -> bool:
        return self.start >= self.end

    def contains(self, hhmm: str) -> bool:
        """Return whether ``hhmm`` falls inside the window (bounds inclusive)."""
        if self.wraps_midnight:
            return hhmm >= self.start or hhmm <= self.end
        return self.start <= hhmm <= self.end


class NotificationPreferences(BaseModel):
    """Per-integration notification preferences.

    ``notification_times`` is the delivery window: with quiet hours enabled,
    non-urgent sends outside it are held back. ``quiet_hours`` is an explicit
    quiet window: non-urgent sends inside it are held back.

    The two read in opposite directions. To keep a team quiet overnight use
    ``quiet_hours: {"start": "22:00", "end": "07:00"}``. The same value under
    ``notification_times`` means "deliver only overnight", so a send at 23:30
    goes out and one at 12:00 is held.
    """

    model_config = ConfigDict(extra="ignore")

    quiet_hours_enabled: bool = False
    notification_times: Optional[TimeWindow] = None
    quiet_hours: Optional[TimeWindow] = None


class ExtractedTask(BaseModel):
    """Task reference returned by the extraction collaborator."""

    model_config = ConfigDict(extra="allow")

    id: UUID
    title: str
    due_date: Optional[date] = None
    assignee_name: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None


class ExtractionResult(BaseModel):
    """Contract returned by the task extraction collaborator."""

    success: bool
    intent_type: IntentType = "unknown"
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)
    parsed_content: dict = Field(default_factory=dict)
    task: Optional[ExtractedTask] = None
    error: Optional[str] = None


class ProcessingError(BaseModel):
    """One entry of a message's bounded processing error record."""

    kind: ProcessingErrorKind
    message: str
    occurred_at: datetime
