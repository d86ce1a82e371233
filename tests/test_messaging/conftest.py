"""Shared fixtures for messaging pipeline tests."""

from datetime import datetime, timezone
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from taskbridge.db.models.messaging import (
    GroupORM,
    IntegrationORM,
    IntegrationStatusEnum,
    IntentTypeEnum,
    MessageORM,
)

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """Fixed "current" time used by injected clocks."""
    return NOW


@pytest.fixture
def session() -> AsyncMock:
    """Mock AsyncSession with commit/rollback/execute."""
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def make_integration() -> Callable[..., IntegrationORM]:
    """Factory for in-memory IntegrationORM instances (active by default)."""

    def _make(**overrides: Any) -> IntegrationORM:
        values: dict[str, Any] = {
            "id": uuid4(),
            "name": "Sales team",
            "external_channel_id": f"channel-{uuid4().hex[:8]}",
            "credentials_json": {"access_token": "token-abc", "channel_secret": "secret-xyz"},
            "status": IntegrationStatusEnum.ACTIVE,
            "is_active": True,
            "notification_preferences": {},
            "last_webhook_received_at": NOW,
        }
        values.update(overrides)
        return IntegrationORM(**values)

    return _make


@pytest.fixture
def make_group() -> Callable[..., GroupORM]:
    """Factory for in-memory GroupORM instances."""

    def _make(**overrides: Any) -> GroupORM:
        values: dict[str, Any] = {
            "id": uuid4(),
            "integration_id": uuid4(),
            "external_group_id": "C" + uuid4().hex,
            "name": "Project room",
            "member_count": 3,
            "is_active": True,
            "auto_parse_enabled": True,
            "notifications_enabled": True,
        }
        values.update(overrides)
        return GroupORM(**values)

    return _make


@pytest.fixture
def make_message() -> Callable[..., MessageORM]:
    """Factory for in-memory MessageORM instances (unprocessed text by default)."""

    def _make(**overrides: Any) -> MessageORM:
        values: dict[str, Any] = {
            "id": uuid4(),
            "group_id": uuid4(),
            "external_message_id": uuid4().hex,
            "message_text": "Task: send the invoice by Friday",
            "message_kind": "text",
            "sent_at": NOW,
            "is_processed": False,
            "intent_type": IntentTypeEnum.UNKNOWN,
            "parsed_content": {},
            "processing_errors": [],
        }
        values.update(overrides)
        return MessageORM(**values)

    return _make


@pytest.fixture
def adapter() -> AsyncMock:
    """Mock MessagingAdapter with successful defaults."""
    adapter = AsyncMock()
    adapter.send_message = AsyncMock(return_value=True)
    adapter.get_group_info = AsyncMock(return_value=None)
    adapter.get_group_member_count = AsyncMock(return_value=0)
    adapter.register_webhook = AsyncMock()
    return adapter


@pytest.fixture
def queue() -> MagicMock:
    """Mock JobQueue."""
    return MagicMock()
