"""Unit tests for idempotent message ingestion."""

from typing import Any, Optional
from unittest.mock import patch
from uuid import UUID, uuid4

import pytest

from taskbridge.messaging.ingestor import MessageIngestor, from_epoch_millis, message_text

TIMESTAMP_MS = 1772452800000


class InMemoryMessageRepository:
    """Stands in for MessageRepository with the same insert-if-absent contract."""

    def __init__(self, session: Any = None) -> None:
        self.rows: dict[str, dict[str, Any]] = {}

    async def insert_if_absent(self, **values: Any) -> Optional[UUID]:
        key = values["external_message_id"]
        if key in self.rows:
            return None
        row_id = uuid4()
        self.rows[key] = {"id": row_id, **values}
        return row_id


@pytest.fixture
def store():
    repo = InMemoryMessageRepository()
    with patch("taskbridge.messaging.ingestor.MessageRepository", return_value=repo):
        yield repo


@pytest.mark.unit
class TestMessageText:
    """Tests for text and non-text placeholders."""

    def test_text_message(self) -> None:
        assert message_text({"type": "text", "text": "hello"}) == "hello"

    def test_sticker_placeholder(self) -> None:
        message = {"type": "sticker", "packageId": "1", "stickerId": "2"}
        assert message_text(message) == "[Sticker: 1/2]"

    @pytest.mark.parametrize(
        "message,expected",
        [
            ({"type": "image"}, "[Image message]"),
            ({"type": "video"}, "[Video message]"),
            ({"type": "audio"}, "[Audio message]"),
            ({"type": "file", "fileName": "plan.pdf"}, "[File: plan.pdf]"),
            ({"type": "location", "title": "Office"}, "[Location: Office]"),
            ({"type": "imagemap"}, "[imagemap message]"),
        ],
    )
    def test_non_text_placeholders(self, message, expected) -> None:
        assert message_text(message) == expected

    def test_epoch_millis_is_utc(self) -> None:
        sent_at = from_epoch_millis(TIMESTAMP_MS)
        assert sent_at.utcoffset().total_seconds() == 0
        assert sent_at.year == 2026


@pytest.mark.unit
class TestMessageIngestor:
    """Tests for MessageIngestor.ingest."""

    @pytest.mark.asyncio
    async def test_redelivery_stores_one_row_and_enqueues_once(
        self, session, queue, store, make_group
    ) -> None:
        group = make_group()
        ingestor = MessageIngestor(session, queue)
        message = {"id": "m-100", "type": "text", "text": "Task: book the venue"}

        first = await ingestor.ingest(group, None, message, TIMESTAMP_MS)
        second = await ingestor.ingest(group, None, message, TIMESTAMP_MS)

        assert first.created is True
        assert first.extraction_enqueued is True
        assert second.created is False
        assert second.message_id is None
        assert len(store.rows) == 1
        queue.enqueue_extraction.assert_called_once_with(first.message_id)

    @pytest.mark.asyncio
    async def test_persists_fields_and_touches_group(
        self, session, queue, store, make_group
    ) -> None:
        group = make_group()
        user_id = uuid4()

        await MessageIngestor(session, queue).ingest(
            group,
            user_id,
            {"id": 42, "type": "text", "text": "hi"},
            TIMESTAMP_MS,
            sender_external_user_id="Uabc",
        )

        row = store.rows["42"]
        assert row["group_id"] == group.id
        assert row["user_id"] == user_id
        assert row["sender_external_user_id"] == "Uabc"
        assert row["message_kind"] == "text"
        assert row["sent_at"] == from_epoch_millis(TIMESTAMP_MS)
        assert group.last_activity_at == from_epoch_millis(TIMESTAMP_MS)
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sticker_stored_without_extraction(
        self, session, queue, store, make_group
    ) -> None:
        message = {"id": "m-s", "type": "sticker", "packageId": "1", "stickerId": "2"}

        result = await MessageIngestor(session, queue).ingest(make_group(), None, message, TIMESTAMP_MS)

        assert result.created is True
        assert result.extraction_enqueued is False
        assert store.rows["m-s"]["message_text"] == "[Sticker: 1/2]"
        queue.enqueue_extraction.assert_not_called()

    @pytest.mark.asyncio
    async def test_auto_parse_disabled_skips_extraction(
        self, session, queue, store, make_group
    ) -> None:
        group = make_group(auto_parse_enabled=False)

        result = await MessageIngestor(session, queue).ingest(
            group, None, {"id": "m-1", "type": "text", "text": "x"}, TIMESTAMP_MS
        )

        assert result.extraction_enqueued is False
        queue.enqueue_extraction.assert_not_called()

    @pytest.mark.asyncio
    async def test_extraction_flag_off_skips_extraction(
        self, session, queue, store, make_group
    ) -> None:
        ingestor = MessageIngestor(session, queue, extraction_enabled=False)

        result = await ingestor.ingest(
            make_group(), None, {"id": "m-2", "type": "text", "text": "x"}, TIMESTAMP_MS
        )

        assert result.created is True
        queue.enqueue_extraction.assert_not_called()

    @pytest.mark.asyncio
    async def test_enqueue_failure_does_not_fail_ingest(
        self, session, queue, store, make_group
    ) -> None:
        """The row is already committed; a broker outage only loses the trigger."""
        queue.enqueue_extraction.side_effect = ConnectionError("broker unreachable")

        result = await MessageIngestor(session, queue).ingest(
            make_group(), None, {"id": "m-3", "type": "text", "text": "x"}, TIMESTAMP_MS
        )

        assert result.created is True
        assert result.extraction_enqueued is False
        assert "m-3" in store.rows
