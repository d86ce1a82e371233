"""Unit tests for messaging pydantic models."""

import pytest
from pydantic import ValidationError

from taskbridge.messaging.schemas import ExtractionResult, WebhookEvent


@pytest.mark.unit
class TestWebhookEvent:
    """Tests for parsing LINE event objects."""

    def test_parses_camel_case_fields(self) -> None:
        event = WebhookEvent.model_validate(
            {
                "type": "message",
                "timestamp": 1772452800000,
                "source": {"type": "group", "groupId": "Cabc", "userId": "Uxyz"},
                "message": {"id": "1", "type": "text", "text": "hi"},
                "webhookEventId": "01HXYZ",
                "replyToken": "r-1",
            }
        )
        assert event.source.group_id == "Cabc"
        assert event.source.user_id == "Uxyz"
        assert event.webhook_event_id == "01HXYZ"
        assert event.occurred_at.year == 2026

    def test_keeps_unknown_fields(self) -> None:
        event = WebhookEvent.model_validate(
            {"type": "join", "timestamp": 1, "source": {"type": "group"}, "mode": "active"}
        )
        assert event.model_extra["mode"] == "active"

    def test_requires_source(self) -> None:
        with pytest.raises(ValidationError):
            WebhookEvent.model_validate({"type": "join", "timestamp": 1})

    def test_membership_payload_kept_as_extra(self) -> None:
        """memberJoined details are not modelled; counts are re-read from LINE."""
        event = WebhookEvent.model_validate(
            {
                "type": "memberJoined",
                "timestamp": 1,
                "source": {"type": "group", "groupId": "Cg"},
                "joined": {"members": [{"type": "user", "userId": "U1"}]},
            }
        )

        assert "joined" not in WebhookEvent.model_fields
        assert event.model_extra["joined"]["members"][0]["userId"] == "U1"


@pytest.mark.unit
class TestExtractionResult:
    """Tests for the extraction contract."""

    def test_defaults(self) -> None:
        result = ExtractionResult(success=False)
        assert result.intent_type == "unknown"
        assert result.confidence_score == 0.0
        assert result.task is None

    def test_confidence_bounded(self) -> None:
        with pytest.raises(ValidationError):
            ExtractionResult(success=True, confidence_score=1.5)

    def test_unknown_intent_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ExtractionResult(success=True, intent_type="small_talk")
