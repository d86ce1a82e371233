"""Unit tests for the integration health guard and sweep."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from taskbridge.db.models.messaging import IntegrationStatusEnum
from taskbridge.messaging.health import IntegrationHealthMonitor, should_escalate


@pytest.fixture
def integrations_repo():
    repo = MagicMock()
    repo.list_failing = AsyncMock(return_value=[])
    with patch("taskbridge.messaging.health.IntegrationRepository", return_value=repo):
        yield repo


@pytest.mark.unit
class TestShouldEscalate:
    """Tests for the active -> error guard."""

    def test_stale_webhook_escalates(self, make_integration, now) -> None:
        integration = make_integration(last_webhook_received_at=now - timedelta(minutes=90))
        assert should_escalate(integration, now) is True

    def test_recent_webhook_does_not(self, make_integration, now) -> None:
        integration = make_integration(last_webhook_received_at=now - timedelta(minutes=30))
        assert should_escalate(integration, now) is False

    def test_never_received_does_not(self, make_integration, now) -> None:
        integration = make_integration(last_webhook_received_at=None)
        assert should_escalate(integration, now) is False

    def test_only_active_integrations(self, make_integration, now) -> None:
        integration = make_integration(
            status=IntegrationStatusEnum.PENDING,
            last_webhook_received_at=now - timedelta(days=1),
        )
        assert should_escalate(integration, now) is False

    def test_custom_staleness(self, make_integration, now) -> None:
        integration = make_integration(last_webhook_received_at=now - timedelta(minutes=20))
        assert should_escalate(integration, now, timedelta(minutes=15)) is True


@pytest.mark.unit
class TestIntegrationHealthMonitor:
    """Tests for recording failures and the periodic sweep."""

    @pytest.mark.asyncio
    async def test_record_failure_without_escalation_commits(
        self, session, integrations_repo, make_integration, now
    ) -> None:
        integration = make_integration()
        monitor = IntegrationHealthMonitor(session, clock=lambda: now)

        assert await monitor.record_send_failure(integration, "timeout") is False
        assert integration.last_send_failed_at == now
        assert integration.status is IntegrationStatusEnum.ACTIVE
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_record_failure_escalates(
        self, session, integrations_repo, make_integration, now
    ) -> None:
        integration = make_integration(last_webhook_received_at=now - timedelta(hours=2))
        monitor = IntegrationHealthMonitor(session, clock=lambda: now)

        assert await monitor.record_send_failure(integration, "LINE 503") is True
        assert integration.status is IntegrationStatusEnum.ERROR
        assert integration.error_message == "send failed with stale webhook: LINE 503"

    @pytest.mark.asyncio
    async def test_sweep_escalates_candidates(
        self, session, integrations_repo, make_integration, now
    ) -> None:
        stale = make_integration(
            last_webhook_received_at=now - timedelta(hours=3),
            last_send_failed_at=now - timedelta(minutes=5),
        )
        integrations_repo.list_failing.return_value = [stale]
        monitor = IntegrationHealthMonitor(session, clock=lambda: now)

        escalated = await monitor.sweep()

        assert escalated == [stale.id]
        assert stale.status is IntegrationStatusEnum.ERROR
        integrations_repo.list_failing.assert_awaited_once_with(stale_before=now - timedelta(hours=1))
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sweep_without_candidates_does_not_commit(
        self, session, integrations_repo, now
    ) -> None:
        monitor = IntegrationHealthMonitor(session, clock=lambda: now)

        assert await monitor.sweep() == []
        session.commit.assert_not_awaited()
