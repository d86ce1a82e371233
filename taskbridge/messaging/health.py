"""Integration health guard: send failures combined with a silent webhook."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskbridge.db.models.messaging import IntegrationORM, IntegrationStatusEnum
from taskbridge.db.repositories.messaging_repo import IntegrationRepository
from taskbridge.messaging.state import transition

logger = logging.getLogger(__name__)

DEFAULT_STALENESS = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def should_escalate(
    integration: IntegrationORM,
    now: datetime,
    staleness: timedelta = DEFAULT_STALENESS,
) -> bool:
    """Guard for ``active -> error``.

    True when the integration is active and its last webhook receipt is older
    than ``staleness``. An integration that never received a webhook is not
    escalated. Callers evaluate this only after a send failure.
    """
    if IntegrationStatusEnum(integration.status) is not IntegrationStatusEnum.ACTIVE:
        return False
    received = integration.last_webhook_received_at
    if received is None:
        return False
    return received < now - staleness


class IntegrationHealthMonitor:
    """Applies the escalation guard on send failure and in a periodic sweep."""

    def __init__(
        self,
        session: AsyncSession,
        staleness: timedelta = DEFAULT_STALENESS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session = session
        self._staleness = staleness
        self._clock = clock
        self._integrations = IntegrationRepository(session)

    async def record_send_failure(
        self, integration: IntegrationORM, error: Optional[str] = None
    ) -> bool:
        """Record a failed send and escalate if the webhook has gone quiet.

        Args:
            integration: Integration whose send failed.
            error: Failure description stored when escalating.

        Returns:
            True if the integration was moved to ``error``.
        """
        now = self._clock()
        integration.last_send_failed_at = now
        escalated = should_escalate(integration, now, self._staleness)
        if escalated:
            transition(
                integration,
                IntegrationStatusEnum.ERROR,
                reason=f"send failed with stale webhook: {error}" if error else "send failed with stale webhook",
            )
        await self._session.commit()
        if escalated:
            logger.warning(
                "integration_escalated: integration_id=%s, last_webhook_received_at=%s",
                integration.id,
                integration.last_webhook_received_at,
            )
        return escalated

    async def sweep(self) -> list[UUID]:
        """Escalate every active integration whose latest send failed and webhook is stale.

        Returns:
            IDs of integrations moved to ``error``.
        """
        now = self._clock()
        candidates = await self._integrations.list_failing(stale_before=now - self._staleness)
        escalated: list[UUID] = []
        for integration in candidates:
            if not should_escalate(integration, now, self._staleness):
                continue
            transition(
                integration,
                IntegrationStatusEnum.ERROR,
                reason="health check: send failure with stale webhook",
            )
            escalated.append(integration.id)

        if escalated:
            await self._session.commit()
        logger.info(
            "integration_health_sweep: candidates=%d, escalated=%d", len(candidates), len(escalated)
        )
        return escalated
