"""Outbound notifications with eligibility, rate and quiet-hours guards."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Literal, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from integrations.base import MessagingAPIError
from taskbridge.cache.rate_limiter import RateLimiter
from taskbridge.db.models.messaging import IntegrationORM, IntegrationStatusEnum
from taskbridge.db.repositories.messaging_repo import GroupRepository, IntegrationRepository
from taskbridge.messaging.health import IntegrationHealthMonitor
from taskbridge.messaging.ports import AdapterFactory, JobQueue, build_adapter
from taskbridge.messaging.quiet_hours import parse_preferences, should_suppress

logger = logging.getLogger(__name__)

SendStatus = Literal[
    "sent",
    "rejected",
    "skipped_not_found",
    "skipped_ineligible",
    "skipped_rate_limited",
    "skipped_quiet_hours",
    "skipped_no_targets",
    "fanned_out",
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class NotificationOutcome:
    """Result of one send request.

    ``rejected`` lists target groups the platform refused; the request as a
    whole is ``rejected`` only when nothing was delivered. ``queued`` lists the
    groups a broadcast was split into.
    """

    status: SendStatus
    delivered: list[str] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)
    queued: list[str] = field(default_factory=list)


class NotificationDispatcher:
    """Sends text to one group, or to every active group, of an integration.

    Guards run in order: the integration must exist and be active, the
    per-integration send rate must not be exceeded, and non-urgent sends
    must fall outside quiet hours. A transport failure is recorded with the
    health monitor (which may escalate the integration to ``error``) and
    re-raised for the job's retry policy.

    With a job queue, a broadcast to several groups is split into one job per
    group, so a retry after a failure resends only to the group that failed.
    Without one, groups are sent to in turn and a retry resends to all of them.
    """

    def __init__(
        self,
        session: AsyncSession,
        adapter_factory: AdapterFactory = build_adapter,
        health: Optional[IntegrationHealthMonitor] = None,
        rate_limiter: Optional[RateLimiter] = None,
        queue: Optional[JobQueue] = None,
        timezone_name: str = "UTC",
        rate_limit: int = 60,
        rate_window_seconds: int = 60,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session = session
        self._adapter_factory = adapter_factory
        self._health = health or IntegrationHealthMonitor(session, clock=clock)
        self._rate_limiter = rate_limiter
        self._queue = queue
        self._timezone_name = timezone_name
        self._rate_limit = rate_limit
        self._rate_window_seconds = rate_window_seconds
        self._clock = clock
        self._integrations = IntegrationRepository(session)
        self._groups = GroupRepository(session)

    async def send(
        self,
        integration_id: UUID,
        text: str,
        target_group_id: Optional[str] = None,
        urgent: bool = False,
    ) -> NotificationOutcome:
        """Send ``text`` through an integration.

        Args:
            integration_id: Integration to send through.
            text: Message body.
            target_group_id: LINE group ID; all active groups with notifications
                enabled when omitted.
            urgent: Bypass quiet hours.

        Returns:
            NotificationOutcome with per-group delivery detail.

        Raises:
            MessagingAPIError: On transport failure or platform 5xx, after the
                failure has been recorded.
        """
        integration = await self._integrations.get_by_id(integration_id)
        if integration is None:
            logger.warning("notification_skipped: integration_id=%s, reason=not_found", integration_id)
            return NotificationOutcome(status="skipped_not_found")

        if not self._is_eligible(integration):
            logger.info(
                "notification_skipped: integration_id=%s, reason=ineligible, status=%s, is_active=%s",
                integration_id,
                integration.status,
                integration.is_active,
            )
            return NotificationOutcome(status="skipped_ineligible")

        if self._rate_limiter is not None:
            limit = await self._rate_limiter.check_rate_limit(
                integration_id, "send", self._rate_limit, self._rate_window_seconds
            )
            if not limit.allowed:
                logger.warning(
                    "notification_skipped: integration_id=%s, reason=rate_limited, reset_at=%s",
                    integration_id,
                    limit.reset_at.isoformat(),
                )
                return NotificationOutcome(status="skipped_rate_limited")

        now = self._clock()
        preferences = parse_preferences(integration.notification_preferences)
        if should_suppress(preferences, now, self._timezone_name, urgent=urgent):
            logger.info(
                "notification_skipped: integration_id=%s, reason=quiet_hours", integration_id
            )
            return NotificationOutcome(status="skipped_quiet_hours")

        targets = await self._targets(integration, target_group_id)
        if not targets:
            logger.info("notification_skipped: integration_id=%s, reason=no_targets", integration_id)
            return NotificationOutcome(status="skipped_no_targets")

        if target_group_id is None and self._queue is not None and len(targets) > 1:
            for group_id in targets:
                self._queue.enqueue_notification(
                    integration_id, text, target_group_id=group_id, urgent=urgent
                )
            logger.info(
                "notification_fanned_out: integration_id=%s, groups=%d", integration_id, len(targets)
            )
            return NotificationOutcome(status="fanned_out", queued=list(targets))

        adapter = self._adapter_factory(integration)
        outcome = NotificationOutcome(status="rejected")
        for group_id in targets:
            try:
                accepted = await adapter.send_message(text, group_id)
            except MessagingAPIError as exc:
                logger.error(
                    "notification_send_failed: integration_id=%s, group_id=%s, status_code=%s, error=%s",
                    integration_id,
                    group_id,
                    exc.status_code,
                    str(exc),
                )
                if outcome.delivered:
                    integration.last_activity_at = self._clock()
                await self._health.record_send_failure(integration, str(exc))
                raise

            if accepted:
                outcome.delivered.append(group_id)
            else:
                outcome.rejected.append(group_id)
                logger.warning(
                    "notification_rejected: integration_id=%s, group_id=%s", integration_id, group_id
                )

        if outcome.delivered:
            outcome.status = "sent"
            integration.last_activity_at = self._clock()
            await self._session.commit()
            logger.info(
                "notification_sent: integration_id=%s, delivered=%d, rejected=%d, urgent=%s",
                integration_id,
                len(outcome.delivered),
                len(outcome.rejected),
                urgent,
            )
        return outcome

    @staticmethod
    def _is_eligible(integration: IntegrationORM) -> bool:
        return (
            bool(integration.is_active)
            and IntegrationStatusEnum(integration.status) is IntegrationStatusEnum.ACTIVE
            and bool(integration.access_token)
        )

    async def _targets(
        self, integration: IntegrationORM, target_group_id: Optional[str]
    ) -> list[str]:
        if target_group_id:
            return [target_group_id]
        groups = await self._groups.list_active(integration.id)
        return [g.external_group_id for g in groups if g.notifications_enabled]
