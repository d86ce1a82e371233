"""Webhook registration for an integration."""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskbridge.db.models.messaging import IntegrationORM, IntegrationStatusEnum
from taskbridge.db.repositories.messaging_repo import IntegrationRepository
from taskbridge.messaging.ports import AdapterFactory, build_adapter
from taskbridge.messaging.state import force_reregistration, transition

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/v1/webhooks/line/{integration_id}"


def callback_url(public_base_url: Optional[str], integration_id: UUID) -> str:
    """Build the externally reachable webhook URL for an integration.

    Raises:
        ValueError: If no public base URL is configured.
    """
    if not public_base_url:
        raise ValueError("PUBLIC_BASE_URL is not configured; cannot build webhook callback URL")
    return public_base_url.rstrip("/") + WEBHOOK_PATH.format(integration_id=integration_id)


@dataclass(frozen=True)
class RegistrationOutcome:
    integration_id: UUID
    status: str
    webhook_url: Optional[str] = None
    error: Optional[str] = None


class WebhookRegistrar:
    """Registers the callback URL with LINE and moves the integration out of ``pending``.

    Registration is not retried here. An integration in ``error`` is only
    registered again when the caller passes ``force=True``.
    """

    def __init__(
        self,
        session: AsyncSession,
        public_base_url: Optional[str],
        adapter_factory: AdapterFactory = build_adapter,
    ) -> None:
        self._session = session
        self._public_base_url = public_base_url
        self._adapter_factory = adapter_factory
        self._integrations = IntegrationRepository(session)

    async def register(self, integration_id: UUID, force: bool = False) -> Optional[RegistrationOutcome]:
        """Register the webhook for one integration.

        Args:
            integration_id: Integration to register.
            force: Reset an ``error`` integration to ``pending`` first.

        Returns:
            RegistrationOutcome, or None if the integration does not exist.

        Raises:
            Exception: Any adapter or configuration error, after the
                integration has been moved to ``error``.
        """
        integration = await self._integrations.get_by_id(integration_id)
        if integration is None:
            logger.warning("webhook_setup_skipped: integration_id=%s, reason=not_found", integration_id)
            return None

        if IntegrationStatusEnum(integration.status) is IntegrationStatusEnum.ERROR:
            if not force:
                logger.info(
                    "webhook_setup_skipped: integration_id=%s, reason=error_status", integration_id
                )
                return RegistrationOutcome(
                    integration_id=integration_id,
                    status=IntegrationStatusEnum.ERROR.value,
                    error=integration.error_message,
                )
            force_reregistration(integration)

        try:
            url = callback_url(self._public_base_url, integration.id)
            result = await self._adapter_factory(integration).register_webhook(url)
        except Exception as exc:
            await self._fail(integration, f"Webhook setup error: {exc}")
            logger.error("webhook_setup_error: integration_id=%s, error=%s", integration_id, str(exc))
            raise

        if not result.success:
            await self._fail(integration, result.error or "Webhook registration failed")
            logger.warning(
                "webhook_setup_failed: integration_id=%s, error=%s", integration_id, result.error
            )
            return RegistrationOutcome(
                integration_id=integration_id,
                status=IntegrationStatusEnum.ERROR.value,
                error=result.error,
            )

        integration.webhook_url = result.webhook_url or url
        integration.is_active = True
        transition(integration, IntegrationStatusEnum.ACTIVE)
        await self._session.commit()
        logger.info(
            "webhook_setup_completed: integration_id=%s, webhook_url=%s",
            integration_id,
            integration.webhook_url,
        )
        return RegistrationOutcome(
            integration_id=integration_id,
            status=IntegrationStatusEnum.ACTIVE.value,
            webhook_url=integration.webhook_url,
        )

    async def _fail(self, integration: IntegrationORM, reason: str) -> None:
        transition(integration, IntegrationStatusEnum.ERROR, reason=reason)
        await self._session.commit()
