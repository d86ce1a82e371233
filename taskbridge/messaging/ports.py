"""Interfaces the pipeline depends on, and the default adapter factory."""

from typing import Callable, Optional, Protocol
from uuid import UUID

from integrations.base import MessagingAdapter
from integrations.models import PlatformConfig
from integrations.registry import default_registry
from taskbridge.db.models.messaging import IntegrationORM, MessageORM
from taskbridge.messaging.schemas import ExtractionResult
from taskbridge.settings import Settings

AdapterFactory = Callable[[IntegrationORM], MessagingAdapter]


class JobQueue(Protocol):
    """Background work submission used by the pipeline stages."""

    def enqueue_extraction(self, message_id: UUID) -> None:
        ...

    def enqueue_notification(
        self,
        integration_id: UUID,
        text: str,
        target_group_id: Optional[str] = None,
        urgent: bool = False,
    ) -> None:
        ...

    def enqueue_webhook_event(self, event: dict, integration_id: Optional[UUID] = None) -> None:
        ...


class TaskExtractor(Protocol):
    """Natural-language task extraction collaborator."""

    async def extract(self, message: MessageORM) -> ExtractionResult:
        ...


def build_adapter(integration: IntegrationORM, settings: Optional[Settings] = None) -> MessagingAdapter:
    """Build the platform adapter for an integration.

    Args:
        integration: Integration whose credentials the adapter uses.
        settings: Settings for API base URL and timeout; loaded when omitted.

    Returns:
        Adapter from the default registry.
    """
    if settings is None:
        from taskbridge.settings import load_settings

        settings = load_settings()

    # Importing the package registers the bundled adapters.
    import integrations  # noqa: F401

    config = PlatformConfig(
        platform="line",
        credentials=integration.credentials_json or {},
        external_channel_id=integration.external_channel_id,
        api_base_url=settings.line_api_base_url,
        timeout=settings.line_request_timeout,
    )
    return default_registry.build(config)
