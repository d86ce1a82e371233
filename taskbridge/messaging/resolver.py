"""Resolution of LINE groups to integrations, and lazy group creation."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from integrations.base import MessagingAPIError
from taskbridge.db.models.messaging import GroupORM, IntegrationORM, IntegrationStatusEnum
from taskbridge.db.repositories.messaging_repo import (
    GroupRepository,
    IntegrationRepository,
    UserLinkRepository,
)
from taskbridge.messaging.ports import AdapterFactory, build_adapter

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def placeholder_group_name(external_group_id: str) -> str:
    return f"Group {external_group_id[:8]}"


@dataclass(frozen=True)
class Resolution:
    """An integration found for a group, and which strategy found it."""

    integration: IntegrationORM
    resolved_by: str


class ResolutionStrategy(Protocol):
    """One way of finding the integration that owns an external group."""

    name: str

    async def resolve(
        self,
        session: AsyncSession,
        external_group_id: str,
        receiver_id: Optional[UUID],
    ) -> Optional[IntegrationORM]:
        ...


class MappingStrategy:
    """Use the integration the group is already stored under."""

    name = "mapping"

    async def resolve(
        self,
        session: AsyncSession,
        external_group_id: str,
        receiver_id: Optional[UUID],
    ) -> Optional[IntegrationORM]:
        return await IntegrationRepository(session).find_by_group(external_group_id)


class ReceiverStrategy:
    """Use the integration whose webhook URL received the event, if it is active."""

    name = "receiver"

    async def resolve(
        self,
        session: AsyncSession,
        external_group_id: str,
        receiver_id: Optional[UUID],
    ) -> Optional[IntegrationORM]:
        if receiver_id is None:
            return None
        integration = await IntegrationRepository(session).get_by_id(receiver_id)
        if integration is None or not _is_active(integration):
            return None
        return integration


class SingleActiveStrategy:
    """Fall back to the only active integration in the system.

    Only safe for single-tenant deployments: with several active integrations
    there is no way to tell which one a new group belongs to, so nothing is
    resolved.
    """

    name = "single_active"

    async def resolve(
        self,
        session: AsyncSession,
        external_group_id: str,
        receiver_id: Optional[UUID],
    ) -> Optional[IntegrationORM]:
        candidates = await IntegrationRepository(session).list_active(limit=2)
        if len(candidates) == 1:
            return candidates[0]
        if len(candidates) > 1:
            logger.warning(
                "single_active_fallback_ambiguous: external_group_id=%s, active_count>1",
                external_group_id,
            )
        return None


STRATEGIES: dict[str, type] = {
    MappingStrategy.name: MappingStrategy,
    ReceiverStrategy.name: ReceiverStrategy,
    SingleActiveStrategy.name: SingleActiveStrategy,
}


def build_strategies(names: Sequence[str]) -> list[ResolutionStrategy]:
    """Instantiate resolution strategies in the configured order.

    Raises:
        ValueError: If a name is not a known strategy.
    """
    strategies: list[ResolutionStrategy] = []
    for name in names:
        strategy_class = STRATEGIES.get(name)
        if strategy_class is None:
            raise ValueError(
                f"Unknown group resolution strategy '{name}'. Available: {list(STRATEGIES)}"
            )
        strategies.append(strategy_class())
    return strategies


def _is_active(integration: IntegrationORM) -> bool:
    return bool(integration.is_active) and (
        IntegrationStatusEnum(integration.status) is IntegrationStatusEnum.ACTIVE
    )


class GroupResolver:
    """Maps external group ids to integrations and group rows.

    Adapter failures during lookups are logged and reported as "unavailable"
    (None) rather than raised; the event is then dropped without retry.
    """

    def __init__(
        self,
        session: AsyncSession,
        strategies: Optional[Sequence[ResolutionStrategy]] = None,
        adapter_factory: AdapterFactory = build_adapter,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session = session
        self._strategies = list(strategies) if strategies is not None else [
            MappingStrategy(),
            ReceiverStrategy(),
            SingleActiveStrategy(),
        ]
        self._adapter_factory = adapter_factory
        self._clock = clock
        self._groups = GroupRepository(session)
        self._user_links = UserLinkRepository(session)

    async def resolve_integration(
        self,
        external_group_id: str,
        receiver_id: Optional[UUID] = None,
    ) -> Optional[Resolution]:
        """Run the strategy chain for a group.

        Args:
            external_group_id: LINE group ID from the event source.
            receiver_id: Integration whose webhook endpoint received the event.

        Returns:
            Resolution with the strategy name, or None if nothing matched.
        """
        for strategy in self._strategies:
            integration = await strategy.resolve(self._session, external_group_id, receiver_id)
            if integration is not None:
                logger.info(
                    "group_resolution_resolved: external_group_id=%s, integration_id=%s, "
                    "resolved_by=%s",
                    external_group_id,
                    integration.id,
                    strategy.name,
                )
                return Resolution(integration=integration, resolved_by=strategy.name)

        logger.warning(
            "group_resolution_unresolved: external_group_id=%s, receiver_id=%s, strategies=%s",
            external_group_id,
            receiver_id,
            ",".join(s.name for s in self._strategies),
        )
        return None

    async def find_group(
        self, integration: IntegrationORM, external_group_id: str
    ) -> Optional[GroupORM]:
        return await self._groups.find(integration.id, external_group_id)

    async def get_or_create_group(
        self, integration: IntegrationORM, external_group_id: str
    ) -> Optional[GroupORM]:
        """Return the group row, creating it from platform metadata on first contact.

        Args:
            integration: Resolved owning integration.
            external_group_id: LINE group ID.

        Returns:
            The group, or None when the platform could not be reached.
        """
        group = await self._groups.find(integration.id, external_group_id)
        if group is not None:
            return group

        try:
            adapter = self._adapter_factory(integration)
            info = await adapter.get_group_info(external_group_id)
            member_count = await adapter.get_group_member_count(external_group_id)
        except (MessagingAPIError, ValueError) as exc:
            logger.warning(
                "group_create_unavailable: integration_id=%s, external_group_id=%s, error=%s",
                integration.id,
                external_group_id,
                exc,
            )
            return None

        name = info.name if info is not None and info.name else None
        group = await self._groups.insert_if_absent(
            integration_id=integration.id,
            external_group_id=external_group_id,
            name=name or placeholder_group_name(external_group_id),
            member_count=member_count,
            last_activity_at=self._clock(),
        )
        await self._session.commit()
        logger.info(
            "group_created: integration_id=%s, external_group_id=%s, group_id=%s, "
            "placeholder_name=%s",
            integration.id,
            external_group_id,
            group.id,
            name is None,
        )
        return group

    async def refresh_group(self, integration: IntegrationORM, group: GroupORM) -> bool:
        """Re-read name and member count from the platform.

        Returns:
            True if the group was updated, False if the platform had no metadata.
        """
        adapter = self._adapter_factory(integration)
        info = await adapter.get_group_info(group.external_group_id)
        if info is None:
            return False
        group.member_count = await adapter.get_group_member_count(group.external_group_id)
        if info.name:
            group.name = info.name
        group.last_activity_at = self._clock()
        await self._session.commit()
        return True

    async def refresh_member_count(self, integration: IntegrationORM, group: GroupORM) -> int:
        """Set the group's member count to the platform's current figure.

        An absolute count keeps redelivered membership events idempotent.
        """
        adapter = self._adapter_factory(integration)
        count = max(0, await adapter.get_group_member_count(group.external_group_id))
        group.member_count = count
        await self._session.commit()
        return count

    async def resolve_user(
        self, integration: IntegrationORM, external_user_id: Optional[str]
    ) -> Optional[UUID]:
        """Best-effort lookup of the internal user behind a LINE user id."""
        if not external_user_id:
            return None
        return await self._user_links.resolve(integration.id, external_user_id)
