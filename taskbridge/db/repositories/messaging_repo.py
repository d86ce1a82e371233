"""Repositories for integrations, groups, messages, and user links."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from taskbridge.db.models.messaging import (
    ChatUserLinkORM,
    GroupORM,
    IntegrationORM,
    IntegrationStatusEnum,
    MessageORM,
)
from taskbridge.db.repositories.base import BaseRepository


class IntegrationRepository(BaseRepository[IntegrationORM]):
    """Queries over configured chat integrations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, IntegrationORM)

    async def find_by_group(self, external_group_id: str) -> Optional[IntegrationORM]:
        """Find the integration that already owns a group.

        When the same external group is known under several integrations the
        oldest mapping wins.

        Args:
            external_group_id: LINE group ID.

        Returns:
            Owning integration, or None if the group was never seen.
        """
        stmt = (
            select(IntegrationORM)
            .join(GroupORM, GroupORM.integration_id == IntegrationORM.id)
            .where(GroupORM.external_group_id == external_group_id)
            .order_by(GroupORM.created_at)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_active(self, limit: int = 2) -> list[IntegrationORM]:
        """List integrations that are enabled and in ``active`` status.

        Args:
            limit: Max rows to fetch. Callers that only need to know whether
                exactly one exists pass 2.

        Returns:
            Active integrations, oldest first.
        """
        stmt = (
            select(IntegrationORM)
            .where(
                IntegrationORM.is_active.is_(True),
                IntegrationORM.status == IntegrationStatusEnum.ACTIVE,
            )
            .order_by(IntegrationORM.created_at)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_failing(self, stale_before: datetime) -> list[IntegrationORM]:
        """List active integrations whose last send failed and whose webhook is silent.

        Args:
            stale_before: Webhook receipts older than this count as stale.

        Returns:
            Candidates for escalation to ``error``.
        """
        stmt = select(IntegrationORM).where(
            IntegrationORM.status == IntegrationStatusEnum.ACTIVE,
            IntegrationORM.last_send_failed_at.isnot(None),
            or_(
                IntegrationORM.last_activity_at.is_(None),
                IntegrationORM.last_send_failed_at > IntegrationORM.last_activity_at,
            ),
            IntegrationORM.last_webhook_received_at < stale_before,
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class GroupRepository(BaseRepository[GroupORM]):
    """Queries over chat groups."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, GroupORM)

    async def find(self, integration_id: UUID, external_group_id: str) -> Optional[GroupORM]:
        stmt = select(GroupORM).where(
            GroupORM.integration_id == integration_id,
            GroupORM.external_group_id == external_group_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def insert_if_absent(self, **values: Any) -> GroupORM:
        """Create a group unless one already exists for the same integration.

        Concurrent creators race on ``uq_group_per_integration``; the loser
        reads the winner's row.

        Args:
            **values: Column values; must include integration_id and external_group_id.

        Returns:
            The persisted group (new or pre-existing).
        """
        stmt = (
            insert(GroupORM)
            .values(**values)
            .on_conflict_do_nothing(constraint="uq_group_per_integration")
        )
        await self._session.execute(stmt)
        group = await self.find(values["integration_id"], values["external_group_id"])
        if group is None:
            raise RuntimeError(
                f"group missing after insert: external_group_id={values['external_group_id']}"
            )
        return group

    async def list_active(self, integration_id: UUID) -> list[GroupORM]:
        stmt = (
            select(GroupORM)
            .where(GroupORM.integration_id == integration_id, GroupORM.is_active.is_(True))
            .order_by(GroupORM.created_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class MessageRepository(BaseRepository[MessageORM]):
    """Queries over inbound messages."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, MessageORM)

    async def insert_if_absent(self, **values: Any) -> Optional[UUID]:
        """Atomically create a message keyed by its external id.

        Args:
            **values: Column values; must include external_message_id.

        Returns:
            ID of the new row, or None when the external id was already stored.
        """
        stmt = (
            insert(MessageORM)
            .values(**values)
            .on_conflict_do_nothing(index_elements=[MessageORM.external_message_id])
            .returning(MessageORM.id)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()


class UserLinkRepository(BaseRepository[ChatUserLinkORM]):
    """Lookup of internal users by LINE user id."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ChatUserLinkORM)

    async def resolve(self, integration_id: UUID, external_user_id: str) -> Optional[UUID]:
        stmt = select(ChatUserLinkORM.user_id).where(
            ChatUserLinkORM.integration_id == integration_id,
            ChatUserLinkORM.external_user_id == external_user_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()
