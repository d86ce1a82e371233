"""ORM models for chat integrations, groups, and inbound messages."""

import enum
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskbridge.db.base import Base, TimestampMixin, UUIDMixin


class IntegrationStatusEnum(str, enum.Enum):
    """Integration lifecycle status.

    Maps to the ``integration_status`` PostgreSQL enum type.
    """

    PENDING = "pending"
    ACTIVE = "active"
    ERROR = "error"


class IntentTypeEnum(str, enum.Enum):
    """Classified purpose of an inbound message.

    Maps to the ``message_intent`` PostgreSQL enum type.
    """

    TASK_CREATION = "task_creation"
    TASK_COMPLETION = "task_completion"
    TASK_ASSIGNMENT = "task_assignment"
    STATUS_INQUIRY = "status_inquiry"
    UNKNOWN = "unknown"


class IntegrationORM(Base, UUIDMixin, TimestampMixin):
    """One configured LINE channel connection for one organizing context.

    ``credentials_json`` holds ``channel_secret`` and ``access_token``.

    Maps to the ``chat_integration`` table.
    """

    __tablename__ = "chat_integration"
    __table_args__ = (
        UniqueConstraint("external_channel_id", name="uq_integration_channel"),
        Index("idx_integration_active", "is_active", "status"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    context_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)
    external_channel_id: Mapped[str] = mapped_column(Text, nullable=False)
    credentials_json: Mapped[dict] = mapped_column("credentials", JSONB, nullable=False)
    webhook_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[IntegrationStatusEnum] = mapped_column(
        Enum(
            IntegrationStatusEnum,
            name="integration_status",
            native_enum=True,
            create_constraint=False,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=IntegrationStatusEnum.PENDING,
        server_default=text("'pending'"),
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    notification_preferences: Mapped[dict] = mapped_column(
        JSONB, nullable=False, default=dict, server_default=text("'{}'::jsonb")
    )
    last_webhook_received_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_activity_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_send_failed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    groups: Mapped[list["GroupORM"]] = relationship(
        back_populates="integration", lazy="raise"
    )

    @property
    def access_token(self) -> str:
        return (self.credentials_json or {}).get("access_token", "")

    @property
    def channel_secret(self) -> str:
        return (self.credentials_json or {}).get("channel_secret", "")


class GroupORM(Base, UUIDMixin, TimestampMixin):
    """A LINE group bound to exactly one integration.

    Maps to the ``chat_group`` table.
    """

    __tablename__ = "chat_group"
    __table_args__ = (
        UniqueConstraint("integration_id", "external_group_id", name="uq_group_per_integration"),
        Index("idx_group_external", "external_group_id"),
    )

    integration_id: Mapped[UUID] = mapped_column(
        ForeignKey("chat_integration.id", ondelete="CASCADE"), nullable=False
    )
    external_group_id: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    member_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    auto_parse_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    notifications_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    last_activity_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    integration: Mapped[IntegrationORM] = relationship(back_populates="groups", lazy="raise")


class MessageORM(Base, UUIDMixin, TimestampMixin):
    """One inbound chat message, recorded once per external message id.

    ``processing_errors`` is a bounded list of ``{kind, message, occurred_at}``.

    Maps to the ``chat_message`` table.
    """

    __tablename__ = "chat_message"
    __table_args__ = (
        UniqueConstraint("external_message_id", name="uq_message_external_id"),
        CheckConstraint("task_id IS NULL OR is_processed", name="ck_message_task_processed"),
        Index("idx_message_group_sent", "group_id", "sent_at"),
        Index(
            "idx_message_unprocessed",
            "group_id",
            postgresql_where=text("is_processed = false"),
        ),
    )

    group_id: Mapped[UUID] = mapped_column(
        ForeignKey("chat_group.id", ondelete="CASCADE"), nullable=False
    )
    external_message_id: Mapped[str] = mapped_column(Text, nullable=False)
    message_text: Mapped[str] = mapped_column(Text, nullable=False)
    message_kind: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)
    sender_external_user_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_processed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    intent_type: Mapped[IntentTypeEnum] = mapped_column(
        Enum(
            IntentTypeEnum,
            name="message_intent",
            native_enum=True,
            create_constraint=False,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=IntentTypeEnum.UNKNOWN,
        server_default=text("'unknown'"),
    )
    confidence_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    parsed_content: Mapped[dict] = mapped_column(
        JSONB, nullable=False, default=dict, server_default=text("'{}'::jsonb")
    )
    task_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)
    processing_errors: Mapped[list] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )

    group: Mapped[GroupORM] = relationship(lazy="raise")


class ChatUserLinkORM(Base, UUIDMixin, TimestampMixin):
    """Link between a LINE user id and an internal user, per integration.

    Maps to the ``chat_user_link`` table.
    """

    __tablename__ = "chat_user_link"
    __table_args__ = (
        UniqueConstraint("integration_id", "external_user_id", name="uq_user_link"),
    )

    integration_id: Mapped[UUID] = mapped_column(
        ForeignKey("chat_integration.id", ondelete="CASCADE"), nullable=False
    )
    external_user_id: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[UUID] = mapped_column(nullable=False)
