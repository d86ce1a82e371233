"""ORM models for database tables."""

from taskbridge.db.models.messaging import (
    ChatUserLinkORM,
    GroupORM,
    IntegrationORM,
    IntegrationStatusEnum,
    IntentTypeEnum,
    MessageORM,
)

__all__ = [
    "ChatUserLinkORM",
    "GroupORM",
    "IntegrationORM",
    "IntegrationStatusEnum",
    "IntentTypeEnum",
    "MessageORM",
]
