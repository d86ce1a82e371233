"""Repository layer for database access."""

from taskbridge.db.repositories.base import BaseRepository
from taskbridge.db.repositories.messaging_repo import (
    GroupRepository,
    IntegrationRepository,
    MessageRepository,
    UserLinkRepository,
)

__all__ = [
    "BaseRepository",
    "GroupRepository",
    "IntegrationRepository",
    "MessageRepository",
    "UserLinkRepository",
]
