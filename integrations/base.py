"""Abstract capability interface for chat platform adapters."""

from abc import ABC, abstractmethod
from typing import Optional

from integrations.models import GroupInfo, PlatformConfig, RegistrationResult


class MessagingAPIError(Exception):
    """Transient failure talking to the platform (timeout, 5xx, transport).

    Raised so that the calling job is retried with backoff. Rejections the
    platform will keep returning (4xx) are reported as result values instead.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MessagingAdapter(ABC):
    """Base class for messaging platform integrations.

    Every outbound call the pipeline makes goes through this interface so a
    real adapter and a test double are interchangeable.
    """

    def __init__(self, config: PlatformConfig) -> None:
        """Initialize adapter with platform-specific configuration.

        Args:
            config: Platform connection configuration with credentials.
        """
        self.config = config

    @abstractmethod
    def validate_signature(self, body: bytes, signature: str) -> bool:
        """Validate an inbound webhook body against its signature header.

        Must use constant-time comparison.

        Args:
            body: Raw request body.
            signature: Signature header value.

        Returns:
            True if signature is valid, False otherwise.
        """
        ...

    @abstractmethod
    async def send_message(self, text: str, target_group_id: str) -> bool:
        """Push a text message to a group.

        Args:
            text: Message text.
            target_group_id: Platform group ID.

        Returns:
            True when the platform accepted the message, False when it was rejected.

        Raises:
            MessagingAPIError: On transient failures.
        """
        ...

    @abstractmethod
    async def get_group_info(self, group_id: str) -> Optional[GroupInfo]:
        """Fetch group metadata.

        Returns:
            GroupInfo, or None if the platform has no metadata for the group.

        Raises:
            MessagingAPIError: On transient failures.
        """
        ...

    @abstractmethod
    async def get_group_member_count(self, group_id: str) -> int:
        """Fetch the number of members in a group (0 when unknown).

        Raises:
            MessagingAPIError: On transient failures.
        """
        ...

    @abstractmethod
    async def register_webhook(self, callback_url: str) -> RegistrationResult:
        """Register the callback URL the platform should deliver events to.

        Raises:
            MessagingAPIError: On transient failures.
        """
        ...
