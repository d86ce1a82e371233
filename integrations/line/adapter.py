"""LINE Messaging API adapter implementation."""

import logging
from typing import Any, Optional

import httpx

from integrations.base import MessagingAdapter, MessagingAPIError
from integrations.line.webhook import validate_line_signature
from integrations.models import GroupInfo, PlatformConfig, RegistrationResult

logger = logging.getLogger(__name__)


class LineAdapter(MessagingAdapter):
    """LINE Messaging API adapter.

    Credentials required in config:
        access_token: Long-lived channel access token.
        channel_secret: Channel secret used to sign webhook bodies.

    Every call opens a short-lived ``httpx.AsyncClient`` with the configured
    timeout, so a worker is never blocked longer than ``config.timeout``.
    """

    def __init__(self, config: PlatformConfig) -> None:
        """Initialize LINE adapter.

        Args:
            config: Platform configuration with access_token in credentials.

        Raises:
            ValueError: If access_token is missing from credentials.
        """
        super().__init__(config)
        self.access_token: str = config.credentials.get("access_token", "")
        self.channel_secret: str = config.credentials.get("channel_secret", "")
        if not self.access_token:
            raise ValueError("LINE adapter requires 'access_token' in credentials")

    def validate_signature(self, body: bytes, signature: str) -> bool:
        return validate_line_signature(
            channel_secret=self.channel_secret,
            payload=body,
            signature=signature,
        )

    async def send_message(self, text: str, target_group_id: str) -> bool:
        """Push a text message to a LINE group.

        Args:
            text: Message text.
            target_group_id: LINE group ID.

        Returns:
            True on 2xx, False when LINE rejected the request (4xx).

        Raises:
            MessagingAPIError: On timeout, transport error, or 5xx.
        """
        logger.info("line_send_message: to=%s, length=%d", target_group_id, len(text))
        response = await self._request(
            "POST",
            "/v2/bot/message/push",
            json={"to": target_group_id, "messages": [{"type": "text", "text": text}]},
        )
        if response.is_success:
            return True
        logger.warning(
            "line_send_message_rejected: to=%s, status=%d, body=%s",
            target_group_id,
            response.status_code,
            response.text[:200],
        )
        return False

    async def get_group_info(self, group_id: str) -> Optional[GroupInfo]:
        response = await self._request("GET", f"/v2/bot/group/{group_id}/summary")
        if not response.is_success:
            logger.warning(
                "line_group_summary_unavailable: group_id=%s, status=%d",
                group_id,
                response.status_code,
            )
            return None
        data: dict[str, Any] = response.json()
        return GroupInfo(
            group_id=data.get("groupId", group_id),
            name=data.get("groupName"),
            picture_url=data.get("pictureUrl"),
        )

    async def get_group_member_count(self, group_id: str) -> int:
        response = await self._request("GET", f"/v2/bot/group/{group_id}/members/count")
        if not response.is_success:
            logger.warning(
                "line_member_count_unavailable: group_id=%s, status=%d",
                group_id,
                response.status_code,
            )
            return 0
        return int(response.json().get("count", 0))

    async def register_webhook(self, callback_url: str) -> RegistrationResult:
        """Set the channel's webhook endpoint URL.

        Args:
            callback_url: Externally reachable URL for event delivery.

        Returns:
            RegistrationResult; ``error`` carries LINE's response body on rejection.

        Raises:
            MessagingAPIError: On timeout, transport error, or 5xx.
        """
        response = await self._request(
            "PUT",
            "/v2/bot/channel/webhook/endpoint",
            json={"endpoint": callback_url},
        )
        if response.is_success:
            return RegistrationResult(success=True, webhook_url=callback_url)
        return RegistrationResult(
            success=False,
            error=f"Webhook registration failed: {response.text[:500]}",
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Perform one API call, mapping transient failures to MessagingAPIError.

        Args:
            method: HTTP method.
            path: API path relative to the configured base URL.
            **kwargs: Extra arguments for ``httpx.AsyncClient.request``.

        Returns:
            The response for any status below 500.

        Raises:
            MessagingAPIError: On request errors and 5xx responses.
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.config.api_base_url,
                timeout=self.config.timeout,
                headers={"Authorization": f"Bearer {self.access_token}"},
            ) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.warning("line_request_error: method=%s, path=%s, error=%s", method, path, exc)
            raise MessagingAPIError(f"LINE request failed: {exc}") from exc

        if response.status_code >= 500:
            raise MessagingAPIError(
                f"LINE API returned {response.status_code} for {method} {path}",
                status_code=response.status_code,
            )
        return response
