"""Unit tests for the LINE Messaging API adapter."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from integrations.base import MessagingAPIError
from integrations.line.adapter import LineAdapter
from integrations.models import PlatformConfig


@pytest.fixture
def config() -> PlatformConfig:
    return PlatformConfig(
        credentials={"access_token": "token-abc", "channel_secret": "secret-xyz"},
        external_channel_id="1650000000",
        api_base_url="https://api.line.test",
        timeout=5.0,
    )


@pytest.fixture
def http_client():
    """Patch httpx.AsyncClient inside the adapter module.

    Yields:
        The mock client; set ``client.request`` return values or side effects.
    """
    client = MagicMock()
    client.request = AsyncMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    with patch("integrations.line.adapter.httpx.AsyncClient", return_value=client) as factory:
        client.factory = factory
        yield client


def _response(status_code: int, json_body=None, text: str = "") -> httpx.Response:
    request = httpx.Request("GET", "https://api.line.test")
    if json_body is not None:
        return httpx.Response(status_code, json=json_body, request=request)
    return httpx.Response(status_code, text=text, request=request)


@pytest.mark.unit
class TestLineAdapterInit:
    """Tests for adapter construction."""

    def test_requires_access_token(self) -> None:
        with pytest.raises(ValueError, match="access_token"):
            LineAdapter(PlatformConfig(credentials={"channel_secret": "s"}))

    def test_reads_credentials(self, config) -> None:
        adapter = LineAdapter(config)
        assert adapter.access_token == "token-abc"
        assert adapter.channel_secret == "secret-xyz"


@pytest.mark.unit
class TestSendMessage:
    """Tests for push messages."""

    @pytest.mark.asyncio
    async def test_success(self, config, http_client) -> None:
        http_client.request.return_value = _response(200, {})

        assert await LineAdapter(config).send_message("hello", "Cgroup") is True

        method, path = http_client.request.call_args.args
        assert (method, path) == ("POST", "/v2/bot/message/push")
        assert http_client.request.call_args.kwargs["json"] == {
            "to": "Cgroup",
            "messages": [{"type": "text", "text": "hello"}],
        }
        factory_kwargs = http_client.factory.call_args.kwargs
        assert factory_kwargs["base_url"] == "https://api.line.test"
        assert factory_kwargs["timeout"] == 5.0
        assert factory_kwargs["headers"]["Authorization"] == "Bearer token-abc"

    @pytest.mark.asyncio
    async def test_client_error_is_rejection(self, config, http_client) -> None:
        http_client.request.return_value = _response(400, text='{"message":"bad to"}')

        assert await LineAdapter(config).send_message("hello", "Cgone") is False

    @pytest.mark.asyncio
    async def test_server_error_raises(self, config, http_client) -> None:
        http_client.request.return_value = _response(503, text="unavailable")

        with pytest.raises(MessagingAPIError) as exc_info:
            await LineAdapter(config).send_message("hello", "Cgroup")
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, config, http_client) -> None:
        http_client.request.side_effect = httpx.ConnectTimeout("timed out")

        with pytest.raises(MessagingAPIError) as exc_info:
            await LineAdapter(config).send_message("hello", "Cgroup")
        assert exc_info.value.status_code is None


@pytest.mark.unit
class TestGroupQueries:
    """Tests for group summary and member count."""

    @pytest.mark.asyncio
    async def test_group_info(self, config, http_client) -> None:
        http_client.request.return_value = _response(
            200, {"groupId": "Cgroup", "groupName": "Ops", "pictureUrl": "https://img"}
        )

        info = await LineAdapter(config).get_group_info("Cgroup")

        assert info.group_id == "Cgroup"
        assert info.name == "Ops"
        assert http_client.request.call_args.args == ("GET", "/v2/bot/group/Cgroup/summary")

    @pytest.mark.asyncio
    async def test_group_info_not_found(self, config, http_client) -> None:
        http_client.request.return_value = _response(404, text="not found")

        assert await LineAdapter(config).get_group_info("Cgone") is None

    @pytest.mark.asyncio
    async def test_member_count(self, config, http_client) -> None:
        http_client.request.return_value = _response(200, {"count": 12})

        assert await LineAdapter(config).get_group_member_count("Cgroup") == 12

    @pytest.mark.asyncio
    async def test_member_count_unknown(self, config, http_client) -> None:
        http_client.request.return_value = _response(403, text="forbidden")

        assert await LineAdapter(config).get_group_member_count("Cgroup") == 0


@pytest.mark.unit
class TestRegisterWebhook:
    """Tests for webhook endpoint registration."""

    @pytest.mark.asyncio
    async def test_success(self, config, http_client) -> None:
        http_client.request.return_value = _response(200, {})

        result = await LineAdapter(config).register_webhook("https://bridge/cb")

        assert result.success is True
        assert result.webhook_url == "https://bridge/cb"
        assert http_client.request.call_args.args == ("PUT", "/v2/bot/channel/webhook/endpoint")
        assert http_client.request.call_args.kwargs["json"] == {"endpoint": "https://bridge/cb"}

    @pytest.mark.asyncio
    async def test_rejection_carries_body(self, config, http_client) -> None:
        http_client.request.return_value = _response(400, text="invalid_url")

        result = await LineAdapter(config).register_webhook("ftp://nope")

        assert result.success is False
        assert result.webhook_url is None
        assert "invalid_url" in result.error

    @pytest.mark.asyncio
    async def test_server_error_raises(self, config, http_client) -> None:
        http_client.request.return_value = _response(500, text="boom")

        with pytest.raises(MessagingAPIError):
            await LineAdapter(config).register_webhook("https://bridge/cb")
