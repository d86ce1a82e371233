"""Unit tests for LINE webhook signature validation."""

import base64
import hashlib
import hmac

import pytest

from integrations.line.adapter import LineAdapter
from integrations.line.webhook import validate_line_signature
from integrations.models import PlatformConfig

SECRET = "channel-secret"
BODY = b'{"destination":"U1","events":[]}'


def _sign(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


@pytest.mark.unit
class TestValidateLineSignature:
    """Tests for X-Line-Signature verification."""

    def test_valid_signature(self) -> None:
        assert validate_line_signature(SECRET, BODY, _sign(SECRET, BODY)) is True

    def test_string_payload(self) -> None:
        assert validate_line_signature(SECRET, BODY.decode(), _sign(SECRET, BODY)) is True

    def test_tampered_body(self) -> None:
        signature = _sign(SECRET, BODY)
        assert validate_line_signature(SECRET, BODY + b" ", signature) is False

    def test_wrong_secret(self) -> None:
        assert validate_line_signature(SECRET, BODY, _sign("other", BODY)) is False

    @pytest.mark.parametrize("secret,signature", [("", "abc"), (SECRET, "")])
    def test_missing_inputs(self, secret, signature) -> None:
        assert validate_line_signature(secret, BODY, signature) is False

    def test_adapter_delegates(self) -> None:
        adapter = LineAdapter(
            PlatformConfig(credentials={"access_token": "t", "channel_secret": SECRET})
        )
        assert adapter.validate_signature(BODY, _sign(SECRET, BODY)) is True
