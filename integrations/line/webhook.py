"""LINE webhook signature validation."""

import base64
import hashlib
import hmac
from typing import Union


def validate_line_signature(
    channel_secret: str,
    payload: Union[bytes, str],
    signature: str,
) -> bool:
    """Validate a LINE webhook ``X-Line-Signature`` header.

    LINE signs the raw request body with HMAC-SHA256 keyed by the channel
    secret and sends the base64-encoded digest.

    Security: Uses constant-time comparison (hmac.compare_digest) to prevent
    timing attacks.

    Args:
        channel_secret: Channel secret from the LINE developers console.
        payload: Request body (bytes or string).
        signature: Value of the X-Line-Signature header.

    Returns:
        True if signature is valid, False otherwise.
    """
    if not channel_secret or not signature:
        return False

    if isinstance(payload, str):
        payload_bytes = payload.encode("utf-8")
    else:
        payload_bytes = payload

    digest = hmac.new(
        key=channel_secret.encode("utf-8"),
        msg=payload_bytes,
        digestmod=hashlib.sha256,
    ).digest()
    expected = base64.b64encode(digest).decode("ascii")

    return hmac.compare_digest(expected, signature)
