"""LINE Messaging API adapter."""

from integrations.line.adapter import LineAdapter
from integrations.line.webhook import validate_line_signature

__all__ = ["LineAdapter", "validate_line_signature"]
