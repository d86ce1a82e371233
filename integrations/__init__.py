"""Platform adapters for external chat platforms.

Supports the LINE Messaging API behind the MessagingAdapter interface.
"""

from integrations.base import MessagingAdapter, MessagingAPIError
from integrations.line.adapter import LineAdapter
from integrations.models import (
    GroupInfo,
    PlatformConfig,
    PlatformType,
    RegistrationResult,
)
from integrations.registry import UnsupportedPlatformError, default_registry

default_registry.register("line", LineAdapter)

__all__ = [
    "GroupInfo",
    "LineAdapter",
    "MessagingAPIError",
    "MessagingAdapter",
    "PlatformConfig",
    "PlatformType",
    "RegistrationResult",
    "UnsupportedPlatformError",
    "default_registry",
]
