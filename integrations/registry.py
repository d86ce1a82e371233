"""Lookup of messaging adapter classes keyed by platform."""

from typing import Dict, Type

from integrations.base import MessagingAdapter
from integrations.models import PlatformConfig, PlatformType


class UnsupportedPlatformError(ValueError):
    """No adapter class is registered for the requested platform."""

    def __init__(self, platform: str, known: list[str]) -> None:
        super().__init__(f"Unsupported platform '{platform}' (known: {', '.join(known) or 'none'})")
        self.platform = platform


class AdapterRegistry:
    """Maps ``PlatformConfig.platform`` to a ``MessagingAdapter`` class.

    Workers build an adapter per integration through :meth:`build`, so the
    pipeline never imports a concrete platform module directly.
    """

    def __init__(self) -> None:
        self._adapters: Dict[str, Type[MessagingAdapter]] = {}

    def register(self, platform: PlatformType, adapter_class: Type[MessagingAdapter]) -> None:
        if platform in self._adapters and self._adapters[platform] is not adapter_class:
            raise ValueError(f"Platform '{platform}' already registered")
        self._adapters[platform] = adapter_class

    def build(self, config: PlatformConfig) -> MessagingAdapter:
        """Instantiate the adapter registered for ``config.platform``.

        Raises:
            UnsupportedPlatformError: If nothing is registered for the platform.
        """
        adapter_class = self._adapters.get(config.platform)
        if adapter_class is None:
            raise UnsupportedPlatformError(config.platform, sorted(self._adapters))
        return adapter_class(config)

    def __contains__(self, platform: object) -> bool:
        return platform in self._adapters


default_registry = AdapterRegistry()
