"""Quiet-hours evaluation for outbound notifications."""

import logging
from datetime import datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from taskbridge.messaging.schemas import NotificationPreferences

logger = logging.getLogger(__name__)


def parse_preferences(raw: Optional[dict[str, Any]]) -> NotificationPreferences:
    """Parse stored preferences, falling back to "never suppress" if they are malformed.

    Preferences are validated when they are written; a malformed stored value
    is logged rather than allowed to block every send.
    """
    try:
        return NotificationPreferences.model_validate(raw or {})
    except ValidationError as exc:
        logger.warning("notification_preferences_invalid: error=%s", exc)
        return NotificationPreferences()


def local_hhmm(now: datetime, timezone_name: str) -> str:
    """Format an aware datetime as zero-padded ``HH:MM`` in the given timezone."""
    return now.astimezone(ZoneInfo(timezone_name)).strftime("%H:%M")


def is_quiet(preferences: NotificationPreferences, now_hhmm: str) -> bool:
    """Decide whether a non-urgent notification must be held back at ``now_hhmm``.

    Args:
        preferences: Parsed notification preferences.
        now_hhmm: Current local time as zero-padded ``HH:MM``.

    Returns:
        True when quiet hours are enabled and the time is outside the delivery
        window or inside the quiet window.
    """
    if not preferences.quiet_hours_enabled:
        return False

    delivery = preferences.notification_times
    if delivery is not None and not delivery.contains(now_hhmm):
        return True

    quiet = preferences.quiet_hours
    if quiet is not None and quiet.contains(now_hhmm):
        return True

    return False


def should_suppress(
    preferences: NotificationPreferences,
    now: datetime,
    timezone_name: str,
    urgent: bool = False,
) -> bool:
    """Apply the urgency bypass and quiet-hours rule at ``now``."""
    if urgent:
        return False
    return is_quiet(preferences, local_hhmm(now, timezone_name))
