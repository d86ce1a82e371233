"""Integration status state machine."""

import logging
from typing import Optional

from taskbridge.db.models.messaging import IntegrationORM, IntegrationStatusEnum

logger = logging.getLogger(__name__)

PENDING = IntegrationStatusEnum.PENDING
ACTIVE = IntegrationStatusEnum.ACTIVE
ERROR = IntegrationStatusEnum.ERROR

# error has no automatic exit; see force_reregistration().
ALLOWED_TRANSITIONS: dict[IntegrationStatusEnum, frozenset[IntegrationStatusEnum]] = {
    PENDING: frozenset({ACTIVE, ERROR}),
    ACTIVE: frozenset({ACTIVE, ERROR}),
    ERROR: frozenset({ERROR}),
}


class InvalidTransitionError(Exception):
    """Raised when an integration status change is not allowed."""

    def __init__(self, current: IntegrationStatusEnum, target: IntegrationStatusEnum) -> None:
        super().__init__(f"illegal integration transition: {current.value} -> {target.value}")
        self.current = current
        self.target = target


def can_transition(current: IntegrationStatusEnum, target: IntegrationStatusEnum) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def transition(
    integration: IntegrationORM,
    target: IntegrationStatusEnum,
    reason: Optional[str] = None,
) -> None:
    """Move an integration to ``target`` status.

    Args:
        integration: Integration to update in place (caller commits).
        target: Desired status.
        reason: Stored in ``error_message`` when moving to error.

    Raises:
        InvalidTransitionError: If the state machine forbids the change.
    """
    current = IntegrationStatusEnum(integration.status)
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)

    integration.status = target
    if target is ERROR:
        integration.error_message = reason
    elif target is ACTIVE:
        integration.error_message = None

    if current is not target:
        logger.info(
            "integration_status_changed: integration_id=%s, from=%s, to=%s, reason=%s",
            integration.id,
            current.value,
            target.value,
            reason,
        )


def force_reregistration(integration: IntegrationORM) -> None:
    """Reset an integration to pending ahead of an operator-requested registration.

    This is the only way out of ``error``; nothing in the pipeline calls it
    on its own.
    """
    previous = IntegrationStatusEnum(integration.status)
    integration.status = PENDING
    integration.error_message = None
    logger.info(
        "integration_reregistration_forced: integration_id=%s, from=%s",
        integration.id,
        previous.value,
    )
