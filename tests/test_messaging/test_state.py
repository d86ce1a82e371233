"""Unit tests for the integration status state machine."""

import pytest

from taskbridge.db.models.messaging import IntegrationStatusEnum
from taskbridge.messaging.state import (
    InvalidTransitionError,
    can_transition,
    force_reregistration,
    transition,
)

PENDING = IntegrationStatusEnum.PENDING
ACTIVE = IntegrationStatusEnum.ACTIVE
ERROR = IntegrationStatusEnum.ERROR


@pytest.mark.unit
class TestCanTransition:
    """Tests for the allowed-transition table."""

    @pytest.mark.parametrize(
        "current,target",
        [(PENDING, ACTIVE), (PENDING, ERROR), (ACTIVE, ERROR), (ACTIVE, ACTIVE), (ERROR, ERROR)],
    )
    def test_allowed(self, current, target) -> None:
        assert can_transition(current, target) is True

    @pytest.mark.parametrize(
        "current,target", [(ERROR, ACTIVE), (ERROR, PENDING), (ACTIVE, PENDING)]
    )
    def test_forbidden(self, current, target) -> None:
        assert can_transition(current, target) is False


@pytest.mark.unit
class TestTransition:
    """Tests for applying a transition to an integration."""

    def test_pending_to_active_clears_error(self, make_integration) -> None:
        integration = make_integration(status=PENDING, error_message="old")
        transition(integration, ACTIVE)
        assert integration.status is ACTIVE
        assert integration.error_message is None

    def test_to_error_stores_reason(self, make_integration) -> None:
        integration = make_integration(status=ACTIVE)
        transition(integration, ERROR, reason="invalid_url")
        assert integration.status is ERROR
        assert integration.error_message == "invalid_url"

    def test_error_is_terminal(self, make_integration) -> None:
        integration = make_integration(status=ERROR, error_message="broken")
        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(integration, ACTIVE)
        assert exc_info.value.current is ERROR
        assert exc_info.value.target is ACTIVE
        assert integration.status is ERROR
        assert integration.error_message == "broken"

    def test_accepts_string_status(self, make_integration) -> None:
        integration = make_integration(status="pending")
        transition(integration, ACTIVE)
        assert integration.status is ACTIVE


@pytest.mark.unit
class TestForceReregistration:
    """Tests for the operator reset out of error."""

    def test_resets_error_to_pending(self, make_integration) -> None:
        integration = make_integration(status=ERROR, error_message="broken")
        force_reregistration(integration)
        assert integration.status is PENDING
        assert integration.error_message is None

    def test_registration_may_follow_reset(self, make_integration) -> None:
        integration = make_integration(status=ERROR)
        force_reregistration(integration)
        transition(integration, ACTIVE)
        assert integration.status is ACTIVE
