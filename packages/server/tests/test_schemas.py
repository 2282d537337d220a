"""
Tests for shared schemas: request transitions, resource kinds and error
messages.
"""

import pytest
from pydantic import ValidationError

from app.core.errors import (
    AccessError,
    AlreadyManaging,
    CapacityExceeded,
    InvalidState,
    NotFound,
    Transient,
)
from hubgate_shared.schemas.common import (
    RESOURCE_KINDS,
    USER_MESSAGES,
    Decision,
    ErrorCode,
    JoinRequestStatus,
    ResourceType,
    kind_of,
)
from hubgate_shared.schemas.join_requests import JoinRequestCreate, validate_resolution


class TestValidateResolution:
    @pytest.mark.parametrize("decision", list(Decision))
    def test_pending_can_be_resolved(self, decision):
        assert validate_resolution(JoinRequestStatus.PENDING, decision) == (True, "")

    @pytest.mark.parametrize("current", [JoinRequestStatus.APPROVED, JoinRequestStatus.REJECTED])
    @pytest.mark.parametrize("decision", list(Decision))
    def test_terminal_states_reject_everything(self, current, decision):
        ok, msg = validate_resolution(current, decision)
        assert not ok
        assert msg == f"Join request is already {current.value}"


class TestResourceKinds:
    def test_every_type_has_a_kind(self):
        assert set(RESOURCE_KINDS) == set(ResourceType)

    def test_events_and_hub_joins_skip_hub_membership(self):
        assert kind_of("event").requires_hub_membership is False
        assert kind_of("hub").requires_hub_membership is False
        assert kind_of("project").requires_hub_membership is True
        assert kind_of(ResourceType.PROGRAMME).requires_hub_membership is True

    def test_hub_join_has_no_seats_or_window(self):
        hub = kind_of(ResourceType.HUB)
        assert not hub.enforces_capacity
        assert not hub.enforces_window
        assert hub.default_message == "I would like to join this hub"

    def test_kinds_are_frozen(self):
        with pytest.raises(ValidationError):
            RESOURCE_KINDS[ResourceType.EVENT].enforces_capacity = False


class TestErrors:
    def test_every_code_has_a_message(self):
        assert set(USER_MESSAGES) == set(ErrorCode)

    def test_to_dict(self):
        body = CapacityExceeded("Event has 30 of 30 seats taken").to_dict()
        assert body == {
            "code": "CAPACITY_EXCEEDED",
            "message": "Event Full",
            "retryable": False,
            "detail": "Event has 30 of 30 seats taken",
        }

    def test_detail_defaults_to_user_message(self):
        assert str(AlreadyManaging()) == "You manage this resource"

    @pytest.mark.parametrize(
        "exc_type, status",
        [(NotFound, 404), (InvalidState, 409), (Transient, 503)],
    )
    def test_status_codes(self, exc_type, status):
        exc = exc_type()
        assert isinstance(exc, AccessError)
        assert exc.status_code == status

    def test_only_transient_is_retryable(self):
        assert Transient().retryable
        assert not NotFound().retryable


def test_join_request_message_length_is_bounded():
    with pytest.raises(ValidationError):
        JoinRequestCreate(message="x" * 2001)
