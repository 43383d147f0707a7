"""Tests for shift, time-off and pay period state machines."""

import pytest

from shift_engine.errors import InvalidStateError
from shift_engine.services.state_machine import (
    PayPeriodStateMachine,
    ShiftStateMachine,
    TimeOffStateMachine,
)


class TestShiftStateMachine:
    """Test shift transitions."""

    def test_valid_transitions(self):
        # PENDING → ACCEPTED / DECLINED
        assert ShiftStateMachine.can_transition("PENDING", "ACCEPTED") is True
        assert ShiftStateMachine.can_transition("PENDING", "DECLINED") is True

        # ACCEPTED → DECLINED (cancel after accept)
        assert ShiftStateMachine.can_transition("ACCEPTED", "DECLINED") is True

    def test_invalid_transitions(self):
        assert ShiftStateMachine.can_transition("ACCEPTED", "PENDING") is False
        assert ShiftStateMachine.can_transition("ACCEPTED", "ACCEPTED") is False

        # Declined is terminal
        assert ShiftStateMachine.can_transition("DECLINED", "ACCEPTED") is False
        assert ShiftStateMachine.can_transition("DECLINED", "PENDING") is False

    def test_validate_transition_raises(self):
        with pytest.raises(InvalidStateError) as exc_info:
            ShiftStateMachine.validate_transition("DECLINED", "ACCEPTED")

        assert exc_info.value.from_status == "DECLINED"
        assert exc_info.value.to_status == "ACCEPTED"

    def test_is_cancel_after_accept(self):
        assert ShiftStateMachine.is_cancel_after_accept("ACCEPTED", "DECLINED") is True
        assert ShiftStateMachine.is_cancel_after_accept("PENDING", "DECLINED") is False

    def test_active_statuses(self):
        assert ShiftStateMachine.is_active("PENDING") is True
        assert ShiftStateMachine.is_active("ACCEPTED") is True
        assert ShiftStateMachine.is_active("DECLINED") is False

    def test_declined_is_terminal(self):
        for status in ("PENDING", "ACCEPTED", "DECLINED"):
            assert ShiftStateMachine.can_transition("DECLINED", status) is False


class TestTimeOffStateMachine:
    def test_review_only_from_pending(self):
        assert TimeOffStateMachine.can_transition("PENDING", "APPROVED") is True
        assert TimeOffStateMachine.can_transition("PENDING", "REJECTED") is True
        assert TimeOffStateMachine.can_transition("APPROVED", "REJECTED") is False
        assert TimeOffStateMachine.can_transition("REJECTED", "APPROVED") is False

    def test_withdraw_only_pending(self):
        assert TimeOffStateMachine.can_withdraw("PENDING") is True
        assert TimeOffStateMachine.can_withdraw("APPROVED") is False
        assert TimeOffStateMachine.can_withdraw("REJECTED") is False


class TestPayPeriodStateMachine:
    def test_close_is_one_way(self):
        assert PayPeriodStateMachine.can_transition("OPEN", "CLOSED") is True
        assert PayPeriodStateMachine.can_transition("CLOSED", "OPEN") is False

        with pytest.raises(InvalidStateError):
            PayPeriodStateMachine.validate_transition("CLOSED", "CLOSED")
