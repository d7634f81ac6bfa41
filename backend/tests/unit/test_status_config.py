"""
Tests for the status state machines
"""
import pytest

from app.core.status_config import (
    StatusTransitionError,
    get_allowed_fulfillment_order_transitions,
    is_valid_fulfillment_order_transition,
    is_valid_work_order_transition,
    validate_fulfillment_order_transition,
    validate_work_order_transition,
)


class TestFulfillmentOrderTransitions:

    @pytest.mark.parametrize("current,new", [
        ("PENDING", "CONFIRMED"),
        ("CONFIRMED", "PROCESSING"),
        ("CONFIRMED", "COMPLETED"),
        ("PROCESSING", "COMPLETED"),
        ("PROCESSING", "CONFIRMED"),
        ("PROCESSING", "CANCELLED"),
    ])
    def test_allowed(self, current, new):
        assert is_valid_fulfillment_order_transition(current, new)

    @pytest.mark.parametrize("current,new", [
        ("PENDING", "COMPLETED"),
        ("COMPLETED", "PROCESSING"),
        ("CANCELLED", "PENDING"),
    ])
    def test_rejected(self, current, new):
        assert not is_valid_fulfillment_order_transition(current, new)

    def test_terminal_has_no_successors(self):
        assert get_allowed_fulfillment_order_transitions("COMPLETED") == []

    def test_error_carries_context(self):
        with pytest.raises(StatusTransitionError) as exc_info:
            validate_fulfillment_order_transition("customer order", "COMPLETED", "PROCESSING")
        assert exc_info.value.current == "COMPLETED"
        assert exc_info.value.requested == "PROCESSING"
        assert exc_info.value.allowed == []


class TestWorkOrderTransitions:

    @pytest.mark.parametrize("current,new", [
        ("PENDING", "SCHEDULED"),
        ("ASSIGNED", "IN_PROGRESS"),
        ("IN_PROGRESS", "HALTED"),
        ("HALTED", "IN_PROGRESS"),
        ("IN_PROGRESS", "COMPLETED"),
    ])
    def test_allowed(self, current, new):
        assert is_valid_work_order_transition(current, new)

    def test_halted_cannot_complete(self):
        with pytest.raises(StatusTransitionError):
            validate_work_order_transition("control order", "HALTED", "COMPLETED")
