"""Unit tests for manual escalation through the inquiry tracker."""

import pytest

from remittance_broker.core.errors import ErrorKind
from remittance_broker.models import EscalationReason
from remittance_broker.services.inquiries import sla_for

SUMMARY = "Customer waited two hours for a Gulf transfer"


class TestEscalate:
    def test_escalates(self, container, order):
        result = container.tracker.escalate(
            "agent1", order.order_number, EscalationReason.CUSTOMER_UNSATISFIED, SUMMARY, level=2
        )

        assert result.ok
        assert result.data["escalationLevel"] == 2
        assert result.data["nextSteps"].endswith("supervisor.")
        assert result.data["estimatedResponseTime"] == "Within 2-4 hours"

        stored = container.orders.get_by_number(order.order_number)
        assert stored.conversation_summary == SUMMARY
        assert stored.escalated_at is not None

    def test_never_lowers_level(self, container, order):
        container.tracker.escalate("agent1", order.order_number, EscalationReason.OTHER, SUMMARY, level=3)
        result = container.tracker.escalate("agent1", order.order_number, EscalationReason.OTHER, SUMMARY, level=1)

        assert result.data["escalationLevel"] == 3
        assert result.data["estimatedResponseTime"] == "Within 1 hour"

    @pytest.mark.parametrize("level", [0, 4])
    def test_invalid_level(self, container, order, level):
        result = container.tracker.escalate("agent1", order.order_number, EscalationReason.OTHER, SUMMARY, level)
        assert result.error_kind == ErrorKind.VALIDATION_ERROR

    def test_short_summary(self, container, order):
        result = container.tracker.escalate("agent1", order.order_number, EscalationReason.OTHER, "  too short ")
        assert result.error_kind == ErrorKind.VALIDATION_ERROR

    def test_requires_verification(self, container, order):
        container.verification.clear("agent1")
        result = container.tracker.escalate("agent1", order.order_number, EscalationReason.OTHER, SUMMARY)
        assert result.error_kind == ErrorKind.VERIFICATION_REQUIRED

    def test_unknown_order(self, container, verified):
        result = container.tracker.escalate("agent1", "RM-missing", EscalationReason.OTHER, SUMMARY)
        assert result.error_kind == ErrorKind.ORDER_NOT_FOUND


@pytest.mark.parametrize("level,sla", [(1, "Within 2-4 hours"), (2, "Within 2-4 hours"), (3, "Within 1 hour")])
def test_sla_for(level, sla):
    assert sla_for(level) == sla
