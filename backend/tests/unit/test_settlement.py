"""Unit tests for settlement notification handling."""

import pytest

from remittance_broker.core.errors import ErrorKind
from remittance_broker.models import OrderStatus, SettlementData, SettlementNotification


def notify(container, order_no, status, fail_reason=None, event="remittance_pay_status"):
    return container.settlement.apply(
        SettlementNotification(
            notify_event=event,
            data=SettlementData(order_no=order_no, status=status, fail_reason=fail_reason),
        )
    )


class TestSettlementProcessor:
    @pytest.mark.parametrize("status", ["SUCCESS", "FAILED"])
    def test_outcome_goes_behind_completed_marker(self, container, order, status):
        result = notify(container, order.order_number, status)

        assert result.ok
        assert result.data == {"orderNo": order.order_number, "acknowledged": True}
        stored = container.orders.get_by_number(order.order_number)
        assert stored.true_status == OrderStatus(status)
        assert stored.displayed_status == OrderStatus.COMPLETED

    @pytest.mark.parametrize("status", ["CANCELLED", "AML_HOLD"])
    def test_cancel_and_hold_are_shown_directly(self, container, order, status):
        notify(container, order.order_number, status)
        stored = container.orders.get_by_number(order.order_number)
        assert stored.displayed_status == OrderStatus(status)
        assert stored.true_status == OrderStatus(status)

    def test_status_is_case_insensitive(self, container, order):
        assert notify(container, order.order_number, "success").ok

    def test_failure_reason_only_kept_for_failures(self, container, order):
        notify(container, order.order_number, "SUCCESS", fail_reason="ignored")
        assert container.orders.get_by_number(order.order_number).failure_reason is None

    def test_does_not_require_verification(self, container, order):
        container.verification.clear("agent1")
        assert notify(container, order.order_number, "FAILED", "Closed").ok

    def test_late_notification_does_not_move_revealed_status(self, container, order):
        notify(container, order.order_number, "SUCCESS")
        container.disclosure.refresh("agent1", order.order_number)

        notify(container, order.order_number, "FAILED", "Reversal")
        stored = container.orders.get_by_number(order.order_number)
        assert stored.displayed_status == OrderStatus.SUCCESS
        assert stored.true_status == OrderStatus.FAILED

    def test_unknown_event_is_acknowledged(self, container, order):
        result = notify(container, order.order_number, "SUCCESS", event="something_else")
        assert result.ok
        assert result.data["ignored"] is True
        assert container.orders.get_by_number(order.order_number).true_status == OrderStatus.PENDING

    def test_unknown_order(self, container):
        assert notify(container, "RM-missing", "SUCCESS").error_kind == ErrorKind.ORDER_NOT_FOUND

    @pytest.mark.parametrize("status", ["PENDING", "COMPLETED", "bogus"])
    def test_invalid_status(self, container, order, status):
        result = notify(container, order.order_number, status)
        assert result.error_kind == ErrorKind.VALIDATION_ERROR
        assert container.orders.get_by_number(order.order_number).true_status == OrderStatus.PENDING

    def test_missing_data(self, container):
        result = container.settlement.apply(SettlementNotification(notify_event="remittance_pay_status"))
        assert result.error_kind == ErrorKind.VALIDATION_ERROR
