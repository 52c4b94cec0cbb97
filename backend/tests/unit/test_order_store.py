"""Unit tests for the SQL order store."""

import threading
from datetime import timedelta

from remittance_broker.models import OrderStatus, TransferMode, UpdateSource


class TestRecordInquiry:
    def test_increments_and_stamps(self, container, clock, order):
        clock.advance(minutes=3)
        updated = container.orders.record_inquiry(order.order_number, clock())

        assert updated.inquiry_count == 1
        assert updated.last_inquiry_at == clock()

    def test_unknown_order(self, container, clock):
        assert container.orders.record_inquiry("RM-missing", clock()) is None

    def test_concurrent_inquiries_are_all_counted(self, container, clock, order):
        barrier = threading.Barrier(8)

        def inquire():
            barrier.wait()
            for _ in range(5):
                container.orders.record_inquiry(order.order_number, clock())

        threads = [threading.Thread(target=inquire) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert container.orders.get_by_number(order.order_number).inquiry_count == 40


class TestStatusUpdates:
    def test_true_status_leaves_displayed_status(self, container, clock, order):
        updated = container.orders.set_true_status(order.order_number, OrderStatus.FAILED, clock(), "Invalid account")

        assert updated.true_status == OrderStatus.FAILED
        assert updated.displayed_status == OrderStatus.PENDING
        assert updated.failure_reason == "Invalid account"
        assert updated.status_history[-1].actor == UpdateSource.BANK

    def test_compare_and_set_transition(self, container, clock, order):
        moved = container.orders.transition_displayed(
            order.order_number, OrderStatus.PENDING, OrderStatus.COMPLETED, clock(), "settled"
        )
        assert moved.displayed_status == OrderStatus.COMPLETED
        assert [e.status for e in moved.status_history] == [OrderStatus.PENDING, OrderStatus.COMPLETED]

        stale = container.orders.transition_displayed(
            order.order_number, OrderStatus.PENDING, OrderStatus.CANCELLED, clock(), "late"
        )
        assert stale is None
        assert container.orders.get_by_number(order.order_number).displayed_status == OrderStatus.COMPLETED


class TestEscalate:
    def test_levels_never_go_down(self, container, clock, order):
        assert container.orders.escalate(order.order_number, 2, "other", "first", clock()).escalation_level == 2

        lowered = container.orders.escalate(order.order_number, 1, "other", "second", clock())
        assert lowered.escalation_level == 2
        assert lowered.conversation_summary == "second"
        assert lowered.is_escalated

    def test_unknown_order(self, container, clock):
        assert container.orders.escalate("RM-missing", 1, "other", None, clock()) is None


class TestListing:
    def test_scoped_to_user_newest_first(self, container, clock, verified, place_order):
        first = place_order()
        clock.advance(minutes=1)
        second = place_order(beneficiary_id=1, amount="200")
        container.verification.verify("agent2", "4321", "01/01/2028")
        place_order(beneficiary_id=1, user_id="agent2")

        orders = container.orders.list_for_user("agent1")
        assert [o.order_number for o in orders] == [second.order_number, first.order_number]

    def test_filters(self, container, clock, verified, place_order):
        place_order()
        place_order(beneficiary_id=1, transfer_mode=TransferMode.MOBILE_WALLET)

        assert len(container.orders.list_for_user("agent1", country="sa")) == 1
        assert len(container.orders.list_for_user("agent1", currency="CNY")) == 1
        assert len(container.orders.list_for_user("agent1", transfer_mode=TransferMode.MOBILE_WALLET)) == 1
        assert len(container.orders.list_for_user("agent1", limit=1)) == 1
        assert container.orders.list_for_user("agent1", created_from=clock() + timedelta(seconds=1)) == []

    def test_stale_pending(self, container, clock, order):
        assert container.orders.list_stale_pending("agent1", clock()) == []

        later = clock() + timedelta(minutes=20)
        assert [o.order_number for o in container.orders.list_stale_pending("agent1", later)] == [order.order_number]

        container.orders.transition_displayed(
            order.order_number, OrderStatus.PENDING, OrderStatus.COMPLETED, clock(), "settled"
        )
        assert container.orders.list_stale_pending("agent1", later) == []
