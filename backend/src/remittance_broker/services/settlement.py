"""
Settlement notification handling.
"""
from __future__ import annotations

import structlog

from ..core.clock import Clock, utc_now
from ..core.errors import ErrorKind, OperationResult
from ..core.observability import SETTLEMENT_NOTIFICATIONS
from ..db.orders import OrderStore
from ..models.enums import SETTLED_STATUSES, OrderStatus, UpdateSource
from ..models.requests import SettlementNotification
from .disclosure import DisclosureService

logger = structlog.get_logger(__name__)

PAY_STATUS_EVENT = "remittance_pay_status"


class SettlementProcessor:
    """Applies ``remittance_pay_status`` callbacks to the true status of an order."""

    def __init__(self, orders: OrderStore, disclosure: DisclosureService, clock: Clock = utc_now):
        self.orders = orders
        self.disclosure = disclosure
        self.clock = clock

    def apply(self, notification: SettlementNotification) -> OperationResult:
        if notification.notify_event != PAY_STATUS_EVENT:
            logger.info("settlement_event_ignored", notify_event=notification.notify_event)
            return OperationResult.success({"acknowledged": True, "ignored": True})

        payload = notification.data
        if payload is None:
            return OperationResult.failure(ErrorKind.VALIDATION_ERROR, "data is required")

        try:
            status = OrderStatus(payload.status.upper())
        except ValueError:
            return OperationResult.failure(ErrorKind.VALIDATION_ERROR, f"Unknown settlement status {payload.status}")
        if status not in SETTLED_STATUSES:
            return OperationResult.failure(
                ErrorKind.VALIDATION_ERROR,
                f"Settlement status must be one of {', '.join(sorted(s.value for s in SETTLED_STATUSES))}",
            )

        updated = self.orders.set_true_status(
            payload.order_no,
            status,
            now=self.clock(),
            failure_reason=payload.fail_reason if status == OrderStatus.FAILED else None,
            actor=UpdateSource.BANK,
        )
        if updated is None:
            logger.warning("settlement_order_unknown", order_number=payload.order_no)
            return OperationResult.failure(ErrorKind.ORDER_NOT_FOUND, "Order not found")

        SETTLEMENT_NOTIFICATIONS.labels(status=status.value).inc()
        logger.info("settlement_recorded", order_number=updated.order_number, status=status.value)
        self.disclosure.publish_settlement(updated)

        return OperationResult.success({"orderNo": updated.order_number, "acknowledged": True})
