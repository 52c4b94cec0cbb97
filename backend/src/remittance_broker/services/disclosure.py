"""
Status disclosure engine.

The customer-facing ``displayed_status`` only moves here. Settlement outcomes
first surface as the COMPLETED marker; the true SUCCESS or FAILED is revealed
when the customer refreshes with an active verification session.
"""
from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

import structlog

from ..core.clock import Clock, utc_now
from ..core.config import Settings
from ..core.errors import ErrorKind, OperationResult
from ..core.observability import DISCLOSURES
from ..db.orders import OrderStore
from ..models.domain import TransferOrder
from ..models.enums import REVEAL_ON_REFRESH, OrderStatus, UpdateSource
from ..models.requests import OrderListQuery
from .inquiries import InquiryTracker
from .timeframe import estimate_arrival
from .verification import VerificationService, verification_required

logger = structlog.get_logger(__name__)

REFRESH_REASON = "refreshed on customer inquiry"
COMPLETED_REASON = "Settlement completed, awaiting customer refresh"
UNKNOWN_FAILURE = "Unknown error"


def needs_refresh(order: TransferOrder) -> bool:
    """True when the order sits at the completed marker with an outcome to reveal."""
    return order.displayed_status == OrderStatus.COMPLETED and order.true_status in REVEAL_ON_REFRESH


def status_message(status: OrderStatus, failure_reason: Optional[str] = None) -> str:
    if status == OrderStatus.SUCCESS:
        return "Your transaction has been successfully completed. The funds have been transferred to the beneficiary."
    if status == OrderStatus.FAILED:
        return (
            f"Your transaction has failed. Reason: {failure_reason or UNKNOWN_FAILURE}. "
            "Please contact customer support for assistance."
        )
    if status == OrderStatus.CANCELLED:
        return "Your transaction has been cancelled."
    if status == OrderStatus.AML_HOLD:
        return "Your transaction is on hold pending a compliance review."
    if status == OrderStatus.COMPLETED:
        return "Your transaction has been processed. Refresh to see the final result."
    return "Your transaction is still being processed."


class DisclosureService:
    """Displayed-status views, refresh and settlement publication."""

    def __init__(
        self,
        settings: Settings,
        orders: OrderStore,
        verification: VerificationService,
        tracker: InquiryTracker,
        clock: Clock = utc_now,
    ):
        self.settings = settings
        self.orders = orders
        self.verification = verification
        self.tracker = tracker
        self.clock = clock
        self._tz = ZoneInfo(settings.business_timezone)

    def check_status(self, user_id: str, order_number: str) -> OperationResult:
        """Minimal displayed view of one order. Counts as an inquiry."""
        order, failure = self.tracker.open_inquiry(user_id, order_number, "status check")
        if failure:
            return failure

        view = self._displayed_view(order)
        view["needsRefresh"] = needs_refresh(order)
        return OperationResult.success(view)

    def refresh(self, user_id: str, order_number: str) -> OperationResult:
        """
        Reveal the settlement outcome of an order at the completed marker.

        Returns:
            PENDING orders: the minimal view, unchanged
            COMPLETED with an outcome: the revealed status (and failure reason)
            Anything else: NotRefreshable
        """
        order, failure = self.tracker.open_inquiry(user_id, order_number, "status refresh")
        if failure:
            return failure

        if order.displayed_status == OrderStatus.PENDING:
            DISCLOSURES.labels(outcome="pending").inc()
            view = order.minimal_view()
            view["refreshed"] = False
            return OperationResult.success(view, message=status_message(OrderStatus.PENDING))

        if order.displayed_status != OrderStatus.COMPLETED:
            return self._not_refreshable(order, "This order has already been finalised, so no refresh is needed.")

        if order.true_status not in REVEAL_ON_REFRESH:
            return self._not_refreshable(order, "The settlement outcome is not available yet.")

        revealed = self.orders.transition_displayed(
            order.order_number,
            expected=OrderStatus.COMPLETED,
            new=order.true_status,
            now=self.clock(),
            reason=REFRESH_REASON,
            actor=UpdateSource.SYSTEM,
        )
        if revealed is None:
            # Another refresh won the race; report what it revealed.
            revealed = self.orders.get(user_id, order_number)
            if revealed is None or revealed.displayed_status != order.true_status:
                return self._not_refreshable(revealed or order, "The order changed while refreshing.")

        DISCLOSURES.labels(outcome=revealed.displayed_status.value.lower()).inc()
        logger.info(
            "status_revealed",
            order_number=revealed.order_number,
            status=revealed.displayed_status.value,
        )

        data: Dict[str, Any] = {
            "orderNo": revealed.order_number,
            "previousStatus": OrderStatus.COMPLETED.value,
            "status": revealed.displayed_status.value,
            "statusMessage": status_message(revealed.displayed_status, revealed.failure_reason),
            "refreshed": True,
            "refreshedAt": (revealed.updated_at or self.clock()).isoformat(),
        }
        if revealed.displayed_status == OrderStatus.FAILED:
            data["failReason"] = revealed.failure_reason or UNKNOWN_FAILURE
        return OperationResult.success(data, message="Status refreshed successfully")

    def list_orders(self, user_id: str, query: OrderListQuery) -> OperationResult:
        """Recent orders with displayed status and arrival estimate."""
        if self.verification.active_session(user_id) is None:
            return verification_required("order listing")

        created_from = created_to = None
        if query.order_date is not None:
            start = datetime.combine(query.order_date, time.min, tzinfo=self._tz)
            created_from, created_to = start, start + timedelta(days=1)

        orders = self.orders.list_for_user(
            user_id,
            transfer_mode=query.transfer_mode,
            country=query.country,
            currency=query.currency,
            created_from=created_from,
            created_to=created_to,
            limit=query.count,
        )
        now = self.clock()
        items = []
        for order in orders:
            estimate = estimate_arrival(order, now, self.settings.delay_threshold_minutes, self._tz)
            view = self._displayed_view(order)
            view.update(
                {
                    "expectedArrivalTime": estimate.expected_at.isoformat(),
                    "isDelayed": estimate.is_delayed,
                    "needsRefresh": needs_refresh(order),
                }
            )
            items.append(view)
        return OperationResult.success({"orders": items, "count": len(items)})

    def publish_settlement(self, order: TransferOrder) -> Optional[TransferOrder]:
        """
        Move the displayed status after settlement reported ``order.true_status``.

        SUCCESS and FAILED go behind the COMPLETED marker; CANCELLED and
        AML_HOLD are shown as they are.
        """
        if order.displayed_status != OrderStatus.PENDING:
            return None
        if order.true_status in REVEAL_ON_REFRESH:
            target, reason = OrderStatus.COMPLETED, COMPLETED_REASON
        elif order.true_status in (OrderStatus.CANCELLED, OrderStatus.AML_HOLD):
            target, reason = order.true_status, f"Settlement reported {order.true_status.value}"
        else:
            return None

        moved = self.orders.transition_displayed(
            order.order_number,
            expected=OrderStatus.PENDING,
            new=target,
            now=self.clock(),
            reason=reason,
            actor=UpdateSource.SYSTEM,
        )
        if moved is not None:
            logger.info("displayed_status_advanced", order_number=order.order_number, status=target.value)
        return moved

    def _not_refreshable(self, order: TransferOrder, detail: str) -> OperationResult:
        DISCLOSURES.labels(outcome="not_refreshable").inc()
        return OperationResult.failure(
            ErrorKind.NOT_REFRESHABLE,
            "Order status cannot be refreshed",
            data={"orderNo": order.order_number, "currentStatus": order.displayed_status.value, "detail": detail},
        )

    @staticmethod
    def _displayed_view(order: TransferOrder) -> Dict[str, Any]:
        return {
            "orderNo": order.order_number,
            "status": order.displayed_status.value,
            "statusMessage": status_message(order.displayed_status, order.failure_reason),
            "sendAmount": str(order.send_amount),
            "fee": str(order.fee_amount),
            "totalAmount": str(order.total_amount),
            "currency": order.currency,
            "transferMode": order.transfer_mode.value,
            "beneficiaryName": order.beneficiary_name,
            "createdAt": order.created_at.isoformat(),
        }
