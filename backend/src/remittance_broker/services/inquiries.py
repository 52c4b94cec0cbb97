"""
Customer-inquiry and escalation tracking.
"""
from __future__ import annotations

from typing import Optional, Tuple

import structlog

from ..core.clock import Clock, utc_now
from ..core.config import Settings
from ..core.errors import ErrorKind, OperationResult
from ..core.observability import ESCALATIONS
from ..db.orders import OrderStore
from ..models.domain import TransferOrder
from ..models.enums import EscalationReason
from .verification import VerificationService, verification_required

logger = structlog.get_logger(__name__)

ESCALATION_MESSAGES = {
    1: "Your case has been escalated to a senior customer service representative.",
    2: "Your case has been escalated to a customer service supervisor.",
    3: "Your case has been escalated to a customer service manager.",
}


def sla_for(level: int) -> str:
    return "Within 1 hour" if level >= 3 else "Within 2-4 hours"


class InquiryTracker:
    """Counts customer inquiries per order and raises escalation levels."""

    def __init__(
        self,
        settings: Settings,
        orders: OrderStore,
        verification: VerificationService,
        clock: Clock = utc_now,
    ):
        self.settings = settings
        self.orders = orders
        self.verification = verification
        self.clock = clock

    def track(self, order_number: str) -> Optional[TransferOrder]:
        """Record one inquiry and return the order as it stands afterwards."""
        return self.orders.record_inquiry(order_number, self.clock())

    def open_inquiry(
        self, user_id: str, order_number: str, action: str
    ) -> Tuple[Optional[TransferOrder], Optional[OperationResult]]:
        """
        Gate a read on verification and ownership, then count it.

        Returns:
            ``(order, None)`` with the post-increment order, or ``(None, failure)``
        """
        if not order_number:
            return None, OperationResult.failure(ErrorKind.VALIDATION_ERROR, "orderNo must be provided")
        if self.verification.active_session(user_id) is None:
            return None, verification_required(action)
        if self.orders.get(user_id, order_number) is None:
            return None, OperationResult.failure(ErrorKind.ORDER_NOT_FOUND, "Order not found")
        order = self.track(order_number)
        if order is None:
            return None, OperationResult.failure(ErrorKind.ORDER_NOT_FOUND, "Order not found")
        return order, None

    def should_escalate(self, order: TransferOrder, is_delayed: bool) -> bool:
        return is_delayed and order.inquiry_count >= self.settings.escalation_inquiry_threshold

    def raise_level(
        self,
        order_number: str,
        reason: EscalationReason,
        summary: Optional[str],
        level: int,
    ) -> Optional[TransferOrder]:
        """Persist an escalation without verification checks. Levels never go down."""
        order = self.orders.escalate(order_number, level, reason.value, summary, self.clock())
        if order is not None:
            ESCALATIONS.labels(level=str(order.escalation_level)).inc()
            logger.info(
                "order_escalated",
                order_number=order_number,
                requested_level=level,
                level=order.escalation_level,
                reason=reason.value,
            )
        return order

    def escalate(
        self,
        user_id: str,
        order_number: str,
        reason: EscalationReason,
        summary: str,
        level: int = 1,
    ) -> OperationResult:
        """Hand the order to a human at ``level`` (1-3)."""
        if level not in ESCALATION_MESSAGES:
            return OperationResult.failure(ErrorKind.VALIDATION_ERROR, "level must be 1, 2 or 3")
        if not summary or len(summary.strip()) < 10:
            return OperationResult.failure(
                ErrorKind.VALIDATION_ERROR, "summary must be at least 10 characters"
            )
        if self.verification.active_session(user_id) is None:
            return verification_required("escalation")
        if self.orders.get(user_id, order_number) is None:
            return OperationResult.failure(ErrorKind.ORDER_NOT_FOUND, "Order not found")

        order = self.raise_level(order_number, reason, summary.strip(), level)
        if order is None:
            return OperationResult.failure(ErrorKind.ORDER_NOT_FOUND, "Order not found")

        return OperationResult.success(
            {
                "orderNo": order.order_number,
                "escalationLevel": order.escalation_level,
                "escalationReason": order.escalation_reason,
                "escalatedAt": order.escalated_at.isoformat() if order.escalated_at else None,
                "nextSteps": ESCALATION_MESSAGES[order.escalation_level],
                "estimatedResponseTime": sla_for(order.escalation_level),
            },
            message="Order escalated successfully",
        )
