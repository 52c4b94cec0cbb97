"""
Delay handling: timeframe queries and the delay-inquiry conversation.

The explanation variant depends on whether the order is delayed and on how the
customer reacted to the previous explanation. Messages rotate with the inquiry
count so repeated questions do not get the same wording.
"""
from __future__ import annotations

import secrets
import string
from datetime import timedelta
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

import structlog

from ..core.clock import Clock, utc_now
from ..core.config import Settings
from ..core.errors import ErrorKind, OperationResult
from ..db.orders import OrderStore
from ..models.domain import TransferOrder
from ..models.enums import EscalationReason, Satisfaction
from .inquiries import InquiryTracker, sla_for
from .timeframe import ArrivalEstimate, delay_reasons, estimate_arrival, format_local, timeframe_message
from .verification import VerificationService, verification_required

logger = structlog.get_logger(__name__)

DELAY_MESSAGES = (
    "I completely understand your concern about the delay. Your transaction has already been processed "
    "successfully on our side. The updated delivery timeframe is shown in your app, and the delay is due to "
    "the beneficiary bank's processing schedule. Weekends and public holidays can cause additional delays, as "
    "many banks only process on working days. In most cases, the transfer completes earlier than shown, what "
    "you see is the maximum expected time.",
    "I sincerely apologize for any inconvenience this delay may have caused. Your money transfer has been "
    "successfully processed from our end and is now with the receiving bank. The extended timeframe you see "
    "reflects the beneficiary bank's processing schedule, which can be affected by weekends, holidays, and "
    "their internal processing times. Rest assured, most transfers arrive sooner than the maximum time indicated.",
    "Thank you for your patience. I understand how important this transfer is to you. The good news is that "
    "your transaction has been completed successfully on our platform. The delay you're experiencing is due to "
    "the receiving bank's processing timeline, which unfortunately is outside our control. The timeframe shown "
    "in your app is the maximum expected time, but transfers often arrive much sooner.",
)

THANK_YOU_MESSAGES = (
    "Thank you for your understanding and patience. We truly appreciate your trust in our service. If you have "
    "any other questions or need assistance with future transfers, please don't hesitate to reach out to us.",
    "We're grateful for your patience during this time. Your understanding means a lot to us, and we're "
    "committed to providing you with the best possible service. Please feel free to contact us anytime if you "
    "need further assistance.",
    "Thank you for being so understanding. We know delays can be frustrating, and we really appreciate your "
    "patience. We're here to help with any future transfers or questions you might have.",
)

ESCALATION_MESSAGES = (
    "I understand your frustration, and I want to make sure you receive the best possible assistance. Let me "
    "connect you with one of our senior agents who can provide more detailed information about your specific "
    "transaction and explore additional options.",
    "I can see that this situation requires immediate attention. I'm escalating your case to our specialized "
    "team who has access to additional resources and can provide more comprehensive support for your delayed "
    "transaction.",
    "Your concern is completely valid, and I want to ensure you get the resolution you deserve. I'm transferring "
    "you to our escalation team who can provide more detailed assistance and potentially expedite the "
    "resolution process.",
)

UNSATISFIED_RESPONSE = (
    "I understand your frustration completely. Let me provide you with some additional information: Your "
    "transaction is confirmed as processed on our end, and we're monitoring it closely. While we cannot control "
    "the receiving bank's processing time, we can offer you a few options to help resolve this situation."
)

NEXT_STEPS = (
    "Verify your identity if needed",
    "Check updated timeframe in the app",
    "Contact us if you need further assistance",
)

UNSATISFIED_OPTIONS = (
    "Escalate to senior agent for detailed investigation",
    "Request expedited processing (if available)",
    "Set up monitoring alerts for status updates",
    "Provide alternative contact methods for updates",
)

_ID_ALPHABET = string.ascii_uppercase + string.digits


def pick(messages, inquiry_count: int) -> str:
    return messages[inquiry_count % len(messages)]


def generate_escalation_id(now) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"ESC-{int(now.timestamp() * 1000)}-{suffix}"


class DelayService:
    """Timeframe estimates and delay-inquiry handling for a user's orders."""

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

    def estimate(self, order: TransferOrder) -> ArrivalEstimate:
        return estimate_arrival(order, self.clock(), self.settings.delay_threshold_minutes, self._tz)

    def timeframe(self, user_id: str, order_number: str) -> OperationResult:
        """Expected arrival, delay classification and likely causes. Counts as an inquiry."""
        order, failure = self.tracker.open_inquiry(user_id, order_number, "timeframe check")
        if failure:
            return failure

        estimate = self.estimate(order)
        data = {
            "orderNo": order.order_number,
            "status": order.displayed_status.value,
            "transactionTime": format_local(order.created_at, self._tz),
            "timeElapsedMinutes": estimate.elapsed_minutes,
            "isDelayed": estimate.is_delayed,
            "expectedArrivalTime": estimate.expected_at.isoformat(),
            "timeframeMessage": timeframe_message(estimate, self._tz),
            "transferMode": order.transfer_mode.value,
            "country": order.country,
            "currency": order.currency,
            "fromAmount": str(order.send_amount),
            "toAmount": str(order.received_amount),
            "escalationRecommended": self.tracker.should_escalate(order, estimate.is_delayed),
        }
        if estimate.is_delayed:
            data["delayInfo"] = {
                "delayMinutes": estimate.delay_minutes,
                "delayThreshold": estimate.threshold_minutes,
                "possibleReasons": delay_reasons(order),
            }
        return OperationResult.success(data)

    def handle_delay_inquiry(
        self,
        user_id: str,
        order_number: str,
        satisfaction: Optional[Satisfaction] = None,
    ) -> OperationResult:
        """
        Answer "where is my money?" for one order.

        Args:
            user_id: Caller identity
            order_number: Order being asked about
            satisfaction: Reaction to the previous explanation, None on first ask

        Returns:
            OperationResult carrying the response text and follow-up options
        """
        order, failure = self.tracker.open_inquiry(user_id, order_number, "delay inquiry")
        if failure:
            return failure

        estimate = self.estimate(order)
        base = {
            "orderNo": order.order_number,
            "timeElapsedMinutes": estimate.elapsed_minutes,
            "isDelayed": estimate.is_delayed,
        }

        if not estimate.is_delayed:
            return OperationResult.success(
                {
                    **base,
                    "variant": "not_delayed",
                    "response": "Your transaction is within the expected timeframe.",
                    "expectedArrivalTime": estimate.expected_at.isoformat(),
                },
                message="Transaction is not delayed",
            )

        if satisfaction is None:
            return OperationResult.success(
                {
                    **base,
                    "variant": "delayed_first_inquiry",
                    "response": pick(DELAY_MESSAGES, order.inquiry_count),
                    "nextSteps": list(NEXT_STEPS),
                    "escalationAvailable": True,
                    "escalationRecommended": self.tracker.should_escalate(order, True),
                },
                message="Delay inquiry handled",
            )

        if satisfaction == Satisfaction.SATISFIED:
            return OperationResult.success(
                {
                    **base,
                    "variant": "satisfied",
                    "response": pick(THANK_YOU_MESSAGES, order.inquiry_count),
                    "customerSatisfied": True,
                    "caseClosed": True,
                },
                message="Customer satisfied",
            )

        if satisfaction == Satisfaction.UNSATISFIED:
            return OperationResult.success(
                {
                    **base,
                    "variant": "delayed_unsatisfied",
                    "response": UNSATISFIED_RESPONSE,
                    "options": list(UNSATISFIED_OPTIONS),
                    "escalationRecommended": True,
                },
                message="Customer unsatisfied - providing options",
            )

        return self._escalate(order, estimate, base)

    def delayed_orders(self, user_id: str) -> OperationResult:
        """Orders still shown as PENDING past the delay threshold."""
        if self.verification.active_session(user_id) is None:
            return verification_required("delayed order lookup")

        now = self.clock()
        # Anything older than the threshold is a candidate; the estimate decides
        cutoff = now - timedelta(minutes=self.settings.delay_threshold_minutes)
        items = []
        for order in self.orders.list_stale_pending(user_id, cutoff):
            estimate = self.estimate(order)
            if not estimate.is_delayed:
                continue
            items.append(
                {
                    "orderNo": order.order_number,
                    "status": order.displayed_status.value,
                    "timeElapsedMinutes": estimate.elapsed_minutes,
                    "delayMinutes": estimate.delay_minutes,
                    "expectedArrivalTime": estimate.expected_at.isoformat(),
                    "escalationLevel": order.escalation_level,
                }
            )
        return OperationResult.success({"orders": items, "count": len(items)})

    def _escalate(self, order: TransferOrder, estimate: ArrivalEstimate, base: Dict[str, Any]) -> OperationResult:
        summary = (
            f"Customer requested escalation {estimate.elapsed_minutes} minutes after the transfer, "
            f"{estimate.delay_minutes} minutes past the {estimate.threshold_minutes}-minute threshold."
        )
        escalated = self.tracker.raise_level(
            order.order_number,
            EscalationReason.CUSTOMER_UNSATISFIED,
            summary,
            level=max(1, order.escalation_level),
        )
        if escalated is None:
            return OperationResult.failure(ErrorKind.ORDER_NOT_FOUND, "Order not found")

        now = self.clock()
        escalation_id = generate_escalation_id(now)
        logger.info("delay_escalated", order_number=order.order_number, escalation_id=escalation_id)
        return OperationResult.success(
            {
                **base,
                "variant": "escalate",
                "response": pick(ESCALATION_MESSAGES, order.inquiry_count),
                "escalationId": escalation_id,
                "escalationLevel": escalated.escalation_level,
                "escalationSummary": {
                    "orderNo": order.order_number,
                    "transferMode": order.transfer_mode.value,
                    "country": order.country,
                    "currency": order.currency,
                    "amount": str(order.send_amount),
                    "transactionTime": format_local(order.created_at, self._tz),
                    "delayMinutes": estimate.delay_minutes,
                    "status": order.displayed_status.value,
                    "inquiryCount": order.inquiry_count,
                    "customerConcerns": [
                        "Transaction delay beyond expected timeframe",
                        "Request for faster delivery",
                        "Need for detailed status update",
                    ],
                    "previousActions": [
                        "Identity verification completed",
                        "Timeframe explanation provided",
                        "Empathetic response delivered",
                    ],
                },
                "estimatedResponseTime": sla_for(escalated.escalation_level),
                "escalationInitiated": True,
            },
            message="Escalation initiated",
        )
