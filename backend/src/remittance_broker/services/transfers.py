"""
Transfer execution engine.

Two stages share one entry point: an empty request discovers beneficiaries,
suggested amounts and a reference quote; a request naming a beneficiary and an
amount prices and persists a new order.
"""
from __future__ import annotations

import secrets
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import structlog

from ..core.clock import Clock, utc_now
from ..core.config import Settings
from ..core.errors import ErrorKind, OperationResult
from ..core.observability import ORDERS_CREATED, mask_identifier
from ..db.orders import OrderStore
from ..db.reference import ReferenceData
from ..models.domain import Beneficiary, TransferOrder, quantize_money
from ..models.enums import CallbackProvider, TransferMode
from ..models.requests import TransferRequest
from .verification import VerificationService, verification_required

logger = structlog.get_logger(__name__)


def compute_fee(
    amount: Decimal,
    rate: Decimal = Decimal("0.01"),
    minimum: Decimal = Decimal("5.00"),
    maximum: Decimal = Decimal("50.00"),
) -> Decimal:
    """Percentage fee clamped to ``[minimum, maximum]`` at currency precision."""
    fee = quantize_money(Decimal(amount) * rate)
    return quantize_money(min(max(fee, minimum), maximum))


def generate_order_number(now: datetime) -> str:
    """``RM`` + UTC timestamp + 8 random hex characters."""
    return f"RM{now.strftime('%Y%m%d%H%M%S')}{secrets.token_hex(4).upper()}"


def generate_payment_token() -> str:
    return f"pay_{uuid.uuid4().hex}"


def build_payment_link(
    base: str,
    token: str,
    amount: Decimal,
    beneficiary_name: str,
    provider: CallbackProvider,
) -> str:
    params = urlencode(
        {
            "token": token,
            "amount": f"{quantize_money(amount):.2f}",
            "beneficiary": beneficiary_name,
            "callback": provider.value,
        }
    )
    return f"{base}?{params}"


class TransferService:
    """Discovery and execution of transfer orders."""

    def __init__(
        self,
        settings: Settings,
        orders: OrderStore,
        reference: ReferenceData,
        verification: VerificationService,
        clock: Clock = utc_now,
    ):
        self.settings = settings
        self.orders = orders
        self.reference = reference
        self.verification = verification
        self.clock = clock

    def fee_for(self, amount: Decimal) -> Decimal:
        return compute_fee(
            amount,
            rate=self.settings.fee_rate,
            minimum=self.settings.min_fee,
            maximum=self.settings.max_fee,
        )

    def transfer(self, user_id: str, request: TransferRequest) -> OperationResult:
        """Route to discovery or execution depending on which fields are present."""
        if self.verification.active_session(user_id) is None:
            return verification_required("transfers")
        if request.is_discovery:
            return self.discover(user_id)
        return self.execute(user_id, request)

    def discover(self, user_id: str) -> OperationResult:
        """List what the customer can send and a preview quote. Creates nothing."""
        beneficiaries = self.reference.list_beneficiaries(user_id)
        suggested = self.reference.get_suggested_amounts(self.settings.home_currency)
        amounts = suggested.amounts if suggested else []

        data = {
            "beneficiaries": [
                {
                    "id": b.id,
                    "title": b.title,
                    "name": b.name,
                    "country": b.country,
                    "currency": b.currency,
                    "transferModes": [mode.value for mode in b.transfer_modes],
                }
                for b in beneficiaries
            ],
            "sendAmounts": [
                {"id": index, "amount": str(amount)} for index, amount in enumerate(amounts, start=1)
            ],
            "exchangeRate": self._reference_quote(),
            "callBackProviders": [
                {"type": provider.value, **self.settings.callback_config(provider.value)}
                for provider in CallbackProvider
            ],
            "description": "Please select a beneficiary and amount to proceed with the transfer.",
        }
        logger.info("transfer_discovery", user=mask_identifier(user_id), beneficiaries=len(beneficiaries))
        return OperationResult.success(data)

    def execute(self, user_id: str, request: TransferRequest) -> OperationResult:
        """Price and persist a new order. Every successful call creates a new order."""
        if request.send_amount is None or (
            request.beneficiary_id is None and request.beneficiary_name is None
        ):
            return OperationResult.failure(
                ErrorKind.VALIDATION_ERROR,
                "Provide both a beneficiary (id or name) and a send amount, or neither for discovery.",
            )
        requested = request.send_amount
        if not requested.is_finite() or requested <= 0:
            return OperationResult.failure(ErrorKind.VALIDATION_ERROR, "sendAmount must be positive")

        beneficiary = self._resolve_beneficiary(user_id, request.beneficiary_id, request.beneficiary_name)
        if beneficiary is None:
            return OperationResult.failure(
                ErrorKind.BENEFICIARY_NOT_FOUND,
                "Beneficiary not found, please change beneficiary name.",
                data={"retryable": True, "beneficiaries": self._beneficiary_choices(user_id)},
            )

        # The ceiling applies to the amount as entered, before rounding to cents
        if requested > self.settings.max_send_amount:
            return OperationResult.failure(
                ErrorKind.AMOUNT_EXCEEDS_LIMIT,
                "Amount exceeded limit, please set a smaller amount.",
                data={"retryable": True, "maxSendAmount": str(self.settings.max_send_amount)},
            )

        send_amount = quantize_money(requested)
        if send_amount <= 0:
            return OperationResult.failure(ErrorKind.VALIDATION_ERROR, "sendAmount must be positive")

        mode = request.transfer_mode or beneficiary.transfer_modes[0]
        if mode not in beneficiary.transfer_modes:
            return OperationResult.failure(
                ErrorKind.VALIDATION_ERROR,
                f"{beneficiary.name} does not accept {mode.value}",
                data={"transferModes": [m.value for m in beneficiary.transfer_modes]},
            )

        rate = self.reference.get_rate(self.settings.home_currency, beneficiary.currency)
        if rate is None:
            return OperationResult.failure(
                ErrorKind.RATE_UNAVAILABLE,
                f"Exchange rate not available for {self.settings.home_currency} to {beneficiary.currency}",
            )

        fee = self.fee_for(send_amount)
        total = quantize_money(send_amount + fee)
        received = quantize_money(send_amount * rate.rate)
        now = self.clock()
        token = generate_payment_token()
        link = build_payment_link(
            self.settings.payment_link_base,
            token,
            total,
            beneficiary.name,
            request.callback_provider,
        )

        order = self.orders.create(
            TransferOrder(
                order_number=generate_order_number(now),
                user_id=user_id,
                send_amount=send_amount,
                fee_amount=fee,
                total_amount=total,
                exchange_rate=rate.rate,
                received_amount=received,
                transfer_mode=mode,
                country=beneficiary.country,
                currency=beneficiary.currency,
                beneficiary_id=beneficiary.id,
                beneficiary_name=beneficiary.name,
                payment_token=token,
                payment_link=link,
                callback_provider=request.callback_provider,
                created_at=now,
            )
        )

        ORDERS_CREATED.labels(transfer_mode=mode.value, currency=beneficiary.currency).inc()
        logger.info(
            "order_created",
            order_number=order.order_number,
            user=mask_identifier(user_id),
            transfer_mode=mode.value,
            currency=beneficiary.currency,
            send_amount=str(send_amount),
        )

        callback = self.settings.callback_config(request.callback_provider.value)
        return OperationResult.success(
            {
                "orderNo": order.order_number,
                "status": order.displayed_status.value,
                "button": {"title": "Complete Payment", "link": link},
                "paymentLink": link,
                "callBackProvider": request.callback_provider.value,
                "callBackUrl": callback["url"],
                "callBackToken": callback["token"],
                "transactionDetails": {
                    "beneficiary": {
                        "id": beneficiary.id,
                        "title": beneficiary.title,
                        "name": beneficiary.name,
                        "country": beneficiary.country,
                        "currency": beneficiary.currency,
                        "bankName": beneficiary.bank_name,
                    },
                    "transferMode": mode.value,
                    "sendAmount": str(order.send_amount),
                    "fee": str(order.fee_amount),
                    "totalAmount": str(order.total_amount),
                    "receivedAmount": str(order.received_amount),
                    "exchangeRate": str(order.exchange_rate),
                    "currency": order.currency,
                    "createdAt": order.created_at.isoformat(),
                },
            },
            message="Transfer initiated successfully",
        )

    def _resolve_beneficiary(
        self,
        user_id: str,
        beneficiary_id: Optional[int],
        beneficiary_name: Optional[str],
    ) -> Optional[Beneficiary]:
        if beneficiary_id is not None:
            match = self.reference.get_beneficiary(user_id, beneficiary_id)
            if match is not None:
                return match
        if beneficiary_name:
            candidates = self.reference.find_beneficiaries_by_name(user_id, beneficiary_name)
            if candidates:
                return candidates[0]
        return None

    def _beneficiary_choices(self, user_id: str) -> List[Dict[str, Any]]:
        return [{"id": b.id, "name": b.name} for b in self.reference.list_beneficiaries(user_id)]

    def _reference_quote(self) -> Optional[Dict[str, Any]]:
        settings = self.settings
        rate = self.reference.get_rate(settings.home_currency, settings.reference_currency)
        if rate is None:
            return None
        amount = quantize_money(settings.reference_quote_amount)
        fee = self.fee_for(amount)
        return {
            "fromAmount": {"currency": settings.home_currency, "amount": str(amount)},
            "rate": str(rate.rate),
            "toAmount": {
                "currency": settings.reference_currency,
                "amount": str(quantize_money(amount * rate.rate)),
            },
            "toCountry": settings.reference_country,
            "fee": {"currency": settings.home_currency, "amount": str(fee)},
            "feeItems": [
                {"name": "Service Fee", "feeAmount": {"currency": settings.home_currency, "amount": str(fee)}}
            ],
            "orderAmount": {"currency": settings.home_currency, "amount": str(quantize_money(amount + fee))},
            "transactionMode": TransferMode.BANK_TRANSFER.value,
        }
