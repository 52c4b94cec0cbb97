"""
Pydantic domain models for transfer orders, verification sessions and
reference data.

These are the values passed between the persistence layer and the services;
SQLAlchemy rows never leave ``remittance_broker.db``.
"""
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import CallbackProvider, OrderStatus, TransferMode, UpdateSource

CENT = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    """Round to two-decimal currency precision (half up)."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class StatusHistoryEntry(BaseModel):
    """One audit entry in an order's status timeline."""

    model_config = ConfigDict(from_attributes=True)

    status: OrderStatus
    timestamp: datetime
    reason: Optional[str] = None
    actor: UpdateSource = UpdateSource.SYSTEM


class TransferOrder(BaseModel):
    """A persisted transfer order with its dual status."""

    model_config = ConfigDict(from_attributes=True)

    order_number: str
    user_id: str

    send_amount: Decimal = Field(ge=0)
    fee_amount: Decimal = Field(ge=0)
    total_amount: Decimal = Field(ge=0)
    exchange_rate: Decimal = Field(ge=0)
    received_amount: Decimal = Field(ge=0)

    transfer_mode: TransferMode
    country: str = Field(min_length=2, max_length=2)
    currency: str = Field(min_length=3, max_length=3)
    beneficiary_id: int
    beneficiary_name: str

    displayed_status: OrderStatus = OrderStatus.PENDING
    true_status: OrderStatus = OrderStatus.PENDING
    failure_reason: Optional[str] = None

    payment_token: Optional[str] = None
    payment_link: Optional[str] = None
    callback_provider: CallbackProvider = CallbackProvider.VOICE

    created_at: datetime
    updated_at: Optional[datetime] = None
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)

    inquiry_count: int = Field(default=0, ge=0)
    last_inquiry_at: Optional[datetime] = None
    escalation_level: int = Field(default=0, ge=0, le=3)
    escalation_reason: Optional[str] = None
    conversation_summary: Optional[str] = None
    escalated_at: Optional[datetime] = None

    @property
    def is_escalated(self) -> bool:
        return self.escalation_level > 0

    def minimal_view(self) -> dict:
        """Fields safe to show before the outcome is revealed."""
        return {
            "orderNo": self.order_number,
            "status": self.displayed_status.value,
            "sendAmount": str(self.send_amount),
            "currency": self.currency,
        }


class VerificationSession(BaseModel):
    """A time-boxed identity check for one user."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    user_id: str
    subject_reference: str
    masked_id: str
    verified_at: datetime
    expires_at: datetime
    is_active: bool = True

    def is_valid(self, now: datetime) -> bool:
        return self.is_active and now < self.expires_at

    def seconds_remaining(self, now: datetime) -> int:
        return max(0, int((self.expires_at - now).total_seconds()))


class Beneficiary(BaseModel):
    """A registered recipient, which also carries the identity card checked at verification."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    title: str
    name: str
    country: str = Field(min_length=2, max_length=2)
    currency: str = Field(min_length=3, max_length=3)
    transfer_modes: List[TransferMode] = Field(default_factory=lambda: [TransferMode.BANK_TRANSFER])
    account_number: str
    bank_name: str
    id_number: Optional[str] = None
    id_expiry_date: Optional[date] = None
    is_active: bool = True

    @field_validator("country", "currency")
    @classmethod
    def upper(cls, v: str) -> str:
        return v.upper()

    @field_validator("transfer_modes", mode="before")
    @classmethod
    def split_modes(cls, v):
        if isinstance(v, str):
            return [item for item in v.split(",") if item]
        return v


class ExchangeRate(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    from_currency: str
    to_currency: str
    rate: Decimal = Field(gt=0)
    updated_at: Optional[datetime] = None


class SuggestedAmount(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    currency: str
    amounts: List[Decimal] = Field(default_factory=list)

    @field_validator("amounts", mode="before")
    @classmethod
    def split_amounts(cls, v):
        if isinstance(v, str):
            return [Decimal(item) for item in v.split(",") if item]
        return v
