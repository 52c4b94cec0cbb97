"""
Request models for the operations exposed to the agent.

Validation mirrors the argument rules of each operation; services re-check
what a model cannot express (real calendar dates, partial transfer requests).
"""
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import CallbackProvider, EscalationReason, Satisfaction, TransferMode


class VerifyIdentityRequest(BaseModel):
    """Last four digits of the identity card plus its expiry date."""

    model_config = ConfigDict(populate_by_name=True)

    last_four_digits: str = Field(alias="lastFourDigits", pattern=r"^\d{4}$")
    expiry_date: str = Field(alias="expiryDate", pattern=r"^\d{2}/\d{2}/\d{4}$")


class TransferRequest(BaseModel):
    """Empty for discovery; beneficiary plus amount for execution."""

    model_config = ConfigDict(populate_by_name=True)

    beneficiary_id: Optional[int] = Field(default=None, alias="beneficiaryId")
    beneficiary_name: Optional[str] = Field(default=None, alias="beneficiaryName")
    send_amount: Optional[Decimal] = Field(default=None, alias="sendAmount")
    transfer_mode: Optional[TransferMode] = Field(default=None, alias="transferMode")
    callback_provider: CallbackProvider = Field(default=CallbackProvider.VOICE, alias="callbackProvider")

    @field_validator("beneficiary_name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @property
    def is_discovery(self) -> bool:
        return (
            self.beneficiary_id is None
            and self.beneficiary_name is None
            and self.send_amount is None
        )


class OrderListQuery(BaseModel):
    """Filters for listing a user's orders."""

    model_config = ConfigDict(populate_by_name=True)

    transfer_mode: Optional[TransferMode] = Field(default=None, alias="transferMode")
    country: Optional[str] = Field(default=None, min_length=2, max_length=2)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    order_date: Optional[date] = Field(default=None, alias="orderDate")
    count: int = Field(default=10, ge=1, le=50)

    @field_validator("country", "currency")
    @classmethod
    def upper(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class DelayInquiryRequest(BaseModel):
    satisfaction: Optional[Satisfaction] = None


class EscalationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reason: EscalationReason
    summary: str = Field(min_length=10)
    level: int = Field(default=1, ge=1, le=3)


class SettlementData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_no: str = Field(alias="orderNo", min_length=1)
    status: str
    fail_reason: Optional[str] = Field(default=None, alias="failReason")


class SettlementNotification(BaseModel):
    """Inbound ``remittance_pay_status`` callback body."""

    model_config = ConfigDict(populate_by_name=True)

    notify_event: str = Field(alias="notifyEvent")
    data: Optional[SettlementData] = None
