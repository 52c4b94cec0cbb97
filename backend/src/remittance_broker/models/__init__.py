"""
Data models for the remittance broker.

This module contains Pydantic models for:
- Enumerations (transfer modes, order statuses, escalation reasons)
- Domain records (transfer orders, verification sessions, reference data)
- Operation requests (verification, transfers, escalation, settlement)
"""
from .domain import (
    Beneficiary,
    ExchangeRate,
    StatusHistoryEntry,
    SuggestedAmount,
    TransferOrder,
    VerificationSession,
    quantize_money,
)
from .enums import (
    REVEAL_ON_REFRESH,
    SETTLED_STATUSES,
    CallbackProvider,
    EscalationReason,
    OrderStatus,
    Satisfaction,
    TransferMode,
    UpdateSource,
    VerificationState,
)
from .requests import (
    DelayInquiryRequest,
    EscalationRequest,
    OrderListQuery,
    SettlementData,
    SettlementNotification,
    TransferRequest,
    VerifyIdentityRequest,
)

__all__ = [
    "Beneficiary",
    "ExchangeRate",
    "StatusHistoryEntry",
    "SuggestedAmount",
    "TransferOrder",
    "VerificationSession",
    "quantize_money",
    "REVEAL_ON_REFRESH",
    "SETTLED_STATUSES",
    "CallbackProvider",
    "EscalationReason",
    "OrderStatus",
    "Satisfaction",
    "TransferMode",
    "UpdateSource",
    "VerificationState",
    "DelayInquiryRequest",
    "EscalationRequest",
    "OrderListQuery",
    "SettlementData",
    "SettlementNotification",
    "TransferRequest",
    "VerifyIdentityRequest",
]
