"""
Enumerations shared by the domain models, persistence layer and API.
"""
from enum import Enum


class TransferMode(str, Enum):
    """Delivery channel of a transfer."""
    BANK_TRANSFER = "BANK_TRANSFER"
    CASH_PICKUP = "CASH_PICKUP"
    MOBILE_WALLET = "MOBILE_WALLET"
    UPI = "UPI"


class OrderStatus(str, Enum):
    """Order status values.

    ``COMPLETED`` is the customer-facing marker meaning "settlement finished,
    outcome not yet revealed". It never appears as a true status.
    """
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    AML_HOLD = "AML_HOLD"


# True statuses a settlement notification may report.
SETTLED_STATUSES = frozenset(
    {OrderStatus.SUCCESS, OrderStatus.FAILED, OrderStatus.CANCELLED, OrderStatus.AML_HOLD}
)

# Outcomes that sit behind the completed marker until a refresh reveals them.
REVEAL_ON_REFRESH = frozenset({OrderStatus.SUCCESS, OrderStatus.FAILED})


class UpdateSource(str, Enum):
    """Actor recorded on a status history entry."""
    SYSTEM = "system"
    CUSTOMER = "customer"
    BANK = "bank"
    ADMIN = "admin"


class EscalationReason(str, Enum):
    CUSTOMER_UNSATISFIED = "customer_unsatisfied"
    TECHNICAL_ISSUE = "technical_issue"
    COMPLEX_INQUIRY = "complex_inquiry"
    OTHER = "other"


class Satisfaction(str, Enum):
    """Customer reaction to a delay explanation."""
    SATISFIED = "satisfied"
    UNSATISFIED = "unsatisfied"
    ESCALATE = "escalate"


class CallbackProvider(str, Enum):
    VOICE = "voice"
    TEXT = "text"


class VerificationState(str, Enum):
    """Reason codes reported by the verification status check."""
    NO_VERIFICATION = "NO_VERIFICATION"
    VERIFICATION_INACTIVE = "VERIFICATION_INACTIVE"
    VERIFICATION_EXPIRED = "VERIFICATION_EXPIRED"
    VERIFIED = "VERIFIED"
