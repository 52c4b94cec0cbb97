"""
Services implementing the remittance operations.
"""
from .container import BrokerContainer
from .delays import DelayService
from .disclosure import DisclosureService, needs_refresh
from .inquiries import InquiryTracker
from .settlement import SettlementProcessor
from .timeframe import ArrivalEstimate, estimate_arrival
from .transfers import TransferService, compute_fee
from .verification import VerificationService, sweep_periodically

__all__ = [
    "BrokerContainer",
    "DelayService",
    "DisclosureService",
    "needs_refresh",
    "InquiryTracker",
    "SettlementProcessor",
    "ArrivalEstimate",
    "estimate_arrival",
    "TransferService",
    "compute_fee",
    "VerificationService",
    "sweep_periodically",
]
