"""
Error kinds, operation results and exception classes for the remittance broker.

Expected business conditions (no matching identity, amount over the limit, ...)
are returned as ``OperationResult`` values. Exceptions are reserved for faults
such as an unavailable database.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorCategory(str, Enum):
    """Coarse grouping of error kinds."""
    VALIDATION = "ValidationError"
    VERIFICATION = "VerificationError"
    BUSINESS_RULE = "BusinessRuleError"
    SYSTEM = "SystemError"


class ErrorKind(str, Enum):
    """Machine-readable failure reasons carried in an OperationResult."""
    VALIDATION_ERROR = "ValidationError"
    NO_MATCH = "NoMatch"
    AMBIGUOUS_MATCH = "AmbiguousMatch"
    EXPIRY_MISMATCH = "ExpiryMismatch"
    CREDENTIAL_EXPIRED = "CredentialExpired"
    VERIFICATION_REQUIRED = "VerificationRequired"
    BENEFICIARY_NOT_FOUND = "BeneficiaryNotFound"
    AMOUNT_EXCEEDS_LIMIT = "AmountExceedsLimit"
    RATE_UNAVAILABLE = "RateUnavailable"
    NOT_REFRESHABLE = "NotRefreshable"
    ORDER_NOT_FOUND = "OrderNotFound"
    SYSTEM_ERROR = "SystemError"

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES[self]


_CATEGORIES: Dict[ErrorKind, ErrorCategory] = {
    ErrorKind.VALIDATION_ERROR: ErrorCategory.VALIDATION,
    ErrorKind.NO_MATCH: ErrorCategory.VERIFICATION,
    ErrorKind.AMBIGUOUS_MATCH: ErrorCategory.VERIFICATION,
    ErrorKind.EXPIRY_MISMATCH: ErrorCategory.VERIFICATION,
    ErrorKind.CREDENTIAL_EXPIRED: ErrorCategory.VERIFICATION,
    ErrorKind.VERIFICATION_REQUIRED: ErrorCategory.VERIFICATION,
    ErrorKind.BENEFICIARY_NOT_FOUND: ErrorCategory.BUSINESS_RULE,
    ErrorKind.AMOUNT_EXCEEDS_LIMIT: ErrorCategory.BUSINESS_RULE,
    ErrorKind.RATE_UNAVAILABLE: ErrorCategory.BUSINESS_RULE,
    ErrorKind.NOT_REFRESHABLE: ErrorCategory.BUSINESS_RULE,
    ErrorKind.ORDER_NOT_FOUND: ErrorCategory.BUSINESS_RULE,
    ErrorKind.SYSTEM_ERROR: ErrorCategory.SYSTEM,
}


class OperationResult(BaseModel):
    """Uniform ``{ok, data}`` / ``{ok, errorKind, message}`` envelope."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool
    data: Optional[Any] = None
    error_kind: Optional[ErrorKind] = Field(default=None, alias="errorKind")
    message: Optional[str] = None

    @classmethod
    def success(cls, data: Any = None, message: Optional[str] = None) -> "OperationResult":
        return cls(ok=True, data=data, message=message)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        data: Any = None,
    ) -> "OperationResult":
        return cls(ok=False, error_kind=kind, message=message, data=data)

    @property
    def category(self) -> Optional[ErrorCategory]:
        return self.error_kind.category if self.error_kind else None

    def to_payload(self) -> Dict[str, Any]:
        """Serialise with camelCase keys, dropping unset failure fields on success."""
        payload = self.model_dump(mode="json", by_alias=True)
        if self.ok:
            payload.pop("errorKind", None)
            if payload.get("message") is None:
                payload.pop("message", None)
        return payload


class RemittanceError(Exception):
    """Base exception for all remittance broker faults."""

    pass


class StorageError(RemittanceError, RuntimeError):
    """Raised when the persistence layer is unavailable or a write fails."""

    pass


__all__ = [
    "ErrorCategory",
    "ErrorKind",
    "OperationResult",
    "RemittanceError",
    "StorageError",
]
