"""
Verification session manager.

Checks the last four digits and expiry date of a customer's identity card
against registered identity records and issues a short-lived session. Order
reads, refreshes and transfers all require an active session.
"""
from __future__ import annotations

import asyncio
import re
import threading
import zlib
from datetime import datetime, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

import structlog

from ..core.clock import Clock, utc_now
from ..core.config import Settings
from ..core.errors import ErrorKind, OperationResult, StorageError
from ..core.observability import VERIFICATION_OUTCOMES, mask_identifier
from ..db.reference import ReferenceData
from ..db.sessions import SessionRepository
from ..models.domain import Beneficiary, VerificationSession
from ..models.enums import VerificationState

logger = structlog.get_logger(__name__)

LAST_FOUR_PATTERN = re.compile(r"^\d{4}$")
EXPIRY_PATTERN = re.compile(r"^\d{2}/\d{2}/\d{4}$")

# Session writes are serialized per user through a fixed pool of striped locks
LOCK_STRIPES = 64

VERIFICATION_FAILED_MESSAGE = "Identity verification failed"
VERIFICATION_REQUIRED_MESSAGE = (
    "Identity verification required. Please provide the last 4 digits of your "
    "Emirates ID and its expiry date in DD/MM/YYYY format."
)

# Reason codes reported alongside each failing error kind
FAILURE_REASONS = {
    ErrorKind.NO_MATCH: "NO_MATCH",
    ErrorKind.AMBIGUOUS_MATCH: "MULTIPLE_MATCHES",
    ErrorKind.EXPIRY_MISMATCH: "EXPIRY_DATE_MISMATCH",
    ErrorKind.CREDENTIAL_EXPIRED: "EXPIRED_ID",
}


def format_masked_id(id_number: Optional[str]) -> str:
    """Mask an identity card number down to its last four digits."""
    if not id_number or len(id_number) < 4:
        return "****"
    return f"784-****-****-{id_number[-4:]}"


def verification_required(action: str = "this request") -> OperationResult:
    return OperationResult.failure(
        ErrorKind.VERIFICATION_REQUIRED,
        VERIFICATION_REQUIRED_MESSAGE,
        data={"requiresVerification": True, "action": action},
    )


class VerificationService:
    """Issue, inspect and expire verification sessions."""

    def __init__(
        self,
        settings: Settings,
        reference: ReferenceData,
        sessions: SessionRepository,
        clock: Clock = utc_now,
    ):
        self.settings = settings
        self.reference = reference
        self.sessions = sessions
        self.clock = clock
        self.ttl = timedelta(seconds=settings.verification_ttl_seconds)
        self._tz = ZoneInfo(settings.business_timezone)
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(LOCK_STRIPES)]

    def verify(self, user_id: str, last_four_digits: str, expiry_date: str) -> OperationResult:
        """
        Verify a customer and open a fresh session.

        Args:
            user_id: Caller identity
            last_four_digits: Last four digits of the identity card number
            expiry_date: Card expiry as DD/MM/YYYY

        Returns:
            OperationResult with the masked identity summary and session window
        """
        if not isinstance(last_four_digits, str) or not LAST_FOUR_PATTERN.match(last_four_digits):
            return self._invalid("lastFourDigits must be exactly 4 digits")
        if not isinstance(expiry_date, str) or not EXPIRY_PATTERN.match(expiry_date):
            return self._invalid("expiryDate must be in DD/MM/YYYY format")
        try:
            provided_expiry = datetime.strptime(expiry_date, "%d/%m/%Y").date()
        except ValueError:
            return self._invalid("expiryDate is not a valid calendar date")

        matches = self.reference.find_identities(user_id, last_four_digits)
        if not matches:
            return self._failed(ErrorKind.NO_MATCH, user_id)
        if len(matches) > 1:
            return self._failed(ErrorKind.AMBIGUOUS_MATCH, user_id, matchCount=len(matches))

        subject = matches[0]
        if subject.id_expiry_date != provided_expiry:
            return self._failed(ErrorKind.EXPIRY_MISMATCH, user_id)

        now = self.clock()
        if subject.id_expiry_date < now.astimezone(self._tz).date():
            return self._failed(ErrorKind.CREDENTIAL_EXPIRED, user_id)

        session = self._open_session(user_id, subject, now)
        VERIFICATION_OUTCOMES.labels(outcome="VERIFIED").inc()
        logger.info(
            "verification_succeeded",
            user=mask_identifier(user_id),
            subject=mask_identifier(session.subject_reference),
            expires_at=session.expires_at.isoformat(),
        )
        return OperationResult.success(
            {
                "verified": True,
                "beneficiary": {
                    "id": subject.id,
                    "name": subject.name,
                    "country": subject.country,
                    "currency": subject.currency,
                    "bankName": subject.bank_name,
                    "maskedId": session.masked_id,
                },
                "verifiedAt": session.verified_at.isoformat(),
                "expiresAt": session.expires_at.isoformat(),
                "validForSeconds": int(self.ttl.total_seconds()),
            },
            message="Identity verified successfully",
        )

    def status(self, user_id: str) -> OperationResult:
        """Report whether the user holds a usable session."""
        now = self.clock()
        latest = self.sessions.find_latest(user_id)

        if latest is None:
            return self._status(VerificationState.NO_VERIFICATION, "No verification found for this user")
        if now >= latest.expires_at:
            if latest.is_active:
                self.sessions.deactivate(latest.id)
            return self._status(
                VerificationState.VERIFICATION_EXPIRED,
                "Verification has expired. Please verify again.",
            )
        if not latest.is_active:
            return self._status(VerificationState.VERIFICATION_INACTIVE, "Verification is no longer active")

        return OperationResult.success(
            {
                "verified": True,
                "reason": VerificationState.VERIFIED.value,
                "requiresVerification": False,
                "maskedId": latest.masked_id,
                "verifiedAt": latest.verified_at.isoformat(),
                "expiresAt": latest.expires_at.isoformat(),
                "timeRemainingSeconds": latest.seconds_remaining(now),
            },
            message="User is verified",
        )

    def active_session(self, user_id: str) -> Optional[VerificationSession]:
        """Return the user's live session, deactivating it lazily if it has expired."""
        latest = self.sessions.find_latest(user_id)
        if latest is None or not latest.is_active:
            return None
        if not latest.is_valid(self.clock()):
            self.sessions.deactivate(latest.id)
            logger.info("verification_expired", user=mask_identifier(user_id))
            return None
        return latest

    def clear(self, user_id: str) -> OperationResult:
        cleared = self.sessions.deactivate_user(user_id)
        logger.info("verification_cleared", user=mask_identifier(user_id), sessions=cleared)
        return OperationResult.success({"cleared": cleared}, message="Verification cleared")

    def sweep_expired(self) -> int:
        """Deactivate every expired session. Returns how many were deactivated."""
        swept = self.sessions.deactivate_expired(self.clock())
        if swept:
            logger.info("verification_sessions_swept", count=swept)
        return swept

    def _open_session(self, user_id: str, subject: Beneficiary, now: datetime) -> VerificationSession:
        candidate = VerificationSession(
            user_id=user_id,
            subject_reference=str(subject.id),
            masked_id=format_masked_id(subject.id_number),
            verified_at=now,
            expires_at=now + self.ttl,
        )
        with self._user_lock(user_id):
            return self.sessions.replace_active(candidate)

    def _user_lock(self, user_id: str) -> threading.Lock:
        return self._locks[zlib.crc32(user_id.encode("utf-8")) % len(self._locks)]

    def _failed(self, kind: ErrorKind, user_id: str, **extra) -> OperationResult:
        reason = FAILURE_REASONS[kind]
        VERIFICATION_OUTCOMES.labels(outcome=reason).inc()
        logger.info("verification_failed", user=mask_identifier(user_id), reason=reason)
        return OperationResult.failure(
            kind,
            VERIFICATION_FAILED_MESSAGE,
            data={"verified": False, "reason": reason, **extra},
        )

    @staticmethod
    def _invalid(message: str) -> OperationResult:
        VERIFICATION_OUTCOMES.labels(outcome="INVALID_INPUT").inc()
        return OperationResult.failure(ErrorKind.VALIDATION_ERROR, message)

    @staticmethod
    def _status(state: VerificationState, message: str) -> OperationResult:
        return OperationResult.success(
            {"verified": False, "reason": state.value, "requiresVerification": True},
            message=message,
        )


async def sweep_periodically(service: VerificationService, interval_seconds: float) -> None:
    """Run ``sweep_expired`` every ``interval_seconds`` until cancelled."""
    logger.info("verification_sweeper_started", interval_seconds=interval_seconds)
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(service.sweep_expired)
        except StorageError as exc:
            logger.error("verification_sweep_failed", error=str(exc))
