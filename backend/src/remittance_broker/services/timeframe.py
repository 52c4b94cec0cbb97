"""
Delivery timeframe estimation.

Pure functions of an order and the current time: expected arrival by transfer
mode and destination, weekend push-back, and delay classification against a
fixed threshold that is independent of the expected arrival.
"""
from datetime import datetime, timedelta, timezone, tzinfo
from typing import List

from pydantic import BaseModel

from ..core.clock import ensure_utc
from ..models.domain import TransferOrder
from ..models.enums import TransferMode

GULF_COUNTRIES = frozenset({"AE", "SA", "KW", "QA", "BH", "OM"})
SOUTH_ASIA_COUNTRIES = frozenset({"IN", "PK", "BD", "LK"})
WESTERN_COUNTRIES = frozenset({"US", "CA", "GB", "AU"})

MODE_DURATIONS = {
    TransferMode.CASH_PICKUP: timedelta(minutes=30),
    TransferMode.MOBILE_WALLET: timedelta(minutes=15),
    TransferMode.UPI: timedelta(minutes=6),
}

BASE_DELAY_REASONS = (
    "Beneficiary bank processing delays",
    "Weekend or public holiday processing schedule",
    "International banking cut-off times",
    "Additional compliance checks",
)

SATURDAY = 5
SUNDAY = 6


class ArrivalEstimate(BaseModel):
    expected_at: datetime
    elapsed_minutes: int
    is_delayed: bool
    delay_minutes: int
    threshold_minutes: int


def base_duration(mode: TransferMode, country: str) -> timedelta:
    if mode != TransferMode.BANK_TRANSFER:
        return MODE_DURATIONS[mode]
    country = country.upper()
    if country in GULF_COUNTRIES:
        return timedelta(hours=1)
    if country in SOUTH_ASIA_COUNTRIES:
        return timedelta(hours=2)
    if country in WESTERN_COUNTRIES:
        return timedelta(hours=4)
    return timedelta(hours=6)


def expected_arrival(
    created_at: datetime,
    mode: TransferMode,
    country: str,
    tz: tzinfo = timezone.utc,
) -> datetime:
    """``created_at`` plus the base duration, pushed past a Saturday or Sunday in ``tz``."""
    expected = ensure_utc(created_at) + base_duration(mode, country)
    weekday = expected.astimezone(tz).weekday()
    if weekday == SUNDAY:
        expected += timedelta(days=1)
    elif weekday == SATURDAY:
        expected += timedelta(days=2)
    return expected


def elapsed_minutes(created_at: datetime, now: datetime) -> int:
    """Whole minutes since creation, never negative."""
    return max(0, int((ensure_utc(now) - ensure_utc(created_at)).total_seconds() // 60))


def estimate_arrival(
    order: TransferOrder,
    now: datetime,
    threshold_minutes: int = 10,
    tz: tzinfo = timezone.utc,
) -> ArrivalEstimate:
    elapsed = elapsed_minutes(order.created_at, now)
    delayed = elapsed > threshold_minutes
    return ArrivalEstimate(
        expected_at=expected_arrival(order.created_at, order.transfer_mode, order.country, tz),
        elapsed_minutes=elapsed,
        is_delayed=delayed,
        delay_minutes=elapsed - threshold_minutes if delayed else 0,
        threshold_minutes=threshold_minutes,
    )


def delay_reasons(order: TransferOrder) -> List[str]:
    """Likely causes of a delay for this destination and mode."""
    reasons = list(BASE_DELAY_REASONS)
    if order.country.upper() in WESTERN_COUNTRIES:
        reasons.append("Time zone differences affecting processing")
    if order.transfer_mode == TransferMode.BANK_TRANSFER:
        reasons.append("SWIFT network processing time")
    return reasons


def format_local(moment: datetime, tz: tzinfo) -> str:
    return moment.astimezone(tz).strftime("%b %d, %Y, %I:%M %p")


def timeframe_message(estimate: ArrivalEstimate, tz: tzinfo = timezone.utc) -> str:
    message = (
        f"Your transaction was made {estimate.elapsed_minutes} minutes ago. "
        f"It is expected to arrive by {format_local(estimate.expected_at, tz)}."
    )
    if estimate.is_delayed:
        message += " The delay is due to the beneficiary bank's processing schedule."
    return message
