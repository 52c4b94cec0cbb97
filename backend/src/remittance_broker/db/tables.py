"""
SQLAlchemy ORM tables for transfer orders, verification sessions and
reference data.
"""
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TypeDecorator,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """Stores naive UTC and hands back timezone-aware UTC datetimes."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransferOrderRow(Base):
    """
    Transfer order with its dual status.

    ``displayed_status`` is what the customer sees; ``true_status`` is what
    settlement reported. They only converge through an explicit refresh.
    """
    __tablename__ = "transfer_orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_number = Column(String(40), nullable=False, unique=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)

    send_amount = Column(Numeric(14, 2), nullable=False)
    fee_amount = Column(Numeric(14, 2), nullable=False)
    total_amount = Column(Numeric(14, 2), nullable=False)
    exchange_rate = Column(Numeric(18, 6), nullable=False)
    received_amount = Column(Numeric(18, 2), nullable=False)

    transfer_mode = Column(String(20), nullable=False)
    country = Column(String(2), nullable=False)
    currency = Column(String(3), nullable=False)
    beneficiary_id = Column(Integer, nullable=False)
    beneficiary_name = Column(String(200), nullable=False)

    displayed_status = Column(String(20), nullable=False, default="PENDING")
    true_status = Column(String(20), nullable=False, default="PENDING")
    failure_reason = Column(Text, nullable=True)

    payment_token = Column(String(64), nullable=True)
    payment_link = Column(Text, nullable=True)
    callback_provider = Column(String(10), nullable=False, default="voice")

    created_at = Column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at = Column(UTCDateTime, nullable=True)

    inquiry_count = Column(Integer, nullable=False, default=0)
    last_inquiry_at = Column(UTCDateTime, nullable=True)
    escalation_level = Column(Integer, nullable=False, default=0)
    escalation_reason = Column(String(40), nullable=True)
    conversation_summary = Column(Text, nullable=True)
    escalated_at = Column(UTCDateTime, nullable=True)

    status_history = relationship(
        "OrderStatusHistoryRow",
        back_populates="order",
        order_by="OrderStatusHistoryRow.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_transfer_orders_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<TransferOrder {self.order_number} displayed={self.displayed_status}>"


class OrderStatusHistoryRow(Base):
    """Append-only audit entry for an order status change."""
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("transfer_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    timestamp = Column(UTCDateTime, nullable=False, default=_utcnow)
    reason = Column(Text, nullable=True)
    actor = Column(String(20), nullable=False, default="system")

    order = relationship("TransferOrderRow", back_populates="status_history")


class VerificationSessionRow(Base):
    __tablename__ = "verification_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    subject_reference = Column(String(64), nullable=False)
    masked_id = Column(String(40), nullable=False)
    verified_at = Column(UTCDateTime, nullable=False)
    expires_at = Column(UTCDateTime, nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_verification_sessions_user_active", "user_id", "is_active"),
    )


class BeneficiaryRow(Base):
    """Registered recipient. Carries the identity card checked at verification."""
    __tablename__ = "beneficiaries"

    user_id = Column(String(64), primary_key=True)
    id = Column(Integer, primary_key=True, autoincrement=False)
    title = Column(String(200), nullable=False)
    name = Column(String(200), nullable=False)
    country = Column(String(2), nullable=False)
    currency = Column(String(3), nullable=False)
    # Comma-separated TransferMode values, first one is the default
    transfer_modes = Column(String(100), nullable=False, default="BANK_TRANSFER")
    account_number = Column(String(64), nullable=False)
    bank_name = Column(String(200), nullable=False)
    id_number = Column(String(32), nullable=True, index=True)
    id_expiry_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class ExchangeRateRow(Base):
    __tablename__ = "exchange_rates"

    from_currency = Column(String(3), primary_key=True)
    to_currency = Column(String(3), primary_key=True)
    rate = Column(Numeric(18, 6), nullable=False)
    updated_at = Column(UTCDateTime, nullable=True, default=_utcnow)


class SuggestedAmountRow(Base):
    __tablename__ = "suggested_amounts"

    currency = Column(String(3), primary_key=True)
    # Comma-separated decimal amounts in the home currency
    amounts = Column(String(200), nullable=False, default="")
