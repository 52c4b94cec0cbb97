"""
Order store: persistence for transfer orders and their status history.

Every mutation is a single-row conditional UPDATE inside one transaction, so
concurrent writers never lose an increment or overwrite a status they did not
read.
"""
from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from ..models.domain import TransferOrder
from ..models.enums import OrderStatus, TransferMode, UpdateSource
from .connection import Database
from .tables import OrderStatusHistoryRow, TransferOrderRow

logger = structlog.get_logger(__name__)


def _to_model(row: TransferOrderRow) -> TransferOrder:
    return TransferOrder.model_validate(row)


class OrderStore:
    """Create, read and conditionally update transfer orders."""

    def __init__(self, database: Database):
        self.database = database

    def create(self, order: TransferOrder, reason: str = "Order created") -> TransferOrder:
        """Insert a new order with an initial PENDING history entry."""
        with self.database.session_scope() as session:
            row = TransferOrderRow(
                order_number=order.order_number,
                user_id=order.user_id,
                send_amount=order.send_amount,
                fee_amount=order.fee_amount,
                total_amount=order.total_amount,
                exchange_rate=order.exchange_rate,
                received_amount=order.received_amount,
                transfer_mode=order.transfer_mode.value,
                country=order.country,
                currency=order.currency,
                beneficiary_id=order.beneficiary_id,
                beneficiary_name=order.beneficiary_name,
                displayed_status=order.displayed_status.value,
                true_status=order.true_status.value,
                payment_token=order.payment_token,
                payment_link=order.payment_link,
                callback_provider=order.callback_provider.value,
                created_at=order.created_at,
                updated_at=order.created_at,
                inquiry_count=0,
                escalation_level=0,
            )
            row.status_history.append(
                OrderStatusHistoryRow(
                    status=OrderStatus.PENDING.value,
                    timestamp=order.created_at,
                    reason=reason,
                    actor=UpdateSource.SYSTEM.value,
                )
            )
            session.add(row)
            session.flush()
            created = _to_model(row)

        logger.info("order_persisted", order_number=created.order_number)
        return created

    def get(self, user_id: str, order_number: str) -> Optional[TransferOrder]:
        with self.database.session_scope() as session:
            row = session.scalars(
                select(TransferOrderRow).where(
                    TransferOrderRow.user_id == user_id,
                    TransferOrderRow.order_number == order_number,
                )
            ).first()
            return _to_model(row) if row else None

    def get_by_number(self, order_number: str) -> Optional[TransferOrder]:
        with self.database.session_scope() as session:
            return self._load(session, order_number)

    def list_for_user(
        self,
        user_id: str,
        transfer_mode: Optional[TransferMode] = None,
        country: Optional[str] = None,
        currency: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        limit: int = 10,
    ) -> List[TransferOrder]:
        """Most recent orders first, optionally filtered."""
        stmt = select(TransferOrderRow).where(TransferOrderRow.user_id == user_id)
        if transfer_mode is not None:
            stmt = stmt.where(TransferOrderRow.transfer_mode == transfer_mode.value)
        if country:
            stmt = stmt.where(TransferOrderRow.country == country.upper())
        if currency:
            stmt = stmt.where(TransferOrderRow.currency == currency.upper())
        if created_from is not None:
            stmt = stmt.where(TransferOrderRow.created_at >= created_from)
        if created_to is not None:
            stmt = stmt.where(TransferOrderRow.created_at < created_to)
        stmt = stmt.order_by(TransferOrderRow.created_at.desc(), TransferOrderRow.id.desc()).limit(limit)

        with self.database.session_scope() as session:
            return [_to_model(row) for row in session.scalars(stmt)]

    def list_stale_pending(self, user_id: str, older_than: datetime) -> List[TransferOrder]:
        """Orders still displayed PENDING that were created before ``older_than``."""
        stmt = (
            select(TransferOrderRow)
            .where(
                TransferOrderRow.user_id == user_id,
                TransferOrderRow.displayed_status == OrderStatus.PENDING.value,
                TransferOrderRow.created_at < older_than,
            )
            .order_by(TransferOrderRow.created_at.asc())
        )
        with self.database.session_scope() as session:
            return [_to_model(row) for row in session.scalars(stmt)]

    def record_inquiry(self, order_number: str, now: datetime) -> Optional[TransferOrder]:
        """Atomically bump the inquiry counter and stamp the inquiry time."""
        with self.database.session_scope() as session:
            result = session.execute(
                update(TransferOrderRow)
                .where(TransferOrderRow.order_number == order_number)
                .values(
                    inquiry_count=TransferOrderRow.inquiry_count + 1,
                    last_inquiry_at=now,
                )
            )
            if result.rowcount == 0:
                return None
            return self._load(session, order_number)

    def set_true_status(
        self,
        order_number: str,
        status: OrderStatus,
        now: datetime,
        failure_reason: Optional[str] = None,
        reason: Optional[str] = None,
        actor: UpdateSource = UpdateSource.BANK,
    ) -> Optional[TransferOrder]:
        """Record the settlement outcome. Never touches the displayed status."""
        with self.database.session_scope() as session:
            order_id = session.scalar(
                select(TransferOrderRow.id).where(TransferOrderRow.order_number == order_number)
            )
            if order_id is None:
                return None
            session.execute(
                update(TransferOrderRow)
                .where(TransferOrderRow.id == order_id)
                .values(true_status=status.value, failure_reason=failure_reason, updated_at=now)
            )
            session.add(
                OrderStatusHistoryRow(
                    order_id=order_id,
                    status=status.value,
                    timestamp=now,
                    reason=reason or f"Settlement reported {status.value}",
                    actor=actor.value,
                )
            )
            session.flush()
            return self._load(session, order_number)

    def transition_displayed(
        self,
        order_number: str,
        expected: OrderStatus,
        new: OrderStatus,
        now: datetime,
        reason: str,
        actor: UpdateSource = UpdateSource.SYSTEM,
    ) -> Optional[TransferOrder]:
        """
        Compare-and-set the displayed status and append a history entry.

        Returns:
            The updated order, or None when the order is missing or its
            displayed status is no longer ``expected``
        """
        with self.database.session_scope() as session:
            result = session.execute(
                update(TransferOrderRow)
                .where(
                    TransferOrderRow.order_number == order_number,
                    TransferOrderRow.displayed_status == expected.value,
                )
                .values(displayed_status=new.value, updated_at=now)
            )
            if result.rowcount == 0:
                return None
            order_id = session.scalar(
                select(TransferOrderRow.id).where(TransferOrderRow.order_number == order_number)
            )
            session.add(
                OrderStatusHistoryRow(
                    order_id=order_id,
                    status=new.value,
                    timestamp=now,
                    reason=reason,
                    actor=actor.value,
                )
            )
            session.flush()
            return self._load(session, order_number)

    def escalate(
        self,
        order_number: str,
        level: int,
        reason: str,
        summary: Optional[str],
        now: datetime,
    ) -> Optional[TransferOrder]:
        """Raise the escalation level. A lower requested level keeps the current one."""
        with self.database.session_scope() as session:
            result = session.execute(
                update(TransferOrderRow)
                .where(TransferOrderRow.order_number == order_number)
                .values(
                    escalation_level=case(
                        (TransferOrderRow.escalation_level < level, level),
                        else_=TransferOrderRow.escalation_level,
                    ),
                    escalation_reason=reason,
                    conversation_summary=summary,
                    escalated_at=now,
                    updated_at=now,
                )
            )
            if result.rowcount == 0:
                return None
            return self._load(session, order_number)

    @staticmethod
    def _load(session: Session, order_number: str) -> Optional[TransferOrder]:
        session.expire_all()
        row = session.scalars(
            select(TransferOrderRow).where(TransferOrderRow.order_number == order_number)
        ).first()
        return _to_model(row) if row else None
