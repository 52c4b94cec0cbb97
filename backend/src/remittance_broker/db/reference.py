"""
Reference data: beneficiaries (with identity cards), exchange rates and
suggested send amounts.
"""
import re
from typing import List, Optional

from sqlalchemy import func, select

from ..models.domain import Beneficiary, ExchangeRate, SuggestedAmount
from .connection import Database
from .tables import BeneficiaryRow, ExchangeRateRow, SuggestedAmountRow


def _beneficiary(row: BeneficiaryRow) -> Beneficiary:
    return Beneficiary.model_validate(row)


class ReferenceData:
    """Read and register the records the transfer engine quotes against."""

    def __init__(self, database: Database):
        self.database = database

    # Beneficiaries

    def list_beneficiaries(self, user_id: str, active_only: bool = True) -> List[Beneficiary]:
        stmt = select(BeneficiaryRow).where(BeneficiaryRow.user_id == user_id)
        if active_only:
            stmt = stmt.where(BeneficiaryRow.is_active.is_(True))
        stmt = stmt.order_by(BeneficiaryRow.id)
        with self.database.session_scope() as session:
            return [_beneficiary(row) for row in session.scalars(stmt)]

    def get_beneficiary(self, user_id: str, beneficiary_id: int, active_only: bool = True) -> Optional[Beneficiary]:
        stmt = select(BeneficiaryRow).where(
            BeneficiaryRow.user_id == user_id,
            BeneficiaryRow.id == beneficiary_id,
        )
        if active_only:
            stmt = stmt.where(BeneficiaryRow.is_active.is_(True))
        with self.database.session_scope() as session:
            row = session.scalars(stmt).first()
            return _beneficiary(row) if row else None

    def find_beneficiaries_by_name(self, user_id: str, fragment: str) -> List[Beneficiary]:
        """Active beneficiaries whose name contains ``fragment``, case-insensitively."""
        stmt = (
            select(BeneficiaryRow)
            .where(
                BeneficiaryRow.user_id == user_id,
                BeneficiaryRow.is_active.is_(True),
                func.lower(BeneficiaryRow.name).contains(fragment.lower(), autoescape=True),
            )
            .order_by(BeneficiaryRow.id)
        )
        with self.database.session_scope() as session:
            return [_beneficiary(row) for row in session.scalars(stmt)]

    def find_identities(self, user_id: str, last_four: str) -> List[Beneficiary]:
        """
        Identity records whose card number ends in ``-XXXX-<last_four>``.

        LIKE narrows the candidates; the regex enforces that the four
        preceding characters are digits.
        """
        pattern = re.compile(rf"-\d{{4}}-{re.escape(last_four)}$")
        stmt = (
            select(BeneficiaryRow)
            .where(
                BeneficiaryRow.user_id == user_id,
                BeneficiaryRow.id_number.like(f"%-____-{last_four}"),
            )
            .order_by(BeneficiaryRow.id)
        )
        with self.database.session_scope() as session:
            rows = session.scalars(stmt).all()
            return [_beneficiary(row) for row in rows if pattern.search(row.id_number or "")]

    def upsert_beneficiary(self, beneficiary: Beneficiary) -> Beneficiary:
        with self.database.session_scope() as session:
            session.merge(
                BeneficiaryRow(
                    user_id=beneficiary.user_id,
                    id=beneficiary.id,
                    title=beneficiary.title,
                    name=beneficiary.name,
                    country=beneficiary.country,
                    currency=beneficiary.currency,
                    transfer_modes=",".join(mode.value for mode in beneficiary.transfer_modes),
                    account_number=beneficiary.account_number,
                    bank_name=beneficiary.bank_name,
                    id_number=beneficiary.id_number,
                    id_expiry_date=beneficiary.id_expiry_date,
                    is_active=beneficiary.is_active,
                )
            )
        return beneficiary

    # Rates and amounts

    def get_rate(self, from_currency: str, to_currency: str) -> Optional[ExchangeRate]:
        with self.database.session_scope() as session:
            row = session.get(ExchangeRateRow, (from_currency.upper(), to_currency.upper()))
            return ExchangeRate.model_validate(row) if row else None

    def upsert_rate(self, rate: ExchangeRate) -> ExchangeRate:
        with self.database.session_scope() as session:
            session.merge(
                ExchangeRateRow(
                    from_currency=rate.from_currency.upper(),
                    to_currency=rate.to_currency.upper(),
                    rate=rate.rate,
                    updated_at=rate.updated_at,
                )
            )
        return rate

    def get_suggested_amounts(self, currency: str) -> Optional[SuggestedAmount]:
        with self.database.session_scope() as session:
            row = session.get(SuggestedAmountRow, currency.upper())
            return SuggestedAmount.model_validate(row) if row else None

    def upsert_suggested_amounts(self, suggested: SuggestedAmount) -> SuggestedAmount:
        with self.database.session_scope() as session:
            session.merge(
                SuggestedAmountRow(
                    currency=suggested.currency.upper(),
                    amounts=",".join(str(amount) for amount in suggested.amounts),
                )
            )
        return suggested
