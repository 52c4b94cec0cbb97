"""Pytest configuration and shared fixtures for remittance broker tests."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from remittance_broker.core.config import load_settings
from remittance_broker.models import (
    Beneficiary,
    ExchangeRate,
    SuggestedAmount,
    TransferMode,
    TransferRequest,
)
from remittance_broker.services.container import BrokerContainer

# Wednesday 12:00 in Dubai
WEDNESDAY_NOON_DUBAI = datetime(2025, 1, 15, 8, 0, tzinfo=timezone.utc)

USER = "agent1"
OTHER_USER = "agent2"


class FakeClock:
    """Controllable clock passed to services in place of ``utc_now``."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, moment: datetime) -> datetime:
        self.now = moment
        return self.now


BENEFICIARIES = [
    Beneficiary(
        id=1, user_id=USER, title="Brother", name="Li Wei", country="CN", currency="CNY",
        transfer_modes=[TransferMode.BANK_TRANSFER, TransferMode.MOBILE_WALLET],
        account_number="6222020200112233", bank_name="ICBC",
        id_number="784-1985-1111-4321", id_expiry_date=date(2027, 3, 31),
    ),
    Beneficiary(
        id=2, user_id=USER, title="Supplier", name="Ahmed Al Mansouri", country="SA", currency="SAR",
        transfer_modes=[TransferMode.BANK_TRANSFER, TransferMode.CASH_PICKUP],
        account_number="SA0380000000608010167519", bank_name="Al Rajhi Bank",
        id_number="784-1990-2222-5555", id_expiry_date=date(2026, 12, 31),
    ),
    Beneficiary(
        id=3, user_id=USER, title="Sister", name="Priya Sharma", country="IN", currency="INR",
        transfer_modes=[TransferMode.UPI, TransferMode.BANK_TRANSFER],
        account_number="50100234567890", bank_name="HDFC Bank",
        id_number="784-1988-3333-7777", id_expiry_date=date(2026, 6, 30),
    ),
    Beneficiary(
        id=4, user_id=USER, title="Cousin", name="Rahul Sharma", country="IN", currency="INR",
        transfer_modes=[TransferMode.BANK_TRANSFER],
        account_number="50100987654321", bank_name="HDFC Bank",
        id_number="784-1992-4444-7777", id_expiry_date=date(2026, 6, 30),
    ),
    Beneficiary(
        id=5, user_id=USER, title="Landlord", name="James Carter", country="GB", currency="GBP",
        transfer_modes=[TransferMode.BANK_TRANSFER],
        account_number="GB29NWBK60161331926819", bank_name="NatWest",
        id_number="784-1970-5555-9999", id_expiry_date=date(2024, 12, 31),
    ),
    Beneficiary(
        id=6, user_id=USER, title="Former tenant", name="Imran Khan", country="PK", currency="PKR",
        transfer_modes=[TransferMode.BANK_TRANSFER],
        account_number="PK36SCBL0000001123456702", bank_name="Standard Chartered",
        is_active=False,
    ),
    Beneficiary(
        id=7, user_id=USER, title="Friend", name="Lucas Silva", country="BR", currency="BRL",
        transfer_modes=[TransferMode.BANK_TRANSFER],
        account_number="BR1800360305000010009795493C1", bank_name="Banco do Brasil",
    ),
    Beneficiary(
        id=1, user_id=OTHER_USER, title="Mother", name="Maria Santos", country="PH", currency="PHP",
        transfer_modes=[TransferMode.CASH_PICKUP],
        account_number="PH00112233", bank_name="BDO",
        id_number="784-1991-6666-4321", id_expiry_date=date(2028, 1, 1),
    ),
]

RATES = {
    "CNY": "1.95",
    "SAR": "1.02",
    "INR": "22.65",
    "GBP": "0.215",
    "PKR": "75.8",
    "PHP": "15.6",
}


@pytest.fixture
def clock():
    return FakeClock(WEDNESDAY_NOON_DUBAI)


@pytest.fixture
def settings(tmp_path):
    return load_settings(
        database_url=f"sqlite:///{tmp_path / 'remittance.db'}",
        log_format="console",
    )


@pytest.fixture
def container(settings, clock):
    container = BrokerContainer(settings, clock=clock)
    for beneficiary in BENEFICIARIES:
        container.reference.upsert_beneficiary(beneficiary)
    for currency, rate in RATES.items():
        container.reference.upsert_rate(
            ExchangeRate(from_currency="AED", to_currency=currency, rate=Decimal(rate), updated_at=clock())
        )
    container.reference.upsert_suggested_amounts(
        SuggestedAmount(currency="AED", amounts=[Decimal("100"), Decimal("500"), Decimal("1000"), Decimal("2000")])
    )
    yield container
    container.close()


@pytest.fixture
def verified(container):
    """Active verification session for the default user."""
    result = container.verification.verify(USER, "4321", "31/03/2027")
    assert result.ok, result.message
    return result


def _place_order(container, beneficiary_id=2, amount="1000", transfer_mode=None, user_id=USER):
    """Execute a transfer and return the persisted order."""
    result = container.transfers.transfer(
        user_id,
        TransferRequest(
            beneficiary_id=beneficiary_id,
            send_amount=Decimal(amount),
            transfer_mode=transfer_mode,
        ),
    )
    assert result.ok, result.message
    return container.orders.get_by_number(result.data["orderNo"])


@pytest.fixture
def place_order(container):
    """Callable placing an order through the transfer service."""
    def _place(**kwargs):
        return _place_order(container, **kwargs)
    return _place


@pytest.fixture
def order(container, verified):
    """A 1000 AED bank transfer to Saudi Arabia, still PENDING."""
    return _place_order(container)
