"""
Wiring of the database, repositories and services for one process.
"""
from __future__ import annotations

from typing import Optional

from ..core.clock import Clock, utc_now
from ..core.config import Settings, load_settings
from ..db.connection import Database
from ..db.orders import OrderStore
from ..db.reference import ReferenceData
from ..db.sessions import InMemorySessionRepository, SessionRepository, SqlSessionRepository
from .delays import DelayService
from .disclosure import DisclosureService
from .inquiries import InquiryTracker
from .settlement import SettlementProcessor
from .transfers import TransferService
from .verification import VerificationService


class BrokerContainer:
    """Builds every service over a shared database and clock."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        database: Optional[Database] = None,
        sessions: Optional[SessionRepository] = None,
        clock: Clock = utc_now,
    ):
        self.settings = settings or load_settings()
        self.clock = clock
        self.database = database or Database(self.settings.database_url, echo=self.settings.database_echo)
        self.database.create_all()

        self.orders = OrderStore(self.database)
        self.reference = ReferenceData(self.database)
        if sessions is None:
            sessions = (
                InMemorySessionRepository()
                if self.settings.session_backend == "memory"
                else SqlSessionRepository(self.database)
            )
        self.sessions = sessions

        self.verification = VerificationService(self.settings, self.reference, self.sessions, clock)
        self.tracker = InquiryTracker(self.settings, self.orders, self.verification, clock)
        self.transfers = TransferService(self.settings, self.orders, self.reference, self.verification, clock)
        self.disclosure = DisclosureService(self.settings, self.orders, self.verification, self.tracker, clock)
        self.delays = DelayService(self.settings, self.orders, self.verification, self.tracker, clock)
        self.settlement = SettlementProcessor(self.orders, self.disclosure, clock)

    def close(self) -> None:
        self.database.dispose()
