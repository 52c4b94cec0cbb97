"""
Verification session repositories.

``SessionRepository`` is the seam the verification service depends on. The SQL
implementation persists sessions with the orders; the in-memory one keeps them
in process for single-node deployments and tests.
"""
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select, update

from ..models.domain import VerificationSession
from .connection import Database
from .tables import VerificationSessionRow


class SessionRepository(ABC):
    """Storage contract for verification sessions."""

    @abstractmethod
    def replace_active(self, session: VerificationSession) -> VerificationSession:
        """Deactivate every active session of the user, then store ``session`` as active."""

    @abstractmethod
    def find_latest(self, user_id: str) -> Optional[VerificationSession]:
        """Most recently verified session of the user, active or not."""

    @abstractmethod
    def deactivate(self, session_id: int) -> bool:
        """Deactivate one session. Returns False if it was already inactive."""

    @abstractmethod
    def deactivate_user(self, user_id: str) -> int:
        """Deactivate all active sessions of a user. Returns the number changed."""

    @abstractmethod
    def deactivate_expired(self, now: datetime) -> int:
        """Deactivate active sessions with ``expires_at <= now``. Returns the number changed."""

    @abstractmethod
    def list_active(self, now: datetime, user_id: Optional[str] = None) -> List[VerificationSession]:
        """Active sessions that have not yet expired."""


class SqlSessionRepository(SessionRepository):
    def __init__(self, database: Database):
        self.database = database

    def replace_active(self, session: VerificationSession) -> VerificationSession:
        with self.database.session_scope() as db:
            db.execute(
                update(VerificationSessionRow)
                .where(
                    VerificationSessionRow.user_id == session.user_id,
                    VerificationSessionRow.is_active.is_(True),
                )
                .values(is_active=False)
            )
            row = VerificationSessionRow(
                user_id=session.user_id,
                subject_reference=session.subject_reference,
                masked_id=session.masked_id,
                verified_at=session.verified_at,
                expires_at=session.expires_at,
                is_active=True,
            )
            db.add(row)
            db.flush()
            return VerificationSession.model_validate(row)

    def find_latest(self, user_id: str) -> Optional[VerificationSession]:
        stmt = (
            select(VerificationSessionRow)
            .where(VerificationSessionRow.user_id == user_id)
            .order_by(VerificationSessionRow.verified_at.desc(), VerificationSessionRow.id.desc())
            .limit(1)
        )
        with self.database.session_scope() as db:
            row = db.scalars(stmt).first()
            return VerificationSession.model_validate(row) if row else None

    def deactivate(self, session_id: int) -> bool:
        with self.database.session_scope() as db:
            result = db.execute(
                update(VerificationSessionRow)
                .where(
                    VerificationSessionRow.id == session_id,
                    VerificationSessionRow.is_active.is_(True),
                )
                .values(is_active=False)
            )
            return result.rowcount > 0

    def deactivate_user(self, user_id: str) -> int:
        with self.database.session_scope() as db:
            result = db.execute(
                update(VerificationSessionRow)
                .where(
                    VerificationSessionRow.user_id == user_id,
                    VerificationSessionRow.is_active.is_(True),
                )
                .values(is_active=False)
            )
            return result.rowcount

    def deactivate_expired(self, now: datetime) -> int:
        with self.database.session_scope() as db:
            result = db.execute(
                update(VerificationSessionRow)
                .where(
                    VerificationSessionRow.is_active.is_(True),
                    VerificationSessionRow.expires_at <= now,
                )
                .values(is_active=False)
            )
            return result.rowcount

    def list_active(self, now: datetime, user_id: Optional[str] = None) -> List[VerificationSession]:
        stmt = select(VerificationSessionRow).where(
            VerificationSessionRow.is_active.is_(True),
            VerificationSessionRow.expires_at > now,
        )
        if user_id is not None:
            stmt = stmt.where(VerificationSessionRow.user_id == user_id)
        stmt = stmt.order_by(VerificationSessionRow.id)
        with self.database.session_scope() as db:
            return [VerificationSession.model_validate(row) for row in db.scalars(stmt)]


class InMemorySessionRepository(SessionRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: Dict[int, VerificationSession] = {}
        self._next_id = 1

    def replace_active(self, session: VerificationSession) -> VerificationSession:
        with self._lock:
            for existing_id, existing in self._sessions.items():
                if existing.user_id == session.user_id and existing.is_active:
                    self._sessions[existing_id] = existing.model_copy(update={"is_active": False})
            stored = session.model_copy(update={"id": self._next_id, "is_active": True})
            self._sessions[stored.id] = stored
            self._next_id += 1
            return stored

    def find_latest(self, user_id: str) -> Optional[VerificationSession]:
        with self._lock:
            candidates = [s for s in self._sessions.values() if s.user_id == user_id]
        if not candidates:
            return None
        return max(candidates, key=lambda s: (s.verified_at, s.id))

    def deactivate(self, session_id: int) -> bool:
        with self._lock:
            existing = self._sessions.get(session_id)
            if existing is None or not existing.is_active:
                return False
            self._sessions[session_id] = existing.model_copy(update={"is_active": False})
            return True

    def deactivate_user(self, user_id: str) -> int:
        return self._deactivate_where(lambda s: s.user_id == user_id)

    def deactivate_expired(self, now: datetime) -> int:
        return self._deactivate_where(lambda s: s.expires_at <= now)

    def list_active(self, now: datetime, user_id: Optional[str] = None) -> List[VerificationSession]:
        with self._lock:
            return [
                s
                for s in self._sessions.values()
                if s.is_active and s.expires_at > now and (user_id is None or s.user_id == user_id)
            ]

    def _deactivate_where(self, predicate) -> int:
        changed = 0
        with self._lock:
            for session_id, existing in self._sessions.items():
                if existing.is_active and predicate(existing):
                    self._sessions[session_id] = existing.model_copy(update={"is_active": False})
                    changed += 1
        return changed
