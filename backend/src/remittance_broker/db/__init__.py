"""
Persistence layer: SQLAlchemy tables, connection handling and stores
"""
from .connection import Database
from .orders import OrderStore
from .reference import ReferenceData
from .sessions import InMemorySessionRepository, SessionRepository, SqlSessionRepository

__all__ = [
    "Database",
    "OrderStore",
    "ReferenceData",
    "SessionRepository",
    "SqlSessionRepository",
    "InMemorySessionRepository",
]
