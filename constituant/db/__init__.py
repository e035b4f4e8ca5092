"""
Database package for Constituant.

Provides ORM models, session management, and repository pattern
for data persistence.
"""

from .models import Base, BillModel, PendingBillModel, VoteModel, ImportLogModel
from .session import Database, db, get_session

__all__ = [
    "Base",
    "BillModel",
    "PendingBillModel",
    "VoteModel",
    "ImportLogModel",
    "Database",
    "db",
    "get_session",
]
