"""
Repository package for data access operations.

Implements repository pattern for abstracting database operations.
"""

from .bill_repository import BillRepository
from .import_log_repository import ImportLogRepository
from .pending_bill_repository import PendingBillRepository
from .vote_repository import VoteRepository

__all__ = [
    "BillRepository",
    "ImportLogRepository",
    "PendingBillRepository",
    "VoteRepository",
]
