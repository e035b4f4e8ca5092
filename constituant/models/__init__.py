"""
Models package for Constituant.

This package contains all Pydantic models for:
- Adapter responses and raw source records
- Domain entities (bill drafts, classifications, votes, upsert outcomes)
"""

from .adapter_models import (
    AdapterStatus,
    AdapterError,
    AdapterMetrics,
    AdapterResponse,
    RawRecord,
)
from .bill import (
    BillDraft,
    BillStatus,
    Level,
    ReviewStatus,
    Source,
    SENTINEL_THEME,
    THEMES,
)
from .classification import Classification, ClassificationOutcome
from .vote import CastVoteResult, VoteAction, VoteTally, VoteType
from .upsert import UpsertAction, UpsertOutcome, UpsertPlan

__all__ = [
    "AdapterStatus",
    "AdapterError",
    "AdapterMetrics",
    "AdapterResponse",
    "RawRecord",
    "BillDraft",
    "BillStatus",
    "Level",
    "ReviewStatus",
    "Source",
    "SENTINEL_THEME",
    "THEMES",
    "Classification",
    "ClassificationOutcome",
    "CastVoteResult",
    "VoteAction",
    "VoteTally",
    "VoteType",
    "UpsertAction",
    "UpsertOutcome",
    "UpsertPlan",
]
