"""
Upsert outcome models.

Responsibility: Result vocabulary shared by the upsert engine and the orchestrator
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class UpsertAction(str, Enum):
    """What an upsert did to storage"""
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(slots=True)
class UpsertOutcome:
    """
    Result of persisting one draft.

    record_id is the pending bill id (review queue) or the bill slug
    (direct publishing).
    """

    action: UpsertAction
    record_id: Optional[Union[int, str]] = None
    classified: bool = False
    error: Optional[str] = None


@dataclass(slots=True)
class UpsertPlan:
    """
    What a strategy will do with a draft, decided before any model call.

    A plan carrying an outcome is final (nothing to write).
    """

    classify: bool = False
    outcome: Optional[UpsertOutcome] = None
