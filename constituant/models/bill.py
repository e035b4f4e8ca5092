"""
Bill domain model.

Represents a legislative bill as produced by the Normalizer from any of
the French or EU sources, before it reaches the review queue or the
public bill table.

Responsibility: Canonical bill draft and the closed enums shared by every stage
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, Tuple
from pydantic import BaseModel, Field, field_validator


class Source(str, Enum):
    """Origin of a bill record"""
    NOSDEPUTES = "nosdeputes"
    LAFABRIQUE = "lafabrique"
    EU_PARLIAMENT = "eu_parliament"
    MANUAL = "manual"


class Level(str, Enum):
    """Legislative level"""
    EU = "eu"
    FRANCE = "france"


class BillStatus(str, Enum):
    """Public lifecycle of a bill"""
    UPCOMING = "upcoming"
    VOTING_NOW = "voting_now"
    COMPLETED = "completed"


class ReviewStatus(str, Enum):
    """Review queue state of a pending bill"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


SENTINEL_THEME = "Sans catégorie"

THEMES: Tuple[str, ...] = (
    "Économie & Finances",
    "Travail & Emploi",
    "Santé",
    "Éducation",
    "Justice",
    "Sécurité & Défense",
    "Environnement & Énergie",
    "Transports & Infrastructures",
    "Agriculture",
    "Culture & Communication",
    "Affaires sociales",
    "Numérique",
    "Affaires européennes",
    "Institutions",
    SENTINEL_THEME,
)

TITLE_MAX_LENGTH = 500
SUMMARY_MAX_LENGTH = 5000


class BillDraft(BaseModel):
    """
    Normalized bill coming out of a source adapter.

    Natural key: (source, external_id)
    Example: ("nosdeputes", "pjl-24-0042")
    """

    external_id: str = Field(min_length=1, max_length=255)
    source: Source
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    summary: Optional[str] = Field(default=None, max_length=SUMMARY_MAX_LENGTH)
    full_text_url: Optional[str] = Field(default=None, max_length=1000)
    level: Level
    chamber: str = Field(max_length=100)
    vote_datetime: Optional[datetime] = None
    raw_payload: Dict[str, Any] = Field(
        default_factory=dict,
        description="Source record as received, kept for audit"
    )

    @field_validator("external_id", "title")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    def natural_key(self) -> Tuple[str, str]:
        """
        Return natural key tuple for this draft.

        Used for deduplication and upsert logic in database.
        """
        return (self.source.value, self.external_id)
