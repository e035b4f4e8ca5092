"""
Classification result models.

Responsibility: Structured output of the language-model classifier
"""

from dataclasses import dataclass
from typing import List, Optional
from pydantic import BaseModel, Field

from .bill import SENTINEL_THEME


class Classification(BaseModel):
    """Theme and plain-language texts produced for one bill."""

    theme: str = SENTINEL_THEME
    abstract: Optional[str] = None
    summary: Optional[str] = None
    pour: Optional[str] = Field(default=None, description="Arguments in favour")
    contre: Optional[str] = Field(default=None, description="Arguments against")
    concerne: List[str] = Field(default_factory=list, description="Affected groups")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def is_sentinel(self) -> bool:
        return self.theme == SENTINEL_THEME


@dataclass(slots=True)
class ClassificationOutcome:
    """Classification plus the error that forced a fallback, if any."""

    classification: Classification
    error: Optional[str] = None
    attempts: int = 0

    @property
    def succeeded(self) -> bool:
        return self.error is None
