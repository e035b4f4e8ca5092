"""
Pydantic schemas for Bill API responses.

Defines response models for bill endpoints.

Responsibility: Bill response schemas
"""

from typing import Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class BillResponse(BaseModel):
    """Published bill as stored."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    summary: Optional[str] = None
    ai_summary: Optional[str] = None
    ai_abstract: Optional[str] = None
    ai_pour: Optional[str] = None
    ai_contre: Optional[str] = None
    ai_concerne: Optional[List[str]] = None
    theme: str
    ai_confidence: Optional[float] = None
    full_text_url: Optional[str] = None
    level: str
    chamber: str
    vote_datetime: Optional[datetime] = None
    status: str
    source: Optional[str] = None
    external_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UrgencyResponse(BaseModel):
    label: str
    urgency: str
    is_soon: bool


class BillListItem(BillResponse):
    """Bill with its vote tallies and the caller's own vote."""

    votes: Dict[str, int]
    percentages: Dict[str, int]
    urgency: UrgencyResponse
    user_voted: Optional[str] = None


class BillListResponse(BaseModel):
    success: bool = True
    count: int
    bills: List[BillListItem]
