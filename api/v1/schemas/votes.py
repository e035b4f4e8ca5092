"""
Pydantic schemas for vote API requests and responses.

Responsibility: Vote request/response schemas
"""

from typing import Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel


class CastVoteRequest(BaseModel):
    """
    Vote submission.

    Both fields are optional at the schema level so that missing values
    are reported with the vote service's own messages.
    """

    bill_id: Optional[str] = None
    vote_type: Optional[str] = None


class VoteOut(BaseModel):
    bill_id: str
    vote_type: str
    voted_at: datetime
    previous_vote_type: Optional[str] = None


class CastVoteResponse(BaseModel):
    success: bool = True
    action: str
    vote: VoteOut


class ResultsBill(BaseModel):
    """Bill summary shown next to its results."""

    id: str
    title: str
    level: str
    chamber: str
    status: str
    theme: str
    vote_datetime: Optional[datetime] = None


class TimelineEntry(BaseModel):
    hour: datetime
    votes_for: int
    votes_against: int
    votes_abstain: int


class ResultsResponse(BaseModel):
    """Tallies, percentages and the trailing 24-hour timeline."""

    success: bool = True
    bill: ResultsBill
    results: Dict[str, int]
    percentages: Dict[str, int]
    timeline: List[TimelineEntry]
