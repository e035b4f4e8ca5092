"""
Citizen vote domain models.

Responsibility: Vote types, cast outcomes and tally arithmetic
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
import math
from typing import Dict, Optional


class VoteType(str, Enum):
    """Citizen position on a bill"""
    FOR = "for"
    AGAINST = "against"
    ABSTAIN = "abstain"


class VoteAction(str, Enum):
    """What CastVote did to storage"""
    CREATED = "created"
    UPDATED = "updated"


@dataclass(slots=True)
class CastVoteResult:
    """Outcome of a successful vote cast."""

    action: VoteAction
    bill_id: str
    vote_type: VoteType
    voted_at: datetime
    previous_vote_type: Optional[VoteType] = None


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(slots=True)
class VoteTally:
    """Vote counts for one bill."""

    votes_for: int = 0
    votes_against: int = 0
    votes_abstain: int = 0

    @property
    def total(self) -> int:
        return self.votes_for + self.votes_against + self.votes_abstain

    def add(self, vote_type: str, count: int = 1) -> None:
        if vote_type == VoteType.FOR.value:
            self.votes_for += count
        elif vote_type == VoteType.AGAINST.value:
            self.votes_against += count
        elif vote_type == VoteType.ABSTAIN.value:
            self.votes_abstain += count

    def counts(self) -> Dict[str, int]:
        return {
            "for": self.votes_for,
            "against": self.votes_against,
            "abstain": self.votes_abstain,
            "total": self.total,
        }

    def percentages(self) -> Dict[str, int]:
        """
        Whole-number percentages per vote type.

        Each share is rounded half up independently, so the sum may drift
        from 100 by at most two points. An empty tally yields zeros.
        """
        total = self.total
        if total == 0:
            return {"for": 0, "against": 0, "abstain": 0}
        return {
            "for": round_half_up(self.votes_for / total * 100),
            "against": round_half_up(self.votes_against / total * 100),
            "abstain": round_half_up(self.votes_abstain / total * 100),
        }
