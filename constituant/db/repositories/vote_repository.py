"""
Repository for citizen vote database operations.

Handles vote insertion under the (bill_id, voter_ip) uniqueness
constraint, rate-limit counting and tally aggregation.
"""

import logging
from typing import Dict, Iterable, List, Optional
from datetime import datetime
from sqlalchemy import select, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import VoteModel
from ...models.vote import VoteTally

logger = logging.getLogger(__name__)


class VoteRepository:
    """Repository for vote database operations."""

    def __init__(self, session: AsyncSession):
        """
        Initialize repository.

        Args:
            session: Async database session
        """
        self.session = session

    async def get_for_voter(self, bill_id: str, voter_ip: str) -> Optional[VoteModel]:
        """
        Get the vote a voter cast on a bill.

        Args:
            bill_id: Bill slug
            voter_ip: Voter address

        Returns:
            VoteModel or None if the voter has not voted on this bill
        """
        result = await self.session.execute(
            select(VoteModel).where(
                and_(
                    VoteModel.bill_id == bill_id,
                    VoteModel.voter_ip == voter_ip
                )
            )
        )
        return result.scalar_one_or_none()

    async def count_recent_by_ip(self, voter_ip: str, since: datetime) -> int:
        """Number of votes (any bill) cast from an address since a point in time"""
        result = await self.session.execute(
            select(func.count(VoteModel.id)).where(
                and_(
                    VoteModel.voter_ip == voter_ip,
                    VoteModel.voted_at >= since
                )
            )
        )
        return result.scalar_one()

    async def insert(
        self,
        bill_id: str,
        voter_ip: str,
        vote_type: str,
        voted_at: datetime,
        user_agent: Optional[str] = None,
    ) -> VoteModel:
        """
        Insert a first vote inside a SAVEPOINT.

        A concurrent first vote from the same address surfaces here as
        IntegrityError; only the savepoint is rolled back so the caller's
        session stays usable.

        Raises:
            sqlalchemy.exc.IntegrityError: On (bill_id, voter_ip) collision
        """
        model = VoteModel(
            bill_id=bill_id,
            voter_ip=voter_ip,
            vote_type=vote_type,
            voted_at=voted_at,
            user_agent=user_agent,
        )
        async with self.session.begin_nested():
            self.session.add(model)
        return model

    async def change_vote_type(self, model: VoteModel, vote_type: str, voted_at: datetime) -> VoteModel:
        model.vote_type = vote_type
        model.voted_at = voted_at
        await self.session.flush()
        return model

    async def tallies(self, bill_id: str) -> VoteTally:
        return (await self.tallies_for_bills([bill_id])).get(bill_id, VoteTally())

    async def tallies_for_bills(self, bill_ids: Iterable[str]) -> Dict[str, VoteTally]:
        """
        Vote counts per type for several bills in one query.

        Returns:
            Mapping of bill id to tally (bills without votes map to an empty tally)
        """
        ids = list(bill_ids)
        tallies = {bill_id: VoteTally() for bill_id in ids}
        if not ids:
            return tallies

        result = await self.session.execute(
            select(VoteModel.bill_id, VoteModel.vote_type, func.count(VoteModel.id))
            .where(VoteModel.bill_id.in_(ids))
            .group_by(VoteModel.bill_id, VoteModel.vote_type)
        )
        for bill_id, vote_type, count in result.all():
            tallies[bill_id].add(vote_type, count)
        return tallies

    async def votes_since(self, bill_id: str, since: datetime) -> List[VoteModel]:
        result = await self.session.execute(
            select(VoteModel)
            .where(
                and_(
                    VoteModel.bill_id == bill_id,
                    VoteModel.voted_at >= since
                )
            )
            .order_by(VoteModel.voted_at.asc())
        )
        return list(result.scalars().all())

    async def voted_bill_ids(self, voter_ip: str, bill_ids: Iterable[str]) -> Dict[str, str]:
        """
        Which of the given bills a voter has voted on.

        Returns:
            Mapping of bill id to the voter's vote_type
        """
        ids = list(bill_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(VoteModel.bill_id, VoteModel.vote_type).where(
                and_(
                    VoteModel.voter_ip == voter_ip,
                    VoteModel.bill_id.in_(ids)
                )
            )
        )
        return {bill_id: vote_type for bill_id, vote_type in result.all()}
