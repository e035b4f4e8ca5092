"""
Repository for bill data operations.

Implements repository pattern for published bills with natural key
lookups and the bulk status transitions of the lifecycle job.

Responsibility: Abstract database operations for bills
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from sqlalchemy import select, update, delete, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from ..models import BillModel, VoteModel
from ...models.bill import BillStatus, SENTINEL_THEME

logger = logging.getLogger(__name__)


class BillRepository:
    """
    Repository for published bills.

    Example:
        repo = BillRepository(session)

        # Find by natural key
        bill = await repo.get_by_source_key("nosdeputes", "pjl-24-0042")

        # Public listing
        bills = await repo.list_public(level="france", status="upcoming")
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            session: Active database session
        """
        self.session = session

    async def get_by_id(self, bill_id: str) -> Optional[BillModel]:
        """Get bill by slug id"""
        result = await self.session.execute(
            select(BillModel).where(BillModel.id == bill_id)
        )
        return result.scalar_one_or_none()

    async def get_by_source_key(self, source: str, external_id: str) -> Optional[BillModel]:
        """
        Get bill by natural key (source, external_id).

        Args:
            source: Source key (e.g., "nosdeputes")
            external_id: Source-scoped identifier

        Returns:
            BillModel if found, None otherwise
        """
        result = await self.session.execute(
            select(BillModel).where(
                and_(
                    BillModel.source == source,
                    BillModel.external_id == external_id
                )
            )
        )
        return result.scalar_one_or_none()

    async def exists(self, bill_id: str) -> bool:
        result = await self.session.execute(
            select(BillModel.id).where(BillModel.id == bill_id)
        )
        return result.scalar_one_or_none() is not None

    async def create(self, **fields: Any) -> BillModel:
        """
        Insert a new bill.

        Raises:
            sqlalchemy.exc.IntegrityError: When the id or natural key is taken
        """
        model = BillModel(**fields)
        self.session.add(model)
        await self.session.flush()
        return model

    async def update(self, model: BillModel, fields: Dict[str, Any]) -> BillModel:
        """Apply a partial update to an existing bill"""
        for key, value in fields.items():
            setattr(model, key, value)
        model.updated_at = datetime.utcnow()
        await self.session.flush()
        return model

    async def delete(self, bill_id: str) -> bool:
        """
        Delete a bill and its votes.

        Returns:
            True when a bill was deleted
        """
        await self.session.execute(
            delete(VoteModel).where(VoteModel.bill_id == bill_id)
        )
        result = await self.session.execute(
            delete(BillModel).where(BillModel.id == bill_id)
        )
        return result.rowcount > 0

    async def list_public(
        self,
        level: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[BillModel]:
        """
        List bills for the public listing, earliest vote first.

        Args:
            level: "eu" or "france" (None or "all" for both)
            status: Optional status filter
        """
        query = select(BillModel)

        if level and level != "all":
            query = query.where(BillModel.level == level)
        if status:
            query = query.where(BillModel.status == status)

        query = query.order_by(BillModel.vote_datetime.asc(), BillModel.id.asc())

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_needing_classification(self, limit: int = 10) -> List[BillModel]:
        """Published bills never processed or still under the sentinel theme"""
        result = await self.session.execute(
            select(BillModel)
            .where(
                or_(
                    BillModel.ai_processed_at.is_(None),
                    BillModel.theme == SENTINEL_THEME,
                )
            )
            .order_by(BillModel.created_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def update_statuses(self, now: datetime, lookahead_days: int) -> Dict[str, int]:
        """
        Move bills forward through upcoming -> voting_now -> completed.

        Completed bills are never touched and bills without a vote date
        keep their status.

        Returns:
            Number of rows moved into each status
        """
        horizon = now + timedelta(days=lookahead_days)
        open_statuses = (BillStatus.UPCOMING.value, BillStatus.VOTING_NOW.value)

        completed = await self.session.execute(
            update(BillModel)
            .where(
                BillModel.vote_datetime.is_not(None),
                BillModel.vote_datetime < now,
                BillModel.status.in_(open_statuses),
            )
            .values(status=BillStatus.COMPLETED.value, updated_at=now)
        )

        voting_now = await self.session.execute(
            update(BillModel)
            .where(
                BillModel.vote_datetime.is_not(None),
                BillModel.vote_datetime >= now,
                BillModel.vote_datetime <= horizon,
                BillModel.status == BillStatus.UPCOMING.value,
            )
            .values(status=BillStatus.VOTING_NOW.value, updated_at=now)
        )

        upcoming = await self.session.execute(
            update(BillModel)
            .where(
                BillModel.vote_datetime.is_not(None),
                BillModel.vote_datetime > horizon,
                BillModel.status == BillStatus.VOTING_NOW.value,
            )
            .values(status=BillStatus.UPCOMING.value, updated_at=now)
        )

        return {
            BillStatus.COMPLETED.value: completed.rowcount,
            BillStatus.VOTING_NOW.value: voting_now.rowcount,
            BillStatus.UPCOMING.value: upcoming.rowcount,
        }
