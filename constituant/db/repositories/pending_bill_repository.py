"""
Repository for the bill review queue.

Responsibility: Abstract database operations for pending bills
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import select, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import PendingBillModel
from ...models.bill import BillDraft, ReviewStatus, SENTINEL_THEME
from ...models.classification import Classification


class PendingBillRepository:
    """
    Repository for pending bills.

    Example:
        repo = PendingBillRepository(session)
        pending = await repo.get_by_source_key("lafabrique", "a1b2c3")
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, pending_id: int) -> Optional[PendingBillModel]:
        result = await self.session.execute(
            select(PendingBillModel).where(PendingBillModel.id == pending_id)
        )
        return result.scalar_one_or_none()

    async def get_by_source_key(self, source: str, external_id: str) -> Optional[PendingBillModel]:
        """Get pending bill by natural key (source, external_id)"""
        result = await self.session.execute(
            select(PendingBillModel).where(
                and_(
                    PendingBillModel.source == source,
                    PendingBillModel.external_id == external_id
                )
            )
        )
        return result.scalar_one_or_none()

    async def create(self, draft: BillDraft) -> PendingBillModel:
        """
        Queue a newly seen draft for review.

        The row starts as pending under the sentinel theme; classification
        is applied separately.
        """
        model = PendingBillModel(
            external_id=draft.external_id,
            source=draft.source.value,
            title=draft.title,
            summary=draft.summary,
            full_text_url=draft.full_text_url,
            level=draft.level.value,
            chamber=draft.chamber,
            vote_datetime=draft.vote_datetime,
            raw_data=draft.raw_payload,
            status=ReviewStatus.PENDING.value,
            theme=SENTINEL_THEME,
            fetched_at=datetime.utcnow(),
        )
        self.session.add(model)
        await self.session.flush()
        return model

    async def update_from_draft(self, model: PendingBillModel, draft: BillDraft) -> PendingBillModel:
        """
        Refresh the mutable fields of a still-pending row from a re-fetch.

        Raises:
            ValueError: When the row has already been reviewed
        """
        if model.status != ReviewStatus.PENDING.value:
            raise ValueError(f"Pending bill {model.id} is {model.status} and can no longer change")

        model.title = draft.title
        model.summary = draft.summary
        model.full_text_url = draft.full_text_url
        model.level = draft.level.value
        model.chamber = draft.chamber
        model.vote_datetime = draft.vote_datetime
        model.raw_data = draft.raw_payload
        model.fetched_at = datetime.utcnow()
        await self.session.flush()
        return model

    async def apply_classification(
        self,
        model: PendingBillModel,
        classification: Classification,
        processed_at: Optional[datetime] = None,
    ) -> PendingBillModel:
        model.theme = classification.theme
        model.ai_summary = classification.summary
        model.ai_abstract = classification.abstract
        model.ai_pour = classification.pour
        model.ai_contre = classification.contre
        model.ai_concerne = list(classification.concerne)
        model.ai_confidence = classification.confidence
        model.ai_processed_at = processed_at or datetime.utcnow()
        await self.session.flush()
        return model

    async def record_fallback(self, model: PendingBillModel, classification: Classification) -> PendingBillModel:
        """
        Store a fallback classification without marking the row processed,
        so the re-classification job picks it up later.
        """
        model.theme = classification.theme
        model.ai_summary = classification.summary
        model.ai_confidence = classification.confidence
        await self.session.flush()
        return model

    async def list_by_status(
        self,
        status: Optional[str] = ReviewStatus.PENDING.value,
        limit: int = 100,
    ) -> List[PendingBillModel]:
        """
        List queue entries, most recently fetched first.

        Args:
            status: Review status filter (None for every status)
            limit: Maximum number of rows
        """
        query = select(PendingBillModel)
        if status:
            query = query.where(PendingBillModel.status == status)
        query = query.order_by(PendingBillModel.fetched_at.desc(), PendingBillModel.id.desc()).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_needing_classification(self, limit: int = 10, force: bool = False) -> List[PendingBillModel]:
        """
        Pending rows that were never classified or still carry the sentinel theme.

        Args:
            limit: Maximum number of rows
            force: Return every pending row regardless of classification state
        """
        query = select(PendingBillModel).where(PendingBillModel.status == ReviewStatus.PENDING.value)
        if not force:
            query = query.where(
                or_(
                    PendingBillModel.ai_processed_at.is_(None),
                    PendingBillModel.theme == SENTINEL_THEME,
                )
            )
        query = query.order_by(PendingBillModel.fetched_at.desc(), PendingBillModel.id.desc()).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())
