"""
Persistence/upsert engine for normalized bills.

Drafts are keyed on (source, external_id). The terminal step is a
strategy: queue the draft for human review, or publish it directly as a
public bill. Each draft is persisted in its own transaction.

Responsibility: Idempotent insert/update/skip of bill drafts
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional
import logging
import random

from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .bill_ids import generate_bill_id
from .classification_service import ClassificationService
from .full_text_service import FullTextService
from ..config import ImportConfig
from ..db.repositories import BillRepository, PendingBillRepository
from ..db.models import PendingBillModel
from ..db.session import Database
from ..models.bill import BillDraft, ReviewStatus, SENTINEL_THEME
from ..models.classification import ClassificationOutcome
from ..models.upsert import UpsertAction, UpsertOutcome, UpsertPlan
from ..orchestration.status_lifecycle import determine_status

logger = logging.getLogger(__name__)


def _needs_classification(model: PendingBillModel) -> bool:
    return model.ai_processed_at is None or model.theme == SENTINEL_THEME


class PublishStrategy(ABC):
    """
    Terminal step of the ingestion pipeline.

    Runs in two short transactions around the classifier call: plan()
    reads the current state and decides whether a model call is needed,
    apply() re-reads that state and writes.
    """

    name: str = "abstract"

    @abstractmethod
    async def plan(self, session: AsyncSession, draft: BillDraft) -> UpsertPlan:
        """Decide what to do with a draft without writing."""

    @abstractmethod
    async def apply(
        self,
        session: AsyncSession,
        draft: BillDraft,
        outcome: Optional[ClassificationOutcome],
    ) -> UpsertOutcome:
        """Persist one draft inside the caller's transaction."""


class ReviewQueueStrategy(PublishStrategy):
    """
    Route drafts into the pending_bills review queue.

    - new key: queued as pending, classified
    - pending key: mutable fields refreshed; classification only rerun
      when never processed or still under the sentinel theme
    - reviewed key, or key already published: skipped
    """

    name = "review"

    async def plan(self, session: AsyncSession, draft: BillDraft) -> UpsertPlan:
        source, external_id = draft.natural_key()
        existing = await PendingBillRepository(session).get_by_source_key(source, external_id)

        if existing is None:
            if await BillRepository(session).get_by_source_key(source, external_id) is not None:
                return UpsertPlan(outcome=UpsertOutcome(action=UpsertAction.SKIPPED))
            return UpsertPlan(classify=True)

        if existing.status != ReviewStatus.PENDING.value:
            return UpsertPlan(outcome=UpsertOutcome(action=UpsertAction.SKIPPED, record_id=existing.id))

        return UpsertPlan(classify=_needs_classification(existing))

    async def apply(
        self,
        session: AsyncSession,
        draft: BillDraft,
        outcome: Optional[ClassificationOutcome],
    ) -> UpsertOutcome:
        source, external_id = draft.natural_key()
        pending_repo = PendingBillRepository(session)

        existing = await pending_repo.get_by_source_key(source, external_id)

        if existing is None:
            if await BillRepository(session).get_by_source_key(source, external_id) is not None:
                return UpsertOutcome(action=UpsertAction.SKIPPED)

            model = await pending_repo.create(draft)
            classified = await self._store_classification(pending_repo, model, outcome)
            logger.debug(f"Queued {source}:{external_id} for review (id={model.id})")
            return UpsertOutcome(action=UpsertAction.INSERTED, record_id=model.id, classified=classified)

        # Reviewed while the classifier was running
        if existing.status != ReviewStatus.PENDING.value:
            return UpsertOutcome(action=UpsertAction.SKIPPED, record_id=existing.id)

        needs_classification = _needs_classification(existing)
        await pending_repo.update_from_draft(existing, draft)

        classified = False
        if needs_classification:
            classified = await self._store_classification(pending_repo, existing, outcome)

        return UpsertOutcome(action=UpsertAction.UPDATED, record_id=existing.id, classified=classified)

    async def _store_classification(
        self,
        repo: PendingBillRepository,
        model: PendingBillModel,
        outcome: Optional[ClassificationOutcome],
    ) -> bool:
        if outcome is None:
            return False
        if outcome.succeeded:
            await repo.apply_classification(model, outcome.classification)
        else:
            await repo.record_fallback(model, outcome.classification)
        return outcome.succeeded


class DirectPublishStrategy(PublishStrategy):
    """
    Publish drafts straight to the bills table.

    Production bills are never overwritten by a re-fetch. Drafts without a
    vote date get a provisional one spread over the configured window.
    """

    name = "direct"

    def __init__(self, config: ImportConfig, rng: Optional[random.Random] = None):
        self.config = config
        self.rng = rng or random.Random()

    def provisional_vote_datetime(self, now: datetime) -> datetime:
        days = self.rng.randint(self.config.provisional_vote_min_days, self.config.provisional_vote_max_days)
        return (now + timedelta(days=days)).replace(microsecond=0)

    async def plan(self, session: AsyncSession, draft: BillDraft) -> UpsertPlan:
        existing = await BillRepository(session).get_by_source_key(*draft.natural_key())
        if existing is not None:
            return UpsertPlan(outcome=UpsertOutcome(action=UpsertAction.SKIPPED, record_id=existing.id))
        return UpsertPlan(classify=True)

    async def apply(
        self,
        session: AsyncSession,
        draft: BillDraft,
        outcome: Optional[ClassificationOutcome],
    ) -> UpsertOutcome:
        if outcome is None:
            raise ValueError("Direct publishing needs a classification outcome")

        source, external_id = draft.natural_key()
        repo = BillRepository(session)

        existing = await repo.get_by_source_key(source, external_id)
        if existing is not None:
            return UpsertOutcome(action=UpsertAction.SKIPPED, record_id=existing.id)

        now = datetime.utcnow()
        vote_datetime = draft.vote_datetime or self.provisional_vote_datetime(now)
        classification = outcome.classification

        bill_id = await generate_bill_id(repo, draft.level.value, draft.title, now)
        await repo.create(
            id=bill_id,
            title=draft.title,
            summary=draft.summary,
            ai_summary=classification.summary,
            ai_abstract=classification.abstract,
            ai_pour=classification.pour,
            ai_contre=classification.contre,
            ai_concerne=list(classification.concerne) or None,
            theme=classification.theme,
            ai_confidence=classification.confidence,
            ai_processed_at=now if outcome.succeeded else None,
            full_text_url=draft.full_text_url,
            level=draft.level.value,
            chamber=draft.chamber,
            vote_datetime=vote_datetime,
            status=determine_status(vote_datetime, now, self.config.lookahead_days).value,
            source=source,
            external_id=external_id,
        )
        logger.debug(f"Published {source}:{external_id} as {bill_id}")
        return UpsertOutcome(action=UpsertAction.INSERTED, record_id=bill_id, classified=outcome.succeeded)


class BillUpsertService:
    """
    Upsert drafts through a publish strategy.

    Example:
        service = BillUpsertService(db, classifier, ReviewQueueStrategy())
        outcome = await service.upsert(draft)
    """

    def __init__(
        self,
        db: Database,
        classifier: ClassificationService,
        strategy: PublishStrategy,
        full_text: Optional[FullTextService] = None,
    ):
        """
        Initialize upsert engine.

        Args:
            db: Database manager (one session per draft)
            classifier: Classification service
            strategy: Terminal step (review queue or direct publish)
            full_text: Fetches full texts before classification when given
        """
        self.db = db
        self.classifier = classifier
        self.strategy = strategy
        self.full_text = full_text

    async def upsert(self, draft: BillDraft) -> UpsertOutcome:
        """
        Persist one draft.

        The full-text fetch and the classifier call run with no session
        open; the draft is then written in a single short transaction.
        Record-level storage errors (constraint or data errors) roll back
        that draft only and are reported in the outcome. Other database
        errors propagate.
        """
        try:
            async with self.db.session() as session:
                plan = await self.strategy.plan(session, draft)
            if plan.outcome is not None:
                return plan.outcome

            outcome = await self.classify_draft(draft) if plan.classify else None

            async with self.db.session() as session:
                return await self.strategy.apply(session, draft, outcome)
        except (IntegrityError, DataError, ValueError) as e:
            source, external_id = draft.natural_key()
            logger.warning(f"Failed to upsert {source}:{external_id}: {e}")
            return UpsertOutcome(action=UpsertAction.SKIPPED, error=f"{type(e).__name__}: {e}")

    async def classify_draft(self, draft: BillDraft) -> ClassificationOutcome:
        full_text = None
        if self.full_text is not None and draft.full_text_url:
            full_text = await self.full_text.fetch(draft.full_text_url)

        outcome = await self.classifier.classify(draft.title, draft.summary, full_text)
        if not outcome.succeeded:
            source, external_id = draft.natural_key()
            logger.warning(f"Classification fell back for {source}:{external_id}: {outcome.error}")
        return outcome
